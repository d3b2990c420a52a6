"""
Settings for the kvgate service.

Simple, reliable environment variable configuration. The Redis section is
turned into an immutable ConnectionConfig at startup.
"""

import os
import tomllib
from pathlib import Path

from dotenv import load_dotenv

from kvgate.persistence.redis.config import ConnectionConfig, exponential_backoff
from kvgate.persistence.redis.errors import ConfigurationError

# Load .env file for local development - look in current working directory
load_dotenv(".env")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _get_version_from_pyproject() -> str:
    """
    Read version from pyproject.toml file.

    Returns:
        Version string from pyproject.toml, or fallback version
    """
    current_path = Path(__file__)
    for parent in [current_path.parent, *current_path.parents]:
        pyproject_path = parent / "pyproject.toml"
        if pyproject_path.exists():
            try:
                with open(pyproject_path, "rb") as f:
                    pyproject_data = tomllib.load(f)
                    version = pyproject_data.get("project", {}).get("version")
                    if version:
                        return version
            except (OSError, tomllib.TOMLDecodeError):
                continue

    return "0.1.0"


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _env_bool(name: str, default: str) -> bool:
    raw = os.getenv(name, default).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


class Settings:
    """Application settings with environment-based configuration."""

    def __init__(self):
        # ================================================================
        # Version & Environment
        # ================================================================
        self.version: str = _get_version_from_pyproject()
        self.port: int = _env_int("PORT", "8000")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.log_dir: str = os.getenv("LOG_DIR", "./logs")
        self.environment: str = os.getenv("ENVIRONMENT", "DEV")

        # ================================================================
        # HTTP Configuration
        # ================================================================
        # e.g. "/api" serves /api/health, /api/store/... and /api/docs
        self.api_prefix: str = os.getenv("API_PREFIX", "")
        self.cors_origins: list[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]

        # ================================================================
        # Redis Configuration
        # ================================================================
        self.redis_host: str = os.getenv("REDIS_HOST", "localhost")
        self.redis_port: int = _env_int("REDIS_PORT", "6379")
        self.redis_password: str | None = os.getenv("REDIS_PASSWORD") or None
        self.redis_db: int = _env_int("REDIS_DB", "0")
        self.redis_key_prefix: str = os.getenv("REDIS_KEY_PREFIX", "")
        self.redis_max_retries_per_request: int = _env_int(
            "REDIS_MAX_RETRIES_PER_REQUEST", "3"
        )
        self.redis_enable_ready_check: bool = _env_bool(
            "REDIS_ENABLE_READY_CHECK", "true"
        )
        self.redis_enable_offline_queue: bool = _env_bool(
            "REDIS_ENABLE_OFFLINE_QUEUE", "true"
        )
        self.redis_connect_timeout: int = _env_int("REDIS_CONNECT_TIMEOUT", "10")

        # Retry policy for connection establishment (milliseconds)
        self.redis_retry_base_delay_ms: int = _env_int("REDIS_RETRY_BASE_DELAY_MS", "50")
        self.redis_retry_max_delay_ms: int = _env_int("REDIS_RETRY_MAX_DELAY_MS", "2000")
        # 0 retries forever
        self.redis_retry_max_attempts: int = _env_int("REDIS_RETRY_MAX_ATTEMPTS", "10")

        self._validate_settings()

    def _validate_settings(self):
        """Validate settings values."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level.upper() not in valid_levels:
            raise ConfigurationError(f"LOG_LEVEL must be one of {valid_levels}")
        self.log_level = self.log_level.upper()

        valid_environments = ["DEV", "PROD"]
        if self.environment.upper() not in valid_environments:
            self.environment = "DEV"  # Default fallback
        self.environment = self.environment.upper()

        prefix = self.api_prefix.strip().rstrip("/")
        if prefix and not prefix.startswith("/"):
            prefix = f"/{prefix}"
        self.api_prefix = prefix

        if self.redis_max_retries_per_request < 0:
            raise ConfigurationError("REDIS_MAX_RETRIES_PER_REQUEST must be >= 0")
        if self.redis_retry_max_attempts < 0:
            raise ConfigurationError("REDIS_RETRY_MAX_ATTEMPTS must be >= 0")

    def redis_connection_config(self) -> ConnectionConfig:
        """
        Build the immutable ConnectionConfig for the Redis connection manager.

        Raises:
            ConfigurationError: if any Redis setting is invalid
        """
        return ConnectionConfig(
            host=self.redis_host,
            port=self.redis_port,
            password=self.redis_password,
            db=self.redis_db,
            key_prefix=self.redis_key_prefix,
            retry_strategy=exponential_backoff(
                base_ms=self.redis_retry_base_delay_ms,
                max_ms=self.redis_retry_max_delay_ms,
                max_attempts=self.redis_retry_max_attempts or None,
            ),
            max_retries_per_request=self.redis_max_retries_per_request,
            enable_ready_check=self.redis_enable_ready_check,
            enable_offline_queue=self.redis_enable_offline_queue,
            connect_timeout=self.redis_connect_timeout,
        )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "DEV"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "PROD"


# Global settings instance
settings = Settings()
