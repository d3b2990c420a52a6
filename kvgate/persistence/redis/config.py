"""
Connection configuration and retry policies for the Redis connection manager.

A ConnectionConfig is built once at process startup (see
kvgate.core.config.settings) and is read-only afterwards.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .errors import ConfigurationError

# attempt number (1-based) -> delay in milliseconds, or None / <= 0 to stop
RetryStrategy = Callable[[int], int | float | None]


def default_retry_strategy(attempt: int) -> int:
    """Linear backoff of 50ms per attempt, capped at 2 seconds. Never stops."""
    return min(attempt * 50, 2000)


def exponential_backoff(
    base_ms: int = 50, max_ms: int = 2000, max_attempts: int | None = None
) -> RetryStrategy:
    """
    Build a retry strategy with capped exponential backoff.

    Algorithm:
        delay = min(base_ms * (2 ^ (attempt - 1)), max_ms)

    Example progression (base_ms=50, max_ms=2000):
        Attempt 1: 50ms
        Attempt 2: 100ms
        Attempt 3: 200ms
        ...
        Attempt 7+: 2000ms (capped)

    Args:
        base_ms: Delay after the first failed attempt
        max_ms: Upper bound for any single delay
        max_attempts: Stop after this many failed attempts (None = retry forever)

    Returns:
        Callable usable as ConnectionConfig.retry_strategy
    """
    if base_ms <= 0 or max_ms <= 0:
        raise ConfigurationError("Retry delays must be positive")
    if max_attempts is not None and max_attempts < 1:
        raise ConfigurationError("max_attempts must be at least 1")

    def strategy(attempt: int) -> int | None:
        if max_attempts is not None and attempt >= max_attempts:
            return None
        return min(base_ms * (2 ** (attempt - 1)), max_ms)

    return strategy


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable configuration for a single Redis connection handle."""

    host: str = "localhost"
    port: int = 6379
    password: str | None = field(default=None, repr=False)
    db: int = 0
    key_prefix: str = ""
    retry_strategy: RetryStrategy = field(default=default_retry_strategy, repr=False)
    max_retries_per_request: int | None = 3
    enable_ready_check: bool = True
    enable_offline_queue: bool = True
    connect_timeout: float = 10.0

    def __post_init__(self) -> None:
        if not self.host:
            raise ConfigurationError("Redis host must not be empty")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Redis port out of range: {self.port}")
        if self.db < 0:
            raise ConfigurationError(f"Redis database index must be >= 0: {self.db}")
        if not callable(self.retry_strategy):
            raise ConfigurationError("retry_strategy must be callable")
        if self.max_retries_per_request is not None and self.max_retries_per_request < 0:
            raise ConfigurationError("max_retries_per_request must be >= 0")
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be positive")

    @property
    def safe_url(self) -> str:
        """Connection URL with the password masked, for logs and health output."""
        auth = ":***@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"
