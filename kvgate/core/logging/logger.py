"""
Rich-based logger with request context support for kvgate.

Provides context-aware logging: messages logged while handling an HTTP
request are prefixed with that request's id.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from kvgate.core.config.settings import Settings, settings


class CompactFormatter(logging.Formatter):
    """Custom formatter that shortens long module names for better readability."""

    def format(self, record):
        if record.name.startswith("kvgate."):
            # kvgate.persistence.redis.redis_manager -> redis.redis_manager
            parts = record.name.split(".")
            if len(parts) > 2:
                record.name = ".".join(parts[-2:])

        return super().format(record)


# Rich theme for colored output
_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "debug": "dim white",
    }
)
_console = Console(theme=_theme)


class ContextLogger:
    """
    Logger wrapper that adds the request id to messages.

    Context is added as a message prefix instead of a format string field, so
    records emitted outside a request need no extra attributes.
    """

    def __init__(self, logger: logging.Logger, request_id: str | None = None):
        self.logger = logger
        self.request_id = request_id

    def _format_message(self, message: str) -> str:
        """Add context prefix to message."""
        from .context import get_current_request_context

        current = get_current_request_context() or self.request_id
        if current:
            return f"[R:{current}] {message}"
        return message

    def debug(self, message: str, *args, **kwargs) -> None:
        self.logger.debug(self._format_message(message), *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        self.logger.info(self._format_message(message), *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self.logger.warning(self._format_message(message), *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        self.logger.error(self._format_message(message), *args, **kwargs)

    def exception(self, message: str, *args, **kwargs) -> None:
        self.logger.exception(self._format_message(message), *args, **kwargs)

    def bind(self, **kwargs) -> ContextLogger:
        """
        Create a new ContextLogger with an explicit request id.

        Example:
            request_logger = logger.bind(request_id="a1b2c3")
        """
        return ContextLogger(self.logger, request_id=kwargs.get("request_id", self.request_id))


def setup_logging(
    *,
    level: str = "INFO",
    mode: str = "PROD",
    log_dir: str | None = None,
    console_fmt: str | None = None,
    file_fmt: str | None = None,
) -> None:
    """
    Initialize the root logger with Rich formatting.

    Parameters
    ----------
    level : str
        Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
    mode : str
        "DEV" creates daily log files + console; anything else → console only
    log_dir : str, optional
        Directory for log files (DEV mode only)
    console_fmt : str, optional
        Console format string
    file_fmt : str, optional
        File format string
    """
    lvl = level.upper()
    lvl = lvl if lvl in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"

    # RichHandler already shows level and time
    console_format = console_fmt or "[%(name)s] %(message)s"
    file_format = file_fmt or "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

    rich_handler = RichHandler(
        console=_console,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_time=True,
        show_level=True,
        markup=False,
    )
    rich_handler.setFormatter(CompactFormatter(console_format))

    handlers: list[logging.Handler] = [rich_handler]

    if mode.upper() == "DEV" and log_dir:
        os.makedirs(log_dir, exist_ok=True)
        logfile = os.path.join(log_dir, f"kvgate_{datetime.now():%Y%m%d}.log")
        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(CompactFormatter(file_format))
        handlers.append(file_handler)
        _console.print(f"[green]DEV mode:[/] console + file → {logfile}")
    else:
        _console.print(f"Logging configured for mode '{mode}'. Console only.")

    logging.basicConfig(level=lvl, handlers=handlers, force=True)

    setup_logger = logging.getLogger("KvgateLoggerSetup")
    setup_logger.info(f"Logging initialized ({lvl})")


def setup_app_logging(app_settings: Settings | None = None) -> None:
    """
    Initialize application logging.

    Called once during FastAPI application startup.
    """
    cfg = app_settings or settings
    setup_logging(
        level=cfg.log_level,
        mode="DEV" if cfg.is_development else "PROD",
        log_dir=cfg.log_dir if cfg.is_development else None,
    )


def get_logger(name: str) -> ContextLogger:
    """
    Get a logger that automatically uses the request context variable.

    Args:
        name: Logger name (usually __name__)

    Returns:
        ContextLogger instance
    """
    return ContextLogger(logging.getLogger(name))


def get_app_logger() -> ContextLogger:
    """Get application logger for startup, shutdown and other app-level events."""
    return get_logger("kvgate.app")


def get_api_logger(name: str | None = None) -> ContextLogger:
    """Get API logger for endpoints and middleware."""
    return get_logger(name or "kvgate.api")
