"""
Error taxonomy for the Redis access layer.

- ConfigurationError: invalid or missing connection configuration (fatal at startup)
- StoreConnectionError: handle not ready / transport unreachable
- CommandError: the store rejected a command (never retried)
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every error raised by the kvgate Redis layer."""


class ConfigurationError(StoreError, ValueError):
    """Raised when a ConnectionConfig (or the environment behind it) is invalid."""


class StoreConnectionError(StoreError, ConnectionError):
    """Raised when the connection handle is not ready or the transport failed."""

    def __init__(self, message: str, *, state: str | None = None):
        super().__init__(message)
        self.state = state


class CommandError(StoreError):
    """Raised when Redis replies with an error to an otherwise delivered command."""

    def __init__(self, message: str, *, command: str | None = None):
        super().__init__(message)
        self.command = command

    def __str__(self) -> str:
        message = super().__str__()
        if self.command:
            return f"{self.command}: {message}"
        return message
