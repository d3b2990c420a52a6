"""
Redis Module

Provides the connection lifecycle manager, the typed command facade and
their configuration and error types.
"""

from .config import ConnectionConfig, RetryStrategy, default_retry_strategy, exponential_backoff
from .errors import CommandError, ConfigurationError, StoreConnectionError, StoreError
from .ops import RedisCommands, ScoredMember
from .redis_client import ConnectionHandle, ConnectionState, LifecycleEvent
from .redis_manager import RedisManager

__all__ = [
    "CommandError",
    "ConfigurationError",
    "ConnectionConfig",
    "ConnectionHandle",
    "ConnectionState",
    "LifecycleEvent",
    "RedisCommands",
    "RedisManager",
    "RetryStrategy",
    "ScoredMember",
    "StoreConnectionError",
    "StoreError",
    "default_retry_strategy",
    "exponential_backoff",
]
