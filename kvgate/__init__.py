"""
kvgate - typed access layer to a Redis-compatible key-value store.

Connection lifecycle management (lazy connect, retry/backoff, reconnect,
graceful shutdown) plus a typed command facade for strings, hashes, lists,
sets, sorted sets and JSON documents.
"""

from .core.config.settings import settings
from .persistence.redis import (
    CommandError,
    ConfigurationError,
    ConnectionConfig,
    ConnectionState,
    LifecycleEvent,
    RedisCommands,
    RedisManager,
    ScoredMember,
    StoreConnectionError,
    StoreError,
)

__version__ = settings.version

__all__ = [
    "CommandError",
    "ConfigurationError",
    "ConnectionConfig",
    "ConnectionState",
    "LifecycleEvent",
    "RedisCommands",
    "RedisManager",
    "ScoredMember",
    "StoreConnectionError",
    "StoreError",
]
