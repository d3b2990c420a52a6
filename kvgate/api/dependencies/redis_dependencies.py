"""
Redis dependency injection for API routes.

The RedisManager and the RedisCommands facade live on ``app.state``; they
are placed there by RedisPlugin during startup.
"""

from fastapi import Request

from kvgate.persistence.redis.errors import StoreConnectionError
from kvgate.persistence.redis.ops import RedisCommands
from kvgate.persistence.redis.redis_manager import RedisManager


def get_redis_manager(request: Request) -> RedisManager:
    """
    Get the process-wide RedisManager.

    Raises:
        StoreConnectionError: if Redis was never started for this app
    """
    manager = getattr(request.app.state, "redis_manager", None)
    if manager is None:
        raise StoreConnectionError("Redis is not configured for this application")
    return manager


def get_redis_commands(request: Request) -> RedisCommands:
    """Get the RedisCommands facade bound to the app's manager."""
    commands = getattr(request.app.state, "redis", None)
    if commands is None:
        raise StoreConnectionError("Redis is not configured for this application")
    return commands
