"""
Persistence Module

Redis-backed storage access for kvgate.
"""

from .redis import RedisCommands, RedisManager

__all__ = ["RedisCommands", "RedisManager"]
