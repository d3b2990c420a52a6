"""Lifecycle plugins for kvgate applications."""

from .redis_plugin import RedisPlugin

__all__ = ["RedisPlugin"]
