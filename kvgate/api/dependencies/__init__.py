"""FastAPI dependencies for kvgate routes."""

from .redis_dependencies import get_redis_commands, get_redis_manager
from .settings_dependencies import get_app_settings

__all__ = ["get_app_settings", "get_redis_commands", "get_redis_manager"]
