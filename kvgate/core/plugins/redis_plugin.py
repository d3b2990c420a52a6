"""
Redis Plugin

Wires the RedisManager into the FastAPI application lifespan: initialize and
activate at startup, deactivate at shutdown.
"""

from typing import TYPE_CHECKING, Any

from ...core.logging.logger import get_app_logger
from ...persistence.redis.ops import RedisCommands
from ...persistence.redis.redis_client import LifecycleEvent
from ...persistence.redis.redis_manager import RedisManager

if TYPE_CHECKING:
    from fastapi import FastAPI

    from ..config.settings import Settings


class RedisPlugin:
    """
    Redis plugin for kvgate applications.

    Owns the process-wide RedisManager instance and exposes it, together with
    the RedisCommands facade, through ``app.state``.

    Example:
        plugin = RedisPlugin(settings)
        await plugin.startup(app)   # app.state.redis_manager / app.state.redis
        ...
        await plugin.shutdown(app)
    """

    def __init__(self, app_settings: "Settings", manager: RedisManager | None = None):
        """
        Args:
            app_settings: Settings used to build the ConnectionConfig
            manager: Pre-built manager (tests inject one with a fake client factory)
        """
        self.settings = app_settings
        self.manager = manager or RedisManager()

    async def startup(self, app: "FastAPI") -> None:
        """
        Initialize and activate Redis.

        Any failure here aborts application startup: the service must not run
        believing it is connected.
        """
        logger = get_app_logger()

        config = self.settings.redis_connection_config()
        logger.info("=== REDIS INITIALIZATION ===")
        logger.info(f"🔴 Redis: {config.safe_url} (prefix: '{config.key_prefix}')")

        handle = self.manager.initialize(config)
        handle.subscribe(LifecycleEvent.ERROR, self._log_lifecycle)
        handle.subscribe(LifecycleEvent.RECONNECTING, self._log_lifecycle)
        handle.subscribe(LifecycleEvent.CLOSE, self._log_lifecycle)

        try:
            await self.manager.activate()
        except Exception as e:
            logger.error(f"❌ Redis startup failed: {e}", exc_info=True)
            raise RuntimeError(f"RedisPlugin startup failed: {e}") from e

        app.state.redis_manager = self.manager
        app.state.redis = RedisCommands(self.manager)

        logger.info("✅ Redis startup completed")
        logger.info("============================")

    async def shutdown(self, app: "FastAPI") -> None:
        """Deactivate Redis; errors are logged, not re-raised, during shutdown."""
        logger = get_app_logger()

        try:
            logger.info("=== REDIS SHUTDOWN ===")
            await self.manager.deactivate()
            logger.info("✅ Redis shutdown completed")
        except Exception as e:
            logger.error(f"❌ Error during Redis shutdown: {e}", exc_info=True)

        for attr in ("redis_manager", "redis"):
            if hasattr(app.state, attr):
                delattr(app.state, attr)

    async def get_health_status(self) -> dict[str, Any]:
        if not self.manager.is_initialized():
            return {
                "healthy": False,
                "error": "Redis manager not initialized",
                "plugin": "RedisPlugin",
            }

        health_status = await self.manager.get_health_status()
        return {
            "healthy": health_status.get("ping") == "PONG",
            "plugin": "RedisPlugin",
            **health_status,
        }

    @staticmethod
    def _log_lifecycle(event: LifecycleEvent, error: Exception | None) -> None:
        logger = get_app_logger()
        if error is not None:
            logger.warning(f"Redis lifecycle event '{event.value}': {error}")
        else:
            logger.info(f"Redis lifecycle event '{event.value}'")
