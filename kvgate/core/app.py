"""
Application factory for the kvgate HTTP service.

Builds the FastAPI app: logging and Redis start in the lifespan, middleware
and routers are registered synchronously.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kvgate.api.middleware.error_handler import ErrorHandlerMiddleware
from kvgate.api.middleware.request_logging import RequestLoggingMiddleware
from kvgate.api.routes import health_router, store_router
from kvgate.core.config.settings import Settings, settings
from kvgate.core.logging.logger import get_app_logger, setup_app_logging
from kvgate.core.plugins.redis_plugin import RedisPlugin
from kvgate.persistence.redis.redis_manager import RedisManager


def create_app(
    app_settings: Settings | None = None,
    *,
    manager: RedisManager | None = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Create the kvgate FastAPI application.

    Args:
        app_settings: Settings to use (defaults to the environment-driven instance)
        manager: RedisManager to own (one is created when omitted)
        configure_logging: Install the Rich root handler at startup

    Returns:
        FastAPI application
    """
    cfg = app_settings or settings
    redis_plugin = RedisPlugin(cfg, manager=manager)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if configure_logging:
            setup_app_logging(cfg)
        logger = get_app_logger()
        logger.debug("🚀 Starting kvgate startup phase...")

        # raises on failure: startup must not continue without Redis
        await redis_plugin.startup(app)
        app.state.redis_plugin = redis_plugin
        logger.info(f"✅ kvgate {cfg.version} started ({cfg.environment})")
        try:
            yield
        finally:
            logger.debug("🛑 Starting kvgate shutdown phase...")
            await redis_plugin.shutdown(app)
            logger.info("✅ kvgate shutdown completed")

    prefix = cfg.api_prefix
    app = FastAPI(
        title="kvgate",
        description="Typed access layer to a Redis-compatible key-value store",
        version=cfg.version,
        lifespan=lifespan,
        docs_url=f"{prefix}/docs",
        redoc_url=f"{prefix}/redoc",
        openapi_url=f"{prefix}/openapi.json",
        openapi_tags=[
            {"name": "Health", "description": "Service and Redis status"},
            {"name": "Store", "description": "Key-value store operations"},
        ],
    )

    app.state.settings = cfg

    # added last runs first: errors are logged with the request id in place
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.include_router(health_router, prefix=prefix)
    app.include_router(store_router, prefix=f"{prefix}/store")

    return app
