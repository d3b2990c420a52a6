"""
Health check endpoints for kvgate.
"""

import time
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from kvgate.api.dependencies.redis_dependencies import get_redis_manager
from kvgate.api.dependencies.settings_dependencies import get_app_settings
from kvgate.core.config.settings import Settings
from kvgate.core.logging.logger import get_api_logger
from kvgate.persistence.redis.errors import CommandError, StoreConnectionError
from kvgate.persistence.redis.redis_manager import RedisManager

logger = get_api_logger()
router = APIRouter(tags=["Health"])


@router.get("/", response_class=PlainTextResponse)
async def hello() -> str:
    """Greeting endpoint."""
    return "Hello World!"


@router.get("/health", response_model=None)
async def health_check(
    manager: RedisManager = Depends(get_redis_manager),
) -> dict[str, str] | JSONResponse:
    """
    Redis connection status.

    Returns {"status": "connected", "ping": "PONG"}; an unreachable store is
    reported with HTTP 503 instead of failing the request.
    """
    try:
        ping = await manager.ping()
    except (StoreConnectionError, CommandError) as e:
        logger.warning(f"Health check failed - Redis unreachable: {e}")
        return JSONResponse(
            status_code=503, content={"status": "unreachable", "error": str(e)}
        )

    return {"status": "connected", "ping": ping}


@router.get("/health/detailed")
async def detailed_health_check(
    request: Request,
    app_settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """
    Detailed health check with Redis lifecycle and configuration information.

    Useful for debugging and monitoring.
    """
    start_time = time.time()

    plugin = getattr(request.app.state, "redis_plugin", None)
    redis_status = (
        await plugin.get_health_status()
        if plugin is not None
        else {"healthy": False, "error": "Redis plugin not started"}
    )

    response_time = time.time() - start_time
    detailed_data = {
        "status": "healthy" if redis_status.get("healthy") else "degraded",
        "timestamp": time.time(),
        "response_time_ms": round(response_time * 1000, 2),
        "application": {
            "name": "kvgate",
            "version": app_settings.version,
            "environment": app_settings.environment,
        },
        "redis": redis_status,
    }

    logger.info(
        f"Detailed health check completed - Status: {detailed_data['status']}, "
        f"Response Time: {detailed_data['response_time_ms']}ms"
    )
    return detailed_data
