"""
Global error handling middleware for the kvgate Redis error taxonomy.

Maps StoreConnectionError -> 503, CommandError -> 400 and anything else -> 500,
always with a structured JSON body.
"""

import traceback
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from kvgate.api.dependencies.settings_dependencies import get_app_settings
from kvgate.core.logging.logger import get_logger
from kvgate.persistence.redis.errors import CommandError, StoreConnectionError


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Catches exceptions escaping route handlers and renders them as JSON.

    Internal details (exception type, traceback) are only exposed in
    development mode.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)

        except HTTPException as http_exc:
            logger = get_logger(__name__)
            logger.warning(
                f"HTTP {http_exc.status_code} - {request.method} {request.url.path} - "
                f"Detail: {http_exc.detail}"
            )
            raise

        except StoreConnectionError as exc:
            logger = get_logger(__name__)
            logger.error(
                f"Redis unavailable during {request.method} {request.url.path}: {exc}"
            )
            return self._error_response(request, 503, "store_unavailable", exc)

        except CommandError as exc:
            logger = get_logger(__name__)
            logger.warning(
                f"Redis rejected command in {request.method} {request.url.path}: {exc}"
            )
            return self._error_response(request, 400, "command_error", exc)

        except ValueError as exc:
            return self._error_response(request, 422, "invalid_argument", exc)

        except Exception as exc:
            logger = get_logger(__name__)
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}: {exc}",
                exc_info=True,
            )
            return self._error_response(request, 500, "internal_error", exc, expose=False)

    def _error_response(
        self,
        request: Request,
        status_code: int,
        error: str,
        exc: Exception,
        *,
        expose: bool = True,
    ) -> JSONResponse:
        body: dict[str, Any] = {
            "success": False,
            "error": error,
            "message": str(exc) if expose else "Internal server error",
            "timestamp": datetime.now(UTC).isoformat(),
        }

        if get_app_settings(request).is_development and not expose:
            body["debug"] = {
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
                "traceback": traceback.format_exc().split("\n"),
            }

        return JSONResponse(status_code=status_code, content=body)
