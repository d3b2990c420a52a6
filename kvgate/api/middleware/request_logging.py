"""
Request and response logging middleware with request-id context.

Every request gets an id (taken from X-Request-ID or generated) that is
propagated to all loggers through kvgate.core.logging.context.
"""

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from kvgate.api.dependencies.settings_dependencies import get_app_settings
from kvgate.core.logging.context import clear_request_context, set_request_context
from kvgate.core.logging.logger import get_logger

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses with context.

    Features:
    - Request id propagation (header in, header out)
    - Request/response timing
    - Health checks and docs are not logged to reduce noise
    """

    def __init__(self, app, log_requests: bool = True, log_responses: bool = True):
        super().__init__(app)
        self.log_requests = log_requests
        self.log_responses = log_responses

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.time()
        request_id = set_request_context(request.headers.get(REQUEST_ID_HEADER))
        logger = get_logger(__name__)

        app_settings = get_app_settings(request)
        skip = self._should_skip_logging(request.url.path, app_settings.api_prefix)
        if self.log_requests and not skip:
            client_host = request.client.host if request.client else "unknown"
            logger.info(f"Incoming {request.method} {request.url.path} from {client_host}")

        try:
            response = await call_next(request)
        finally:
            process_time = time.time() - start_time
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id

        if app_settings.is_development:
            response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

        if self.log_responses and not skip:
            self._log_response(request, response, process_time, request_id)

        return response

    def _should_skip_logging(self, path: str, prefix: str = "") -> bool:
        path = path.removeprefix(prefix) if prefix else path
        skip_paths = ["/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"]
        return any(path.startswith(skip_path) for skip_path in skip_paths)

    def _log_response(
        self, request: Request, response: Response, process_time: float, request_id: str
    ) -> None:
        """Log response with timing; level follows the status code."""
        logger = get_logger(__name__).bind(request_id=request_id)
        status_code = response.status_code

        if status_code >= 500:
            log_level = "error"
        elif status_code >= 400:
            log_level = "warning"
        else:
            log_level = "info"

        message = (
            f"Response {status_code} for {request.method} {request.url.path} "
            f"({round(process_time * 1000, 2)}ms)"
        )
        getattr(logger, log_level)(message)
