"""HTTP middleware for kvgate."""

from .error_handler import ErrorHandlerMiddleware
from .request_logging import RequestLoggingMiddleware

__all__ = ["ErrorHandlerMiddleware", "RequestLoggingMiddleware"]
