"""
Request context management using contextvars for automatic propagation.

The request id is set once by RequestLoggingMiddleware and is then available
to every logger in the same request, including Redis command logs.
"""

import uuid
from contextvars import ContextVar

_request_context: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_context(request_id: str | None = None) -> str:
    """
    Set the request id for the current async context.

    Args:
        request_id: Incoming id (e.g. X-Request-ID header); generated if missing

    Returns:
        The request id now in effect
    """
    effective = request_id or uuid.uuid4().hex[:12]
    _request_context.set(effective)
    return effective


def get_current_request_context() -> str | None:
    """Get the current request id, or None outside a request."""
    return _request_context.get()


def clear_request_context() -> None:
    """Clear the request id (called when the request completes)."""
    _request_context.set(None)
