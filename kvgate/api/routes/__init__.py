"""API routes module for kvgate."""

from .health import router as health_router
from .store import router as store_router

__all__ = ["health_router", "store_router"]
