"""API routers."""

from .analytics import router as analytics_router
from .grants import router as grants_router

__all__ = ["analytics_router", "grants_router"]
