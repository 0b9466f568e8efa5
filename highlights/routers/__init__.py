"""API Routers."""

from .admin import router as admin_router
from .scheduler import router as scheduler_router

__all__ = [
    "admin_router",
    "scheduler_router",
]
