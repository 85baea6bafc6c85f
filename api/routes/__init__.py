"""API route modules."""

from .admin_routes import router as admin_router
from .health_routes import router as health_router
from .jobs_routes import router as jobs_router

__all__ = [
    "admin_router",
    "health_router",
    "jobs_router",
]
