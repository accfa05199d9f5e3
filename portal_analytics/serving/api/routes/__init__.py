"""
API Routes Module
"""
from .dashboards import buyers_router, get_dashboard_service
from .dashboards import router as dashboards_router
from .health import router as health_router

__all__ = [
    "buyers_router",
    "dashboards_router",
    "get_dashboard_service",
    "health_router",
]
