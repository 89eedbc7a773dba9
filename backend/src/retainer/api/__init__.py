"""
API package for the Retainer service.

This package contains FastAPI routers for all API endpoints.
"""

from .health import router as health_router
from .retention_plugins import router as retention_plugins_router

__all__ = ["health_router", "retention_plugins_router"]
