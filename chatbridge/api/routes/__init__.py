"""API route modules."""

from chatbridge.api.routes.monitoring import router as monitoring_router
from chatbridge.api.routes.sessions import router as sessions_router

__all__ = ["monitoring_router", "sessions_router"]
