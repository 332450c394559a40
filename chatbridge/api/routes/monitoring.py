"""Health check endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter

from chatbridge.api.dependencies import Registry
from chatbridge.api.schemas.sessions import HealthResponse

router = APIRouter(tags=["monitoring"])


@router.get("/health", response_model=HealthResponse)
async def health_check(registry: Registry) -> HealthResponse:
    """System health check endpoint.

    Args:
        registry: Session registry

    Returns:
        HealthResponse: Status, server time and number of active sessions
    """
    return HealthResponse(
        status="ok" if registry.is_open else "starting",
        timestamp=datetime.now(UTC),
        active_sessions=registry.stats()["active"],
    )
