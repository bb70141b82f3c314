"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from lms_presence.dependencies import ConnectionRegistryDep

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    active_connections: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(registry: ConnectionRegistryDep) -> HealthResponse:
    """
    Check health status of the application.

    The service has no external dependencies; it reports the number of
    active connections (after evicting stale ones).
    """
    return HealthResponse(
        status="healthy", active_connections=registry.count()
    )
