"""
Health check router.

Provides a simple health endpoint for liveness/readiness probes.
No business logic. Returns service status and version.
"""

from fastapi import APIRouter, Request

from powerposition.interfaces.positions.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service health status and version.",
)
def health_check(request: Request) -> HealthResponse:
    """Return current service health status."""
    return HealthResponse(status="ok", version=request.app.version)
