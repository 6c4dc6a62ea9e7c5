"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from checkout_engine.application.checkout_service import get_checkout_session_repository
from checkout_engine.infrastructure.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="carryofy-checkout",
        version=settings.api_version,
    )


@router.get("/ready")
async def readiness_check() -> dict[str, str | int]:
    """Check if service is ready to accept requests.

    Returns:
        Readiness status and the number of live checkout sessions.
    """
    return {
        "status": "ready",
        "active_sessions": len(get_checkout_session_repository()),
    }
