"""Health check endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status

from marginboard.cache.client import valkey_healthcheck
from marginboard.core.config import settings
from marginboard.core.logging import get_logger
from marginboard.schemas.common import HealthResponse


router = APIRouter(prefix="/health")

logger = get_logger("health")


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the API and its cache.",
)
async def health_check() -> HealthResponse:
    """
    Report the cache connection alongside the app version.

    A cache outage only degrades the service: reads fall back to empty boards.
    """
    checks = {"cache": await valkey_healthcheck()}
    return HealthResponse(
        status="healthy" if all(checks.values()) else "degraded",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the API is ready to accept traffic.",
)
async def readiness_check() -> dict:
    """Kubernetes-style readiness probe; 503 while the cache is unreachable."""
    if not await valkey_healthcheck():
        logger.warning("Readiness check failed: cache unreachable")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Cache not ready",
        )
    return {"status": "ready"}


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the API process is alive.",
)
async def liveness_check() -> dict:
    return {"status": "alive"}
