"""Health check and metrics routes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from rollout_engine.api.dependencies.services import get_service_container, ServiceContainer
from rollout_engine.config import PersistenceBackend


router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "1.0.0",
    }


@router.get("/health/ready")
async def readiness_check(
    container: Annotated[ServiceContainer, Depends(get_service_container)],
) -> dict[str, Any]:
    """Readiness check - reports which backends the engine is wired to."""
    settings = container.settings
    checks: dict[str, str] = {
        "effects": settings.effects_backend.value,
        "persistence": settings.persistence_backend.value,
        "rollout_config": settings.rollout.config_version,
    }
    ready = True
    if settings.persistence_backend is PersistenceBackend.POSTGRES:
        ready = await container.database.ping()
        checks["database"] = "healthy" if ready else "unhealthy"

    return {
        "status": "ready" if ready else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Liveness check - verifies the service is running."""
    return {"status": "alive"}


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
