"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rollout_engine.api.dependencies.services import get_service_container
from rollout_engine.api.middleware.correlation import CorrelationIdMiddleware
from rollout_engine.api.routes import deployment_routes, health_routes
from rollout_engine.api.schemas.deployment_schemas import DeploymentErrorResponse
from rollout_engine.config import get_settings, Settings
from rollout_engine.domain.exceptions import RolloutError
from rollout_engine.infrastructure.observability.metrics import API_REQUESTS_TOTAL


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    container = get_service_container()
    logger.info(
        "application_starting",
        environment=settings.environment.value,
        effects_backend=settings.effects_backend.value,
        persistence_backend=settings.persistence_backend.value,
        rollout_config_version=settings.rollout.config_version,
    )
    await container.startup()

    yield

    logger.info("application_shutting_down")
    await container.shutdown()
    logger.info("application_shutdown_complete")


async def rollout_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render engine errors as ``{error, code, details}`` with their HTTP status."""
    assert isinstance(exc, RolloutError)
    body = DeploymentErrorResponse(
        error=exc.message,
        code=exc.code,
        details=exc.details,
        deployment_id=exc.deployment_id,
        status=exc.status,
    )
    API_REQUESTS_TOTAL.labels(
        method=request.method, endpoint=request.url.path, status_code=str(exc.http_status)
    ).inc()
    logger.warning(
        "deployment_request_failed",
        code=exc.code,
        http_status=exc.http_status,
        deployment_id=exc.deployment_id,
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=body.model_dump(exclude_none=True),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Release Rollout Engine",
        description="Validated, gated and reversible application deployments",
        version="1.0.0",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    # Middleware (order matters - first added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(RolloutError, rollout_error_handler)

    # Routes
    app.include_router(health_routes.router)
    app.include_router(deployment_routes.router, prefix=settings.api_prefix)

    return app
