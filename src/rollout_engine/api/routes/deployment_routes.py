"""Deployment API routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import (
    APIRouter,
    Depends,
    Header,
    HTTPException,
    status,
)

from rollout_engine.api.dependencies.services import get_service_container, ServiceContainer
from rollout_engine.api.schemas.deployment_schemas import (
    CreateDeploymentRequest,
    DeploymentAcceptedResponse,
    DeploymentErrorResponse,
    DeploymentRecordResponse,
)
from rollout_engine.domain.models.deployment import DeploymentInput, DeploymentRecord


router = APIRouter(prefix="/deployments", tags=["deployments"])

_ERROR_RESPONSES = {
    400: {"model": DeploymentErrorResponse},
    409: {"model": DeploymentErrorResponse},
    412: {"model": DeploymentErrorResponse},
    500: {"model": DeploymentErrorResponse},
}


def _to_response(record: DeploymentRecord) -> DeploymentRecordResponse:
    """Map domain model to API response."""
    request = record.request
    return DeploymentRecordResponse(
        id=record.id,
        strategy=request.strategy.value,
        environment=request.environment.value,
        version=request.version,
        rollback_policy=request.rollback_policy.value,
        initiated_by=request.initiated_by,
        status=record.status,
        preflight_report=record.preflight_report,
        strategy_result=record.strategy_result,
        rollback_plan=record.rollback_plan,
        rollback_outcome=record.rollback_outcome,
        failed_phase=record.failed_phase,
        error_message=record.error_message,
        created_at=record.created_at,
        updated_at=record.updated_at,
        completed_at=record.completed_at,
    )


@router.post(
    "",
    response_model=DeploymentAcceptedResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
)
async def create_deployment(
    body: CreateDeploymentRequest,
    container: Annotated[ServiceContainer, Depends(get_service_container)],
    actor_id: Annotated[str, Header(alias="X-Actor-ID", min_length=1)],
) -> DeploymentAcceptedResponse:
    """Run a deployment to completion and report its outcome.

    Engine errors are rendered by the ``RolloutError`` handler in the app.
    """
    raw = DeploymentInput(**body.model_dump(), initiated_by=actor_id)
    outcome = await container.orchestrator.deploy(raw)
    return DeploymentAcceptedResponse(
        deployment_id=outcome.deployment_id,
        status=outcome.status,
        estimated_duration=outcome.estimated_duration,
        rollback_plan=outcome.rollback_plan,
    )


@router.get("/{deployment_id}", response_model=DeploymentRecordResponse)
async def get_deployment(
    deployment_id: str,
    container: Annotated[ServiceContainer, Depends(get_service_container)],
) -> DeploymentRecordResponse:
    """Re-query a deployment record."""
    record = await container.record_store.get_by_id(deployment_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deployment {deployment_id} not found",
        )
    return _to_response(record)
