"""API schemas for deployment endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from rollout_engine.domain.models.deployment import DeploymentStatus
from rollout_engine.domain.models.preflight import PreflightReport
from rollout_engine.domain.models.rollout import RollbackOutcome, RollbackPlan, StrategyResult


class CreateDeploymentRequest(BaseModel):
    """Deployment invocation body. Values are validated by the engine, not here."""

    deployment_type: str = Field(..., min_length=1)
    environment: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    rollback_strategy: str | None = None
    health_checks: bool | None = None
    approval_required: bool = True


class DeploymentAcceptedResponse(BaseModel):
    success: bool = True
    deployment_id: str
    status: DeploymentStatus
    estimated_duration: float
    rollback_plan: RollbackPlan


class DeploymentErrorResponse(BaseModel):
    error: str
    code: str
    details: dict[str, Any] = Field(default_factory=dict)
    deployment_id: str | None = None
    status: str | None = None


class DeploymentRecordResponse(BaseModel):
    id: str
    strategy: str
    environment: str
    version: str
    rollback_policy: str
    initiated_by: str
    status: DeploymentStatus
    preflight_report: PreflightReport | None = None
    strategy_result: StrategyResult | None = None
    rollback_plan: RollbackPlan | None = None
    rollback_outcome: RollbackOutcome | None = None
    failed_phase: str = ""
    error_message: str = ""
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None
