"""Deployment domain events."""

from __future__ import annotations

from rollout_engine.domain.models.base import DomainEvent


class DeploymentAccepted(DomainEvent):
    """Emitted when a request passes validation and its record is created."""

    deployment_id: str
    strategy: str
    environment: str
    version: str
    event_type: str = "deployment.accepted"


class DeploymentCompleted(DomainEvent):
    """Emitted when the rollout and post-validation both succeed."""

    deployment_id: str
    duration: float
    event_type: str = "deployment.completed"


class DeploymentFailed(DomainEvent):
    """Emitted when preflight, execution or post-validation fails."""

    deployment_id: str
    phase: str
    error_message: str
    event_type: str = "deployment.failed"


class DeploymentRolledBack(DomainEvent):
    """Emitted when the compensating action succeeds."""

    deployment_id: str
    action: str
    event_type: str = "deployment.rolled_back"


class DeploymentRollbackFailed(DomainEvent):
    """Emitted when the compensating action itself fails."""

    deployment_id: str
    rollback_error: str
    event_type: str = "deployment.rollback_failed"
