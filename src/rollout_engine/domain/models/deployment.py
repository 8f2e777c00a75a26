"""Deployment request and the record aggregate with its state machine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from rollout_engine.domain.events import deployment_events
from rollout_engine.domain.models.base import AggregateRoot, utc_now, ValueObject
from rollout_engine.domain.models.preflight import PreflightReport
from rollout_engine.domain.models.rollout import RollbackOutcome, RollbackPlan, StrategyResult


class DeploymentStrategy(str, Enum):
    """Rollout strategies."""

    BLUE_GREEN = "blue_green"
    CANARY = "canary"
    ROLLING = "rolling"
    HOTFIX = "hotfix"


class TargetEnvironment(str, Enum):
    """Environments a release can be rolled out to."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class RollbackPolicy(str, Enum):
    IMMEDIATE = "immediate"
    MANUAL = "manual"


class DeploymentStatus(str, Enum):
    """Deployment record lifecycle states."""

    PENDING = "pending"
    PREFLIGHT = "preflight"
    EXECUTING = "executing"
    POST_VALIDATING = "post_validating"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"


# Hotfix runs skip preflight, hence PENDING -> EXECUTING.
VALID_TRANSITIONS: dict[DeploymentStatus, set[DeploymentStatus]] = {
    DeploymentStatus.PENDING: {
        DeploymentStatus.PREFLIGHT, DeploymentStatus.EXECUTING, DeploymentStatus.FAILED,
    },
    DeploymentStatus.PREFLIGHT: {DeploymentStatus.EXECUTING, DeploymentStatus.FAILED},
    DeploymentStatus.EXECUTING: {DeploymentStatus.POST_VALIDATING, DeploymentStatus.FAILED},
    DeploymentStatus.POST_VALIDATING: {DeploymentStatus.COMPLETED, DeploymentStatus.FAILED},
    DeploymentStatus.FAILED: {DeploymentStatus.ROLLED_BACK, DeploymentStatus.ROLLBACK_FAILED},
    DeploymentStatus.COMPLETED: set(),
    DeploymentStatus.ROLLED_BACK: set(),
    DeploymentStatus.ROLLBACK_FAILED: set(),
}

TERMINAL_STATUSES = frozenset({
    DeploymentStatus.COMPLETED,
    DeploymentStatus.FAILED,
    DeploymentStatus.ROLLED_BACK,
    DeploymentStatus.ROLLBACK_FAILED,
})


class DeploymentInput(ValueObject):
    """Raw invocation fields as received at the engine boundary.

    ``None`` for ``rollback_strategy`` or ``health_checks`` means "use the
    configured default".
    """

    deployment_type: str
    environment: str
    version: str
    rollback_strategy: str | None = None
    health_checks: bool | None = None
    approval_required: bool = True
    initiated_by: str = ""


class DeploymentRequest(ValueObject):
    """A validated, normalised request. Immutable once accepted."""

    strategy: DeploymentStrategy
    environment: TargetEnvironment
    version: str
    rollback_policy: RollbackPolicy = RollbackPolicy.IMMEDIATE
    health_checks_enabled: bool = True
    approval_required: bool = True
    initiated_by: str = ""


class DeploymentOutcome(ValueObject):
    """What a successful run returns to the caller."""

    deployment_id: str
    status: DeploymentStatus
    estimated_duration: float
    rollback_plan: RollbackPlan
    strategy_result: StrategyResult


class DeploymentRecord(AggregateRoot):
    """One record per accepted request, owned by the orchestrator for the run."""

    request: DeploymentRequest
    status: DeploymentStatus = DeploymentStatus.PENDING
    preflight_report: PreflightReport | None = None
    strategy_result: StrategyResult | None = None
    rollback_plan: RollbackPlan | None = None
    rollback_outcome: RollbackOutcome | None = None
    failed_phase: str = ""
    error_message: str = ""
    completed_at: datetime | None = None

    @classmethod
    def accept(cls, deployment_id: str, request: DeploymentRequest) -> DeploymentRecord:
        """Create the pending record for a request that passed validation."""
        record = cls(id=deployment_id, request=request)
        record.add_event(deployment_events.DeploymentAccepted(
            deployment_id=deployment_id,
            strategy=request.strategy.value,
            environment=request.environment.value,
            version=request.version,
            correlation_id=deployment_id,
        ))
        return record

    def _transition_to(self, new_status: DeploymentStatus) -> None:
        valid = VALID_TRANSITIONS.get(self.status, set())
        if new_status not in valid:
            raise InvalidStateTransitionError(
                f"Cannot transition from {self.status.value} to {new_status.value}. "
                f"Valid transitions: {sorted(s.value for s in valid)}"
            )
        self.status = new_status
        if new_status in TERMINAL_STATUSES:
            self.completed_at = utc_now()
        self.touch()

    def start_preflight(self) -> None:
        self._transition_to(DeploymentStatus.PREFLIGHT)

    def record_preflight(self, report: PreflightReport) -> None:
        self.preflight_report = report

    def start_execution(self) -> None:
        self._transition_to(DeploymentStatus.EXECUTING)

    def start_post_validation(self, result: StrategyResult) -> None:
        self.strategy_result = result
        self._transition_to(DeploymentStatus.POST_VALIDATING)

    def complete(self) -> None:
        self._transition_to(DeploymentStatus.COMPLETED)
        self.add_event(deployment_events.DeploymentCompleted(
            deployment_id=self.id,
            duration=self.strategy_result.duration if self.strategy_result else 0.0,
            correlation_id=self.id,
        ))

    def fail(
        self,
        phase: str,
        error_message: str,
        rollback_plan: RollbackPlan | None = None,
        strategy_result: StrategyResult | None = None,
    ) -> None:
        """Mark the run failed. The rollback plan only ever lands here."""
        self.failed_phase = phase
        self.error_message = error_message
        self.rollback_plan = rollback_plan
        if strategy_result is not None:
            self.strategy_result = strategy_result
        self._transition_to(DeploymentStatus.FAILED)
        self.add_event(deployment_events.DeploymentFailed(
            deployment_id=self.id,
            phase=phase,
            error_message=error_message,
            correlation_id=self.id,
        ))

    def mark_rolled_back(self, outcome: RollbackOutcome) -> None:
        self.rollback_outcome = outcome
        self._transition_to(DeploymentStatus.ROLLED_BACK)
        self.add_event(deployment_events.DeploymentRolledBack(
            deployment_id=self.id,
            action=outcome.action.value,
            correlation_id=self.id,
        ))

    def mark_rollback_failed(self, rollback_error: str) -> None:
        self._transition_to(DeploymentStatus.ROLLBACK_FAILED)
        self.add_event(deployment_events.DeploymentRollbackFailed(
            deployment_id=self.id,
            rollback_error=rollback_error,
            correlation_id=self.id,
        ))

    def to_patch(self, *fields: str) -> dict[str, Any]:
        """Changed fields for a store update. Status and timestamps always ride along."""
        include = {"status", "updated_at", "completed_at", *fields}
        return self.model_dump(include=include)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class InvalidStateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
