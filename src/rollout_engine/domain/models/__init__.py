"""Domain models package."""

from rollout_engine.domain.models.alert import CriticalAlert
from rollout_engine.domain.models.base import (
    AggregateRoot,
    DomainEvent,
    generate_id,
    utc_now,
    ValueObject,
)
from rollout_engine.domain.models.deployment import (
    DeploymentInput,
    DeploymentOutcome,
    DeploymentRecord,
    DeploymentRequest,
    DeploymentStatus,
    DeploymentStrategy,
    InvalidStateTransitionError,
    RollbackPolicy,
    TargetEnvironment,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
)
from rollout_engine.domain.models.preflight import CheckResult, PreflightReport
from rollout_engine.domain.models.rollout import (
    CanaryStage,
    PhaseResult,
    RollbackAction,
    RollbackOutcome,
    RollbackPlan,
    StrategyResult,
)


__all__ = [
    "AggregateRoot",
    "CanaryStage",
    "CheckResult",
    "CriticalAlert",
    "DeploymentInput",
    "DeploymentOutcome",
    "DeploymentRecord",
    "DeploymentRequest",
    "DeploymentStatus",
    "DeploymentStrategy",
    "DomainEvent",
    "InvalidStateTransitionError",
    "PhaseResult",
    "PreflightReport",
    "RollbackAction",
    "RollbackOutcome",
    "RollbackPlan",
    "RollbackPolicy",
    "StrategyResult",
    "TERMINAL_STATUSES",
    "TargetEnvironment",
    "VALID_TRANSITIONS",
    "ValueObject",
    "generate_id",
    "utc_now",
]
