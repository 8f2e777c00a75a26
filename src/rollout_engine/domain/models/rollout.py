"""Value objects produced while a rollout strategy runs."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from rollout_engine.domain.models.base import ValueObject


class RollbackAction(str, Enum):
    """Compensating action kinds."""

    SWITCH_TRAFFIC = "switch_traffic"
    REMOVE_CANARY = "remove_canary"
    ROLLING_ROLLBACK = "rolling_rollback"
    IMMEDIATE_ROLLBACK = "immediate_rollback"


class RollbackPlan(ValueObject):
    """Declared reverse operation for a rollout."""

    action: RollbackAction
    source: str | None = None
    target: str | None = None
    estimated_time: float = 0.0


class CanaryStage(ValueObject):
    """Outcome of one canary ramp step."""

    traffic_percentage: int
    monitor_duration: float
    metrics_passed: bool


class PhaseResult(ValueObject):
    """Outcome of one named strategy phase."""

    name: str
    duration: float
    detail: str = ""


class StrategyResult(ValueObject):
    """What a strategy returns when every phase passed."""

    strategy: str
    duration: float
    rollback_plan: RollbackPlan
    phases: list[PhaseResult] = Field(default_factory=list)
    canary_stages: list[CanaryStage] = Field(default_factory=list)


class RollbackOutcome(ValueObject):
    """Result of a successful compensating action."""

    action: RollbackAction
    strategy: str
    duration: float
    detail: str = ""
