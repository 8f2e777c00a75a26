"""Failure taxonomy of the rollout engine.

Callers branch on the exception class, never on the message. Every error
carries a stable ``code`` and the HTTP-equivalent status the API layer maps it
to. Errors raised out of the orchestrator additionally carry the
``deployment_id`` and the record's final ``status`` once a record exists.
"""

from __future__ import annotations

from typing import Any

from rollout_engine.domain.models.preflight import PreflightReport
from rollout_engine.domain.models.rollout import RollbackPlan, StrategyResult


class RolloutError(Exception):
    """Base class for all engine errors."""

    code = "DEPLOYMENT_ERROR"
    http_status = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.deployment_id: str | None = None
        self.status: str | None = None

    def bind(self, deployment_id: str, status: str) -> RolloutError:
        """Attach the run identity once the orchestrator knows the final status."""
        self.deployment_id = deployment_id
        self.status = status
        return self

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Validation: surfaced directly, no side effects, no rollback
# ---------------------------------------------------------------------------


class ValidationError(RolloutError):
    code = "VALIDATION_ERROR"
    http_status = 400


class InvalidEnvironment(ValidationError):
    code = "INVALID_ENVIRONMENT"


class InvalidVersion(ValidationError):
    code = "INVALID_VERSION"


class InvalidRollbackPolicy(ValidationError):
    code = "INVALID_ROLLBACK_POLICY"


class DuplicateVersion(ValidationError):
    code = "DUPLICATE_VERSION"
    http_status = 409


class OutsideMaintenanceWindow(ValidationError):
    code = "OUTSIDE_MAINTENANCE_WINDOW"


class UnsupportedStrategyError(ValidationError):
    code = "UNSUPPORTED_STRATEGY"


# ---------------------------------------------------------------------------
# Preflight: aggregated, nothing mutated yet
# ---------------------------------------------------------------------------


class PreflightFailure(RolloutError):
    code = "PREFLIGHT_FAILED"
    http_status = 412

    def __init__(self, report: PreflightReport) -> None:
        super().__init__(
            f"Pre-deployment checks failed: {report.failure_detail}",
            details={"failed_checks": [result.name for result in report.failures]},
        )
        self.report = report


# ---------------------------------------------------------------------------
# Execution: triggers rollback under the immediate policy
# ---------------------------------------------------------------------------


class ExecutionFailure(RolloutError):
    code = "EXECUTION_FAILED"

    def __init__(
        self,
        message: str,
        phase: str,
        strategy: str,
        rollback_plan: RollbackPlan | None = None,
        partial_result: StrategyResult | None = None,
    ) -> None:
        super().__init__(message, details={"phase": phase, "strategy": strategy})
        self.phase = phase
        self.strategy = strategy
        self.rollback_plan = rollback_plan
        self.partial_result = partial_result


class CriticalEscalation(RolloutError):
    """Both the forward operation and its compensation failed."""

    code = "ROLLBACK_FAILED"

    def __init__(self, original_error: BaseException, rollback_error: BaseException) -> None:
        super().__init__(
            f"Rollback failed after deployment failure. "
            f"Original: {original_error}. Rollback: {rollback_error}",
            details={
                "original_error": str(original_error),
                "rollback_error": str(rollback_error),
            },
        )
        self.original_error = original_error
        self.rollback_error = rollback_error


RollbackFailure = CriticalEscalation
