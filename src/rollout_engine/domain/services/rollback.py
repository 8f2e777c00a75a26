"""Compensating actions for failed rollouts."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from rollout_engine.domain.exceptions import CriticalEscalation, ExecutionFailure
from rollout_engine.domain.models.deployment import DeploymentRequest, DeploymentStrategy
from rollout_engine.domain.models.rollout import RollbackAction, RollbackOutcome, RollbackPlan
from rollout_engine.domain.ports.effects import RolloutEffects
from rollout_engine.domain.ports.services import Tracer
from rollout_engine.infrastructure.observability.metrics import ROLLBACKS_TOTAL


logger = structlog.get_logger(__name__)

Compensation = Callable[[DeploymentRequest, RollbackPlan | None], Awaitable[str]]


class RollbackCompensator:
    """Undoes a failed rollout with the action matching its strategy.

    Compensation is attempted exactly once. If it raises, the failure is
    escalated as :class:`CriticalEscalation` carrying both errors.
    """

    def __init__(self, effects: RolloutEffects, tracer: Tracer) -> None:
        self._effects = effects
        self._tracer = tracer
        self._dispatch: dict[DeploymentStrategy, tuple[RollbackAction, Compensation]] = {
            DeploymentStrategy.BLUE_GREEN: (RollbackAction.SWITCH_TRAFFIC, self._switch_traffic),
            DeploymentStrategy.CANARY: (RollbackAction.REMOVE_CANARY, self._remove_canary),
            DeploymentStrategy.ROLLING: (RollbackAction.ROLLING_ROLLBACK, self._rolling_rollback),
        }

    async def compensate(
        self,
        strategy: DeploymentStrategy,
        request: DeploymentRequest,
        original_error: ExecutionFailure,
    ) -> RollbackOutcome:
        action, compensation = self._dispatch.get(
            strategy, (RollbackAction.IMMEDIATE_ROLLBACK, self._release_rollback)
        )
        started = self._effects.clock.monotonic()
        span_id = self._tracer.start_span("rollback")

        logger.warning(
            "rollback_started",
            strategy=strategy.value,
            action=action.value,
            version=request.version,
            failed_phase=original_error.phase,
        )
        try:
            detail = await compensation(request, original_error.rollback_plan)
        except Exception as e:
            self._tracer.finish_span(span_id, "error", e)
            ROLLBACKS_TOTAL.labels(strategy=strategy.value, result="failure").inc()
            logger.error(
                "rollback_failed",
                strategy=strategy.value,
                action=action.value,
                error=str(e),
            )
            raise CriticalEscalation(original_error, e) from e

        self._tracer.finish_span(span_id, "success")
        ROLLBACKS_TOTAL.labels(strategy=strategy.value, result="success").inc()
        outcome = RollbackOutcome(
            action=action,
            strategy=strategy.value,
            duration=self._effects.clock.monotonic() - started,
            detail=detail,
        )
        logger.info("rollback_completed", strategy=strategy.value, duration=outcome.duration)
        return outcome

    # ------------------------------------------------------------------
    # Compensations
    # ------------------------------------------------------------------

    async def _switch_traffic(self, request: DeploymentRequest, plan: RollbackPlan | None) -> str:
        source = plan.source if plan and plan.source else "green"
        target = plan.target if plan and plan.target else "blue"
        await self._effects.traffic.shift_traffic(request, source, target, 100)
        await self._effects.traffic.complete_cutover(request, target)
        return f"traffic switched back from {source} to {target}"

    async def _remove_canary(self, request: DeploymentRequest, plan: RollbackPlan | None) -> str:
        await self._effects.traffic.remove_canary(request)
        return "canary removed, all traffic on baseline"

    async def _rolling_rollback(self, request: DeploymentRequest, plan: RollbackPlan | None) -> str:
        await self._effects.instances.rollback_instances(request)
        return "updated instances rolled back"

    async def _release_rollback(self, request: DeploymentRequest, plan: RollbackPlan | None) -> str:
        await self._effects.instances.rollback_release(request)
        return "rolled back to previous release"
