"""Base rollout strategy.

Implements the Template Method pattern: ``execute`` times the run and drives
the strategy's phases strictly in order; subclasses supply the phases and the
rollback plan. Any exception raised inside a phase, and any negative gate,
aborts the run with an :class:`ExecutionFailure` tagged by phase name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from rollout_engine.config import RolloutSettings
from rollout_engine.domain.exceptions import ExecutionFailure
from rollout_engine.domain.models.deployment import DeploymentRequest, DeploymentStrategy
from rollout_engine.domain.models.rollout import (
    CanaryStage,
    PhaseResult,
    RollbackPlan,
    StrategyResult,
)
from rollout_engine.domain.ports.effects import RolloutEffects
from rollout_engine.domain.ports.services import Tracer


logger = structlog.get_logger(__name__)


class GateFailed(Exception):
    """Raised inside a phase when a health or metrics gate says no."""


class RolloutStrategy(ABC):
    """One variant per rollout strategy."""

    strategy: DeploymentStrategy

    def __init__(
        self,
        effects: RolloutEffects,
        settings: RolloutSettings,
        tracer: Tracer,
    ) -> None:
        self._effects = effects
        self._settings = settings
        self._tracer = tracer
        self._phases: list[PhaseResult] = []
        self._canary_stages: list[CanaryStage] = []
        self._started = 0.0
        self._context: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self.strategy.value

    def elapsed(self) -> float:
        return self._effects.clock.monotonic() - self._started

    async def execute(self, request: DeploymentRequest) -> StrategyResult:
        """Run every phase in order and return the result, or raise ExecutionFailure."""
        self._phases = []
        self._canary_stages = []
        self._context = {}
        self._started = self._effects.clock.monotonic()
        span_id = self._tracer.start_span(f"{self.name}_deployment")

        logger.info(
            "strategy_started",
            strategy=self.name,
            environment=request.environment.value,
            version=request.version,
        )
        try:
            await self._run(request)
        except ExecutionFailure as e:
            self._tracer.finish_span(span_id, "error", e)
            logger.warning(
                "strategy_failed",
                strategy=self.name,
                phase=e.phase,
                error=e.message,
                elapsed=self.elapsed(),
            )
            raise

        result = self._result()
        self._tracer.finish_span(span_id, "success")
        logger.info("strategy_succeeded", strategy=self.name, duration=result.duration)
        return result

    async def _phase(
        self,
        name: str,
        action: Callable[[], Awaitable[str | None]],
    ) -> None:
        """Run one phase to completion, recording it or converting its failure."""
        started = self._effects.clock.monotonic()
        span_id = self._tracer.start_span(f"{self.name}.{name}")
        try:
            detail = await action()
        except Exception as e:
            self._tracer.finish_span(span_id, "error", e)
            raise ExecutionFailure(
                f"{self.name} deployment failed during {name}: {e}",
                phase=name,
                strategy=self.name,
                rollback_plan=self.rollback_plan(),
                partial_result=self._result(),
            ) from e

        self._tracer.finish_span(span_id, "success")
        self._phases.append(PhaseResult(
            name=name,
            duration=self._effects.clock.monotonic() - started,
            detail=detail or "",
        ))

    def _result(self) -> StrategyResult:
        return StrategyResult(
            strategy=self.name,
            duration=self.elapsed(),
            rollback_plan=self.rollback_plan(),
            phases=list(self._phases),
            canary_stages=list(self._canary_stages),
        )

    @abstractmethod
    async def _run(self, request: DeploymentRequest) -> None:
        """Drive the strategy's phases through ``_phase``."""

    @abstractmethod
    def rollback_plan(self) -> RollbackPlan:
        """Compensating action for the current point of the run."""
