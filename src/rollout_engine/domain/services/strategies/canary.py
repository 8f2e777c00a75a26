"""Canary rollout: ramp a canary through ordered traffic stages behind a metrics gate."""

from __future__ import annotations

import structlog

from rollout_engine.config import CanaryStageSettings
from rollout_engine.domain.models.deployment import DeploymentRequest, DeploymentStrategy
from rollout_engine.domain.models.rollout import CanaryStage, RollbackAction, RollbackPlan
from rollout_engine.domain.services.strategies.base import GateFailed, RolloutStrategy
from rollout_engine.infrastructure.observability.metrics import CANARY_STAGES_TOTAL


logger = structlog.get_logger(__name__)


class CanaryStrategy(RolloutStrategy):
    strategy = DeploymentStrategy.CANARY

    async def _run(self, request: DeploymentRequest) -> None:
        for stage in self._settings.canary.stages:
            await self._phase(
                f"canary_{stage.percentage}",
                lambda stage=stage: self._run_stage(request, stage),
            )

    async def _run_stage(self, request: DeploymentRequest, stage: CanaryStageSettings) -> str:
        settings = self._settings.canary
        effects = self._effects

        await effects.traffic.set_canary_weight(request, stage.percentage)

        started = effects.clock.monotonic()
        remaining = stage.monitor_seconds
        failure = ""
        samples = 0
        while remaining > 0:
            wait = min(settings.sample_interval_seconds, remaining)
            await effects.clock.sleep(wait)
            remaining -= wait
            sample = await effects.metrics.sample(request, "canary")
            samples += 1
            if sample.error_rate > settings.max_error_rate:
                failure = f"error rate {sample.error_rate:.2f}% > {settings.max_error_rate:g}%"
            elif sample.latency_ms > settings.max_latency_ms:
                failure = f"latency {sample.latency_ms:.0f}ms > {settings.max_latency_ms:g}ms"
            if failure:
                break

        passed = not failure
        self._canary_stages.append(CanaryStage(
            traffic_percentage=stage.percentage,
            monitor_duration=effects.clock.monotonic() - started,
            metrics_passed=passed,
        ))
        CANARY_STAGES_TOTAL.labels(
            percentage=str(stage.percentage), result="passed" if passed else "failed"
        ).inc()

        if not passed:
            logger.warning(
                "canary_stage_failed",
                version=request.version,
                percentage=stage.percentage,
                reason=failure,
            )
            raise GateFailed(f"Canary metrics failed at {stage.percentage}%: {failure}")

        logger.info("canary_stage_passed", percentage=stage.percentage, samples=samples)
        return f"{samples} samples within thresholds at {stage.percentage}%"

    def rollback_plan(self) -> RollbackPlan:
        return RollbackPlan(
            action=RollbackAction.REMOVE_CANARY,
            estimated_time=self._settings.canary.rollback_estimate_seconds,
        )
