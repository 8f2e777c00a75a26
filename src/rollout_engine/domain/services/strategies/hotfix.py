"""Hotfix rollout: direct deployment with staged gates bypassed."""

from __future__ import annotations

import structlog

from rollout_engine.domain.models.deployment import DeploymentRequest, DeploymentStrategy
from rollout_engine.domain.models.rollout import RollbackAction, RollbackPlan
from rollout_engine.domain.services.strategies.base import GateFailed, RolloutStrategy


logger = structlog.get_logger(__name__)


class HotfixStrategy(RolloutStrategy):
    strategy = DeploymentStrategy.HOTFIX

    async def _run(self, request: DeploymentRequest) -> None:
        effects = self._effects
        marker = self._settings.hotfix.version_marker

        logger.warning(
            "hotfix_gates_bypassed",
            version=request.version,
            environment=request.environment.value,
        )

        async def validate_hotfix() -> str:
            if marker not in request.version.lower():
                raise GateFailed(f"Version {request.version} is not marked as a {marker}")
            return "hotfix marker present"

        async def deploy_direct() -> str:
            await effects.instances.deploy_direct(request)
            return f"deployed {request.version} directly"

        async def emergency_health_check() -> str:
            status = await effects.health.check_environment(request)
            if not status.healthy:
                raise GateFailed(f"Emergency health check failed: {status.detail}")
            return status.detail

        await self._phase("validate_hotfix", validate_hotfix)
        await self._phase("deploy_direct", deploy_direct)
        await self._phase("emergency_health_check", emergency_health_check)

    def rollback_plan(self) -> RollbackPlan:
        return RollbackPlan(
            action=RollbackAction.IMMEDIATE_ROLLBACK,
            estimated_time=self._settings.hotfix.rollback_estimate_seconds,
        )
