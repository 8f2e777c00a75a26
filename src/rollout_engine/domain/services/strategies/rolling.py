"""Rolling rollout: update the fleet in fixed-size batches."""

from __future__ import annotations

import math

from rollout_engine.domain.models.deployment import DeploymentRequest, DeploymentStrategy
from rollout_engine.domain.models.rollout import RollbackAction, RollbackPlan
from rollout_engine.domain.services.strategies.base import GateFailed, RolloutStrategy


def batch_size(fleet_size: int, fraction: float) -> int:
    """Instances per batch, never fewer than one."""
    return max(1, math.floor(fleet_size * fraction))


def make_batches(instances: list[str], size: int) -> list[list[str]]:
    return [instances[i:i + size] for i in range(0, len(instances), size)]


class RollingStrategy(RolloutStrategy):
    strategy = DeploymentStrategy.ROLLING

    async def _run(self, request: DeploymentRequest) -> None:
        settings = self._settings.rolling
        effects = self._effects

        async def plan_batches() -> str:
            instances = await effects.instances.list_instances(request.environment)
            size = batch_size(len(instances), settings.batch_fraction)
            self._context.update(batch_size=size, batches=make_batches(instances, size))
            return f"{len(instances)} instances in batches of {size}"

        await self._phase("plan_batches", plan_batches)

        for number, batch in enumerate(self._context["batches"], start=1):

            async def run_batch(batch: list[str] = batch) -> str:
                await effects.instances.update_instances(request, batch)
                status = await effects.health.check_instances(request, batch)
                if not status.healthy:
                    raise GateFailed(f"Health check failed for batch {batch}: {status.detail}")
                await effects.clock.sleep(settings.batch_pause_seconds)
                return f"updated {len(batch)} instances"

            await self._phase(f"batch_{number}", run_batch)

    def rollback_plan(self) -> RollbackPlan:
        return RollbackPlan(
            action=RollbackAction.ROLLING_ROLLBACK,
            estimated_time=self.elapsed() * self._settings.rolling.rollback_time_factor,
        )
