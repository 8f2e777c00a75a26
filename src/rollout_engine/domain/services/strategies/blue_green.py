"""Blue/green rollout: deploy to the idle slot, then move traffic over."""

from __future__ import annotations

from rollout_engine.domain.models.deployment import DeploymentRequest, DeploymentStrategy
from rollout_engine.domain.models.rollout import RollbackAction, RollbackPlan
from rollout_engine.domain.services.strategies.base import GateFailed, RolloutStrategy


SLOTS = ("blue", "green")


def other_slot(slot: str) -> str:
    return SLOTS[1] if slot == SLOTS[0] else SLOTS[0]


class BlueGreenStrategy(RolloutStrategy):
    strategy = DeploymentStrategy.BLUE_GREEN

    async def _run(self, request: DeploymentRequest) -> None:
        settings = self._settings.blue_green
        effects = self._effects

        async def deploy_inactive() -> str:
            old = await effects.instances.active_slot(request.environment)
            new = other_slot(old)
            self._context.update(old=old, new=new)
            await effects.instances.deploy_to_slot(request, new)
            return f"deployed {request.version} to {new} ({old} is live)"

        async def smoke_tests() -> str:
            new = self._context["new"]
            status = await effects.health.smoke_test(request, new)
            if not status.healthy:
                raise GateFailed(f"Smoke tests failed on {new}: {status.detail}")
            return status.detail

        async def shift_traffic() -> str:
            old, new = self._context["old"], self._context["new"]
            for index, percentage in enumerate(settings.traffic_steps):
                if index:
                    await effects.clock.sleep(settings.step_pause_seconds)
                await effects.traffic.shift_traffic(request, old, new, percentage)
            return f"shifted {settings.traffic_steps[-1]}% of traffic to {new}"

        async def monitor() -> str:
            new = self._context["new"]
            remaining = settings.monitor_window_seconds
            samples = 0
            while remaining > 0:
                wait = min(settings.monitor_interval_seconds, remaining)
                await effects.clock.sleep(wait)
                remaining -= wait
                status = await effects.health.check_slot(request, new)
                samples += 1
                if not status.healthy:
                    raise GateFailed(f"Monitoring detected issues in {new}: {status.detail}")
            return f"{samples} healthy samples over {settings.monitor_window_seconds:g}s"

        async def complete_cutover() -> str:
            new = self._context["new"]
            await effects.traffic.complete_cutover(request, new)
            return f"{new} is live"

        await self._phase("deploy_inactive", deploy_inactive)
        await self._phase("smoke_tests", smoke_tests)
        await self._phase("shift_traffic", shift_traffic)
        await self._phase("monitor", monitor)
        await self._phase("complete_cutover", complete_cutover)

    def rollback_plan(self) -> RollbackPlan:
        return RollbackPlan(
            action=RollbackAction.SWITCH_TRAFFIC,
            source=self._context.get("new", SLOTS[1]),
            target=self._context.get("old", SLOTS[0]),
            estimated_time=self._settings.blue_green.rollback_estimate_seconds,
        )
