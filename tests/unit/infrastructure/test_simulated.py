"""Unit tests for the simulated infrastructure."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from rollout_engine.domain.models.deployment import DeploymentRequest, TargetEnvironment
from rollout_engine.infrastructure.effects.simulated import (
    SimulatedInfrastructure,
    SimulatedInfrastructureError,
)


class TestSimulatedInfrastructure:
    @pytest.mark.asyncio
    async def test_records_calls(
        self, infra: SimulatedInfrastructure, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        request = make_request()
        await infra.set_canary_weight(request, 25)
        await infra.remove_canary(request)

        assert infra.operations() == ["set_canary_weight", "remove_canary"]
        assert infra.called("set_canary_weight") == [(25,)]
        assert infra.canary_weight == 0

    @pytest.mark.asyncio
    async def test_scripted_failure_is_still_recorded(
        self, infra: SimulatedInfrastructure, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        infra.scenario.fail_on = {"deploy_direct": "registry unavailable"}
        with pytest.raises(SimulatedInfrastructureError, match="registry unavailable"):
            await infra.deploy_direct(make_request())
        assert infra.called("deploy_direct") == [("3.0.0",)]

    @pytest.mark.asyncio
    async def test_degraded_metrics_at_failing_weight(
        self, infra: SimulatedInfrastructure, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        request = make_request()
        infra.scenario.failing_canary_percentage = 25
        await infra.set_canary_weight(request, 5)
        assert (await infra.sample(request, "canary")).error_rate == 0.4
        await infra.set_canary_weight(request, 25)
        assert (await infra.sample(request, "canary")).error_rate == 4.2

    @pytest.mark.asyncio
    async def test_cutover_moves_live_slot(
        self, infra: SimulatedInfrastructure, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        assert await infra.active_slot(TargetEnvironment.STAGING) == "blue"
        await infra.complete_cutover(make_request(), "green")
        assert await infra.active_slot(TargetEnvironment.STAGING) == "green"

    @pytest.mark.asyncio
    async def test_fleet_and_rollback(
        self, infra: SimulatedInfrastructure, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        request = make_request()
        infra.scenario.fleet_size = 3
        instances = await infra.list_instances(TargetEnvironment.STAGING)
        assert instances == ["instance-1", "instance-2", "instance-3"]

        await infra.update_instances(request, instances[:2])
        await infra.rollback_instances(request)
        assert infra.called("rollback_instances") == [("3.0.0", ["instance-1", "instance-2"])]
        assert infra.updated_instances == []

    @pytest.mark.asyncio
    async def test_backup_age_follows_clock(self, infra: SimulatedInfrastructure) -> None:
        infra.scenario.backup_age_hours = 30
        status = await infra.backup_status(TargetEnvironment.STAGING)
        age = infra.clock.now() - status.last_backup_at
        assert age.total_seconds() == 30 * 3600
