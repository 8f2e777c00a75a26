"""Unit tests for the rollback compensator."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from rollout_engine.domain.exceptions import CriticalEscalation, ExecutionFailure
from rollout_engine.domain.models.deployment import DeploymentRequest, DeploymentStrategy
from rollout_engine.domain.models.rollout import RollbackAction, RollbackPlan
from rollout_engine.domain.services.rollback import RollbackCompensator
from rollout_engine.infrastructure.effects.simulated import SimulatedInfrastructure
from rollout_engine.infrastructure.observability.tracing import InMemoryTracer


def _failure(strategy: str, plan: RollbackPlan | None = None) -> ExecutionFailure:
    return ExecutionFailure("boom", phase="deploy", strategy=strategy, rollback_plan=plan)


@pytest.fixture
def compensator(infra: SimulatedInfrastructure, tracer: InMemoryTracer) -> RollbackCompensator:
    return RollbackCompensator(infra.effects(), tracer)


class TestRollbackCompensator:
    @pytest.mark.asyncio
    async def test_blue_green_switches_traffic_back(
        self,
        infra: SimulatedInfrastructure,
        compensator: RollbackCompensator,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        plan = RollbackPlan(action=RollbackAction.SWITCH_TRAFFIC, source="green", target="blue")
        outcome = await compensator.compensate(
            DeploymentStrategy.BLUE_GREEN,
            make_request(strategy=DeploymentStrategy.BLUE_GREEN),
            _failure("blue_green", plan),
        )
        assert outcome.action == RollbackAction.SWITCH_TRAFFIC
        assert infra.called("shift_traffic") == [("green", "blue", 100)]
        assert infra.called("complete_cutover") == [("blue",)]

    @pytest.mark.asyncio
    async def test_canary_removes_canary(
        self,
        infra: SimulatedInfrastructure,
        compensator: RollbackCompensator,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        outcome = await compensator.compensate(
            DeploymentStrategy.CANARY, make_request(), _failure("canary")
        )
        assert outcome.action == RollbackAction.REMOVE_CANARY
        assert infra.operations() == ["remove_canary"]

    @pytest.mark.asyncio
    async def test_rolling_rolls_instances_back(
        self,
        infra: SimulatedInfrastructure,
        compensator: RollbackCompensator,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        await compensator.compensate(
            DeploymentStrategy.ROLLING,
            make_request(strategy=DeploymentStrategy.ROLLING),
            _failure("rolling"),
        )
        assert infra.operations() == ["rollback_instances"]

    @pytest.mark.asyncio
    async def test_hotfix_uses_release_rollback(
        self,
        infra: SimulatedInfrastructure,
        compensator: RollbackCompensator,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        outcome = await compensator.compensate(
            DeploymentStrategy.HOTFIX,
            make_request(strategy=DeploymentStrategy.HOTFIX),
            _failure("hotfix"),
        )
        assert outcome.action == RollbackAction.IMMEDIATE_ROLLBACK
        assert infra.operations() == ["rollback_release"]

    @pytest.mark.asyncio
    async def test_failure_escalates_once(
        self,
        infra: SimulatedInfrastructure,
        compensator: RollbackCompensator,
        tracer: InMemoryTracer,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        infra.scenario.fail_on = {"remove_canary": "router down"}
        original = _failure("canary")

        with pytest.raises(CriticalEscalation) as exc_info:
            await compensator.compensate(DeploymentStrategy.CANARY, make_request(), original)

        assert exc_info.value.original_error is original
        assert str(exc_info.value.rollback_error) == "router down"
        assert exc_info.value.code == "ROLLBACK_FAILED"
        assert len(infra.called("remove_canary")) == 1
        assert tracer.named("rollback")[0].outcome == "error"
