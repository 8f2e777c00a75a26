"""Unit tests for concurrent preflight checks."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from rollout_engine.config import PreflightSettings
from rollout_engine.domain.exceptions import PreflightFailure
from rollout_engine.domain.models.deployment import DeploymentRequest
from rollout_engine.domain.models.signals import ResourceUsage, SecurityPosture
from rollout_engine.domain.services.preflight import PreflightCheckRunner
from rollout_engine.infrastructure.effects.simulated import SimulatedInfrastructure


def _runner(
    infra: SimulatedInfrastructure, settings: PreflightSettings | None = None
) -> PreflightCheckRunner:
    return PreflightCheckRunner(infra, infra.clock, settings or PreflightSettings())


class TestPreflightCheckRunner:
    @pytest.mark.asyncio
    async def test_all_checks_pass(
        self,
        infra: SimulatedInfrastructure,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        report = await _runner(infra).run(make_request())
        assert report.all_passed
        assert [r.name for r in report.results] == [
            "system_health",
            "resource_headroom",
            "dependency_reachability",
            "security_compliance",
            "backup_freshness",
        ]

    @pytest.mark.asyncio
    async def test_collects_every_failure(
        self,
        infra: SimulatedInfrastructure,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        infra.scenario.resources = ResourceUsage(cpu=92.0, memory=60.0, storage=95.0)
        infra.scenario.security = SecurityPosture(vulnerabilities=3)

        report = await _runner(infra).run(make_request())

        assert not report.all_passed
        assert [r.name for r in report.failures] == ["resource_headroom", "security_compliance"]
        resources = report.failures[0].detail
        assert "Insufficient cpu: 92.0% > 80%" in resources
        assert "Insufficient storage: 95.0% > 90%" in resources

        error = PreflightFailure(report)
        assert "resource_headroom" in error.message
        assert "security_compliance" in error.message
        assert error.details["failed_checks"] == ["resource_headroom", "security_compliance"]
        assert error.http_status == 412

    @pytest.mark.asyncio
    async def test_low_health_score(
        self,
        infra: SimulatedInfrastructure,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        infra.scenario.health_score = 55.0
        report = await _runner(infra).run(make_request())
        assert [r.name for r in report.failures] == ["system_health"]

    @pytest.mark.asyncio
    async def test_timeout_fails_only_that_check(
        self,
        infra: SimulatedInfrastructure,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        infra.scenario.slow_signals = {"health_score": 5.0}
        settings = PreflightSettings(check_timeout_seconds=0.05)

        report = await _runner(infra, settings).run(make_request())

        assert [r.name for r in report.failures] == ["system_health"]
        assert report.failures[0].detail == "timed out after 0.05s"

    @pytest.mark.asyncio
    async def test_probe_error_counts_as_failure(
        self,
        infra: SimulatedInfrastructure,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        infra.scenario.fail_on = {"security_posture": "scanner offline"}
        report = await _runner(infra).run(make_request())
        failure = report.failures[0]
        assert failure.name == "security_compliance"
        assert failure.detail == "probe error: scanner offline"

    @pytest.mark.asyncio
    async def test_dependency_tolerance(
        self,
        infra: SimulatedInfrastructure,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        infra.scenario.unreachable = {"cache"}

        strict = await _runner(infra).run(make_request())
        assert strict.failures[0].detail == "Dependency checks failed: cache"

        lenient = await _runner(
            infra, PreflightSettings(dependency_failure_tolerance=1)
        ).run(make_request())
        assert lenient.all_passed

    @pytest.mark.asyncio
    async def test_stale_backup_fails_the_report(
        self,
        infra: SimulatedInfrastructure,
        make_request: Callable[..., DeploymentRequest],
    ) -> None:
        infra.scenario.backup_age_hours = 30.0
        report = await _runner(infra).run(make_request())
        backup = report.failures[0]
        assert backup.name == "backup_freshness"
        assert not backup.critical
        assert backup.detail == "Backup too old: 30 hours"
        assert not report.all_passed
