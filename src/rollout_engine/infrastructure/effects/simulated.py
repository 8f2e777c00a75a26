"""Deterministic, scriptable stand-in for the whole infrastructure.

Implements every effect port against in-process state. Nothing is random:
tests and demos script failures up front and read back the call log.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import structlog

from rollout_engine.domain.models.deployment import DeploymentRequest, TargetEnvironment
from rollout_engine.domain.models.signals import (
    BackupStatus,
    HealthStatus,
    MetricsSample,
    ResourceUsage,
    SecurityPosture,
)
from rollout_engine.domain.ports.effects import (
    Clock,
    HealthProbe,
    InfrastructureSignals,
    InstanceManager,
    MetricsProbe,
    RolloutEffects,
    TrafficRouter,
)
from rollout_engine.infrastructure.effects.clock import VirtualClock


logger = structlog.get_logger(__name__)


class SimulatedInfrastructureError(Exception):
    """A scripted failure of a simulated effect."""


@dataclass
class Scenario:
    """What the simulated infrastructure reports and where it breaks.

    ``fail_on`` maps an operation name (``"deploy_to_slot"``,
    ``"remove_canary"``...) to the error it raises. ``unhealthy`` names health
    probes that answer unhealthy. ``slow_signals`` delays a signal read by real
    seconds, to exercise check timeouts.
    """

    health_score: float = 95.0
    resources: ResourceUsage = field(
        default_factory=lambda: ResourceUsage(cpu=45.0, memory=60.0, storage=55.0)
    )
    unreachable: set[str] = field(default_factory=set)
    security: SecurityPosture = field(default_factory=SecurityPosture)
    backup_age_hours: float = 2.0
    fleet_size: int = 8
    active_slot: str = "blue"
    fail_on: dict[str, str] = field(default_factory=dict)
    unhealthy: set[str] = field(default_factory=set)
    failing_canary_percentage: int | None = None
    baseline_metrics: MetricsSample = field(
        default_factory=lambda: MetricsSample(error_rate=0.4, latency_ms=80.0)
    )
    degraded_metrics: MetricsSample = field(
        default_factory=lambda: MetricsSample(error_rate=4.2, latency_ms=240.0)
    )
    slow_signals: dict[str, float] = field(default_factory=dict)


class SimulatedInfrastructure(
    InfrastructureSignals, InstanceManager, TrafficRouter, HealthProbe, MetricsProbe
):
    """Every effect port over one scripted :class:`Scenario`."""

    def __init__(self, scenario: Scenario | None = None, clock: Clock | None = None) -> None:
        self.scenario = scenario or Scenario()
        self.clock = clock or VirtualClock()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.canary_weight = 0
        self.live_slot = self.scenario.active_slot
        self.updated_instances: list[str] = []

    def effects(self) -> RolloutEffects:
        return RolloutEffects(
            instances=self, traffic=self, health=self, metrics=self, clock=self.clock
        )

    def called(self, operation: str) -> list[tuple[Any, ...]]:
        """Arguments of every call to ``operation``, in order."""
        return [args for name, args in self.calls if name == operation]

    def operations(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def _effect(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        await asyncio.sleep(0)
        error = self.scenario.fail_on.get(operation)
        if error is not None:
            logger.debug("simulated_failure", operation=operation, error=error)
            raise SimulatedInfrastructureError(error)

    async def _signal(self, name: str, environment: TargetEnvironment) -> None:
        delay = self.scenario.slow_signals.get(name)
        if delay:
            await asyncio.sleep(delay)
        await self._effect(name, environment.value)

    def _health(self, probe: str, target: str) -> HealthStatus:
        if probe in self.scenario.unhealthy:
            return HealthStatus(healthy=False, detail=f"{target} unhealthy")
        return HealthStatus(healthy=True, detail=f"{target} healthy")

    # InfrastructureSignals

    async def health_score(self, environment: TargetEnvironment) -> float:
        await self._signal("health_score", environment)
        return self.scenario.health_score

    async def resource_usage(self, environment: TargetEnvironment) -> ResourceUsage:
        await self._signal("resource_usage", environment)
        return self.scenario.resources

    async def dependency_reachable(self, environment: TargetEnvironment, name: str) -> bool:
        await self._signal("dependency_reachable", environment)
        return name not in self.scenario.unreachable

    async def security_posture(self, environment: TargetEnvironment) -> SecurityPosture:
        await self._signal("security_posture", environment)
        return self.scenario.security

    async def backup_status(self, environment: TargetEnvironment) -> BackupStatus:
        await self._signal("backup_status", environment)
        return BackupStatus(
            last_backup_at=self.clock.now() - timedelta(hours=self.scenario.backup_age_hours)
        )

    # InstanceManager

    async def active_slot(self, environment: TargetEnvironment) -> str:
        await self._effect("active_slot", environment.value)
        return self.live_slot

    async def deploy_to_slot(self, request: DeploymentRequest, slot: str) -> None:
        await self._effect("deploy_to_slot", request.version, slot)

    async def list_instances(self, environment: TargetEnvironment) -> list[str]:
        await self._effect("list_instances", environment.value)
        return [f"instance-{i}" for i in range(1, self.scenario.fleet_size + 1)]

    async def update_instances(self, request: DeploymentRequest, instances: list[str]) -> None:
        await self._effect("update_instances", request.version, list(instances))
        self.updated_instances.extend(instances)

    async def deploy_direct(self, request: DeploymentRequest) -> None:
        await self._effect("deploy_direct", request.version)

    async def rollback_instances(self, request: DeploymentRequest) -> None:
        await self._effect("rollback_instances", request.version, list(self.updated_instances))
        self.updated_instances.clear()

    async def rollback_release(self, request: DeploymentRequest) -> None:
        await self._effect("rollback_release", request.version)

    # TrafficRouter

    async def shift_traffic(
        self, request: DeploymentRequest, source: str, target: str, percentage: int
    ) -> None:
        await self._effect("shift_traffic", source, target, percentage)

    async def complete_cutover(self, request: DeploymentRequest, slot: str) -> None:
        await self._effect("complete_cutover", slot)
        self.live_slot = slot

    async def set_canary_weight(self, request: DeploymentRequest, percentage: int) -> None:
        await self._effect("set_canary_weight", percentage)
        self.canary_weight = percentage

    async def remove_canary(self, request: DeploymentRequest) -> None:
        await self._effect("remove_canary", request.version)
        self.canary_weight = 0

    # HealthProbe

    async def smoke_test(self, request: DeploymentRequest, slot: str) -> HealthStatus:
        await self._effect("smoke_test", slot)
        return self._health("smoke_test", slot)

    async def check_slot(self, request: DeploymentRequest, slot: str) -> HealthStatus:
        await self._effect("check_slot", slot)
        return self._health("check_slot", slot)

    async def check_instances(
        self, request: DeploymentRequest, instances: list[str]
    ) -> HealthStatus:
        await self._effect("check_instances", list(instances))
        return self._health("check_instances", ", ".join(instances))

    async def check_environment(self, request: DeploymentRequest) -> HealthStatus:
        await self._effect("check_environment", request.environment.value)
        return self._health("check_environment", request.environment.value)

    # MetricsProbe

    async def sample(self, request: DeploymentRequest, scope: str) -> MetricsSample:
        await self._effect("sample", scope, self.canary_weight)
        if self.canary_weight == self.scenario.failing_canary_percentage:
            return self.scenario.degraded_metrics
        return self.scenario.baseline_metrics
