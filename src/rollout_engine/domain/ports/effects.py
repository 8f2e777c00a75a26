"""Infrastructure effect ports (hexagonal architecture).

Every environment-mutating action and every read of a live signal goes
through one of these interfaces. Each call is a suspension point of the run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from rollout_engine.domain.models.deployment import DeploymentRequest, TargetEnvironment
from rollout_engine.domain.models.signals import (
    BackupStatus,
    HealthStatus,
    MetricsSample,
    ResourceUsage,
    SecurityPosture,
)


class InfrastructureSignals(ABC):
    """Port for the readiness signals consumed by preflight checks."""

    @abstractmethod
    async def health_score(self, environment: TargetEnvironment) -> float:
        """Overall system health score, 0-100."""

    @abstractmethod
    async def resource_usage(self, environment: TargetEnvironment) -> ResourceUsage:
        """Current CPU, memory and storage utilisation."""

    @abstractmethod
    async def dependency_reachable(self, environment: TargetEnvironment, name: str) -> bool:
        """Whether a named dependency answers."""

    @abstractmethod
    async def security_posture(self, environment: TargetEnvironment) -> SecurityPosture:
        """Vulnerability and control compliance snapshot."""

    @abstractmethod
    async def backup_status(self, environment: TargetEnvironment) -> BackupStatus:
        """Most recent successful backup."""


class InstanceManager(ABC):
    """Port for placing builds onto compute."""

    @abstractmethod
    async def active_slot(self, environment: TargetEnvironment) -> str:
        """Blue/green slot currently taking the majority of traffic."""

    @abstractmethod
    async def deploy_to_slot(self, request: DeploymentRequest, slot: str) -> None:
        """Deploy the build to a blue/green slot."""

    @abstractmethod
    async def list_instances(self, environment: TargetEnvironment) -> list[str]:
        """Live instance identifiers, in update order."""

    @abstractmethod
    async def update_instances(self, request: DeploymentRequest, instances: list[str]) -> None:
        """Replace the build on a batch of instances."""

    @abstractmethod
    async def deploy_direct(self, request: DeploymentRequest) -> None:
        """Deploy everywhere at once, without staged traffic."""

    @abstractmethod
    async def rollback_instances(self, request: DeploymentRequest) -> None:
        """Roll every updated instance back to the previous build."""

    @abstractmethod
    async def rollback_release(self, request: DeploymentRequest) -> None:
        """Generic rollback to the previous release."""


class TrafficRouter(ABC):
    """Port for traffic routing."""

    @abstractmethod
    async def shift_traffic(
        self, request: DeploymentRequest, source: str, target: str, percentage: int
    ) -> None:
        """Send ``percentage`` of traffic from ``source`` to ``target``."""

    @abstractmethod
    async def complete_cutover(self, request: DeploymentRequest, slot: str) -> None:
        """Make ``slot`` the sole live side."""

    @abstractmethod
    async def set_canary_weight(self, request: DeploymentRequest, percentage: int) -> None:
        """Route ``percentage`` of traffic to the canary."""

    @abstractmethod
    async def remove_canary(self, request: DeploymentRequest) -> None:
        """Drop the canary and restore all traffic to the baseline."""


class HealthProbe(ABC):
    """Port for health checking deployed builds."""

    @abstractmethod
    async def smoke_test(self, request: DeploymentRequest, slot: str) -> HealthStatus:
        """Run smoke tests against a slot."""

    @abstractmethod
    async def check_slot(self, request: DeploymentRequest, slot: str) -> HealthStatus:
        """Health of a blue/green slot."""

    @abstractmethod
    async def check_instances(
        self, request: DeploymentRequest, instances: list[str]
    ) -> HealthStatus:
        """Health of a batch of instances."""

    @abstractmethod
    async def check_environment(self, request: DeploymentRequest) -> HealthStatus:
        """Health of the whole environment after a rollout."""


class MetricsProbe(ABC):
    """Port for derived traffic metrics."""

    @abstractmethod
    async def sample(self, request: DeploymentRequest, scope: str) -> MetricsSample:
        """Error rate and latency for ``scope`` (for example ``"canary"``)."""


class Clock(ABC):
    """Port for time, so monitoring waits are effects rather than engine logic."""

    @abstractmethod
    def now(self) -> datetime:
        """Current local wall-clock time (timezone aware)."""

    @abstractmethod
    def monotonic(self) -> float:
        """Monotonic seconds for measuring durations."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspend the run."""


class RolloutEffects:
    """Bundle of effect ports handed to strategies and the compensator."""

    def __init__(
        self,
        instances: InstanceManager,
        traffic: TrafficRouter,
        health: HealthProbe,
        metrics: MetricsProbe,
        clock: Clock,
    ) -> None:
        self.instances = instances
        self.traffic = traffic
        self.health = health
        self.metrics = metrics
        self.clock = clock

    def with_clock(self, clock: Clock) -> RolloutEffects:
        """Same ports driven by a different clock."""
        return RolloutEffects(
            instances=self.instances,
            traffic=self.traffic,
            health=self.health,
            metrics=self.metrics,
            clock=clock,
        )
