"""Unit tests for the service container wiring."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from rollout_engine.api.dependencies.services import ServiceContainer
from rollout_engine.config import EffectsBackend, PersistenceBackend, Settings
from rollout_engine.infrastructure.cache.redis_history import RedisDeploymentHistory
from rollout_engine.infrastructure.effects.clock import SystemClock, VirtualClock
from rollout_engine.infrastructure.effects.http import HttpControlPlane, PrometheusMetricsProbe
from rollout_engine.infrastructure.effects.simulated import SimulatedInfrastructure
from rollout_engine.infrastructure.messaging.event_publisher import (
    InMemoryEventPublisher,
    RedisEventPublisher,
)
from rollout_engine.infrastructure.persistence.repositories import (
    InMemoryDeploymentRecordStore,
    PostgresAlertSink,
    PostgresDeploymentRecordStore,
)


class TestServiceContainer:
    def test_memory_and_simulated_defaults(self) -> None:
        container = ServiceContainer(Settings())
        assert isinstance(container.record_store, InMemoryDeploymentRecordStore)
        assert isinstance(container.event_publisher, InMemoryEventPublisher)
        assert isinstance(container.signals, SimulatedInfrastructure)
        assert isinstance(container.effects.clock, SystemClock)
        assert container.signals is container.effects.instances

    def test_simulated_runs_start_from_wall_time(self) -> None:
        container = ServiceContainer(Settings())
        orchestrator = container.orchestrator
        first = orchestrator._effects_for_run().clock
        second = orchestrator._effects_for_run().clock
        assert isinstance(first, VirtualClock)
        assert first is not second
        assert abs(first.now() - datetime.now(timezone.utc)) < timedelta(minutes=1)

    def test_postgres_backend(self) -> None:
        container = ServiceContainer(Settings(persistence_backend=PersistenceBackend.POSTGRES))
        assert isinstance(container.record_store, PostgresDeploymentRecordStore)
        assert isinstance(container.alerts, PostgresAlertSink)
        assert isinstance(container.history, RedisDeploymentHistory)
        assert isinstance(container.event_publisher, RedisEventPublisher)

    def test_http_effects_backend(self) -> None:
        container = ServiceContainer(Settings(effects_backend=EffectsBackend.HTTP))
        assert container.orchestrator._effects_for_run() is container.effects
        assert isinstance(container.signals, HttpControlPlane)
        assert isinstance(container.effects.metrics, PrometheusMetricsProbe)
        assert isinstance(container.effects.clock, SystemClock)

    def test_orchestrator_is_built_once(self) -> None:
        container = ServiceContainer(Settings())
        assert container.orchestrator is container.orchestrator
