"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from rollout_engine.config import Environment, RolloutSettings, Settings
from rollout_engine.domain.models.deployment import (
    DeploymentInput,
    DeploymentRequest,
    DeploymentStrategy,
    RollbackPolicy,
    TargetEnvironment,
)
from rollout_engine.domain.services.orchestrator import DeploymentOrchestrator
from rollout_engine.infrastructure.effects.clock import VirtualClock
from rollout_engine.infrastructure.effects.simulated import Scenario, SimulatedInfrastructure
from rollout_engine.infrastructure.messaging.event_publisher import InMemoryEventPublisher
from rollout_engine.infrastructure.observability.tracing import InMemoryTracer
from rollout_engine.infrastructure.persistence.repositories.in_memory import (
    InMemoryAlertSink,
    InMemoryDeploymentHistory,
    InMemoryDeploymentRecordStore,
)


# Saturday noon: outside the production exclusion window.
WEEKEND_NOON = datetime(2024, 1, 6, 12, 0, tzinfo=timezone.utc)
# Wednesday 10:00: inside it.
WEEKDAY_MORNING = datetime(2024, 1, 3, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clear_stores() -> None:
    """Clear in-memory stores before each test."""
    InMemoryDeploymentRecordStore.clear()
    InMemoryDeploymentHistory.clear()
    InMemoryAlertSink.clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(environment=Environment.TESTING, debug=True)


@pytest.fixture
def rollout_settings() -> RolloutSettings:
    return RolloutSettings()


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock(start=WEEKEND_NOON)


@pytest.fixture
def scenario() -> Scenario:
    return Scenario()


@pytest.fixture
def infra(scenario: Scenario, clock: VirtualClock) -> SimulatedInfrastructure:
    return SimulatedInfrastructure(scenario, clock)


@pytest.fixture
def tracer() -> InMemoryTracer:
    return InMemoryTracer()


@pytest.fixture
def record_store() -> InMemoryDeploymentRecordStore:
    return InMemoryDeploymentRecordStore()


@pytest.fixture
def history() -> InMemoryDeploymentHistory:
    return InMemoryDeploymentHistory()


@pytest.fixture
def alert_sink() -> InMemoryAlertSink:
    return InMemoryAlertSink()


@pytest.fixture
def event_publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def orchestrator(
    rollout_settings: RolloutSettings,
    infra: SimulatedInfrastructure,
    record_store: InMemoryDeploymentRecordStore,
    history: InMemoryDeploymentHistory,
    alert_sink: InMemoryAlertSink,
    tracer: InMemoryTracer,
    event_publisher: InMemoryEventPublisher,
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        settings=rollout_settings,
        signals=infra,
        effects=infra.effects(),
        store=record_store,
        history=history,
        alerts=alert_sink,
        tracer=tracer,
        event_publisher=event_publisher,
    )


@pytest.fixture
def make_input() -> Callable[..., DeploymentInput]:
    def _make(**overrides: object) -> DeploymentInput:
        fields: dict[str, object] = {
            "deployment_type": "canary",
            "environment": "staging",
            "version": "3.0.0",
            "initiated_by": "release-bot",
        }
        fields.update(overrides)
        return DeploymentInput(**fields)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def make_request() -> Callable[..., DeploymentRequest]:
    def _make(**overrides: object) -> DeploymentRequest:
        fields: dict[str, object] = {
            "strategy": DeploymentStrategy.CANARY,
            "environment": TargetEnvironment.STAGING,
            "version": "3.0.0",
            "rollback_policy": RollbackPolicy.IMMEDIATE,
            "initiated_by": "release-bot",
        }
        fields.update(overrides)
        return DeploymentRequest(**fields)  # type: ignore[arg-type]

    return _make
