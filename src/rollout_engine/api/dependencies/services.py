"""Service dependencies for FastAPI dependency injection."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

import redis.asyncio

from rollout_engine.config import EffectsBackend, get_settings, PersistenceBackend, Settings
from rollout_engine.domain.ports.effects import Clock, InfrastructureSignals, RolloutEffects
from rollout_engine.domain.ports.repositories import DeploymentHistory, DeploymentRecordStore
from rollout_engine.domain.ports.services import AlertSink, EventPublisher, Tracer
from rollout_engine.domain.services.orchestrator import DeploymentOrchestrator
from rollout_engine.infrastructure.cache.redis_history import (
    create_redis_client,
    RedisDeploymentHistory,
)
from rollout_engine.infrastructure.effects.clock import SystemClock, VirtualClock
from rollout_engine.infrastructure.effects.http import HttpControlPlane, PrometheusMetricsProbe
from rollout_engine.infrastructure.effects.simulated import SimulatedInfrastructure
from rollout_engine.infrastructure.messaging.event_publisher import (
    InMemoryEventPublisher,
    RedisEventPublisher,
)
from rollout_engine.infrastructure.observability.tracing import OpenTelemetryTracer
from rollout_engine.infrastructure.persistence.database import DatabaseManager
from rollout_engine.infrastructure.persistence.repositories import (
    InMemoryAlertSink,
    InMemoryDeploymentHistory,
    InMemoryDeploymentRecordStore,
    PostgresAlertSink,
    PostgresDeploymentHistory,
    PostgresDeploymentRecordStore,
)


class ServiceContainer:
    """Simple dependency injection container.

    Implements the Composition Root pattern for assembling
    dependencies and managing their lifecycle. The effects backend and the
    persistence backend are chosen independently from settings.
    """

    _instance: ServiceContainer | None = None

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._tracer: Tracer = OpenTelemetryTracer()

        # Lazy init
        self._redis_client: redis.Redis | None = None
        self._database: DatabaseManager | None = None
        self._http_plane: HttpControlPlane | None = None
        self._http_metrics: PrometheusMetricsProbe | None = None
        self._record_store: DeploymentRecordStore | None = None
        self._history: DeploymentHistory | None = None
        self._alerts: AlertSink | None = None
        self._event_publisher: EventPublisher | None = None
        self._signals: InfrastructureSignals | None = None
        self._effects: RolloutEffects | None = None
        self._run_clock_factory: Callable[[], Clock] | None = None
        self._orchestrator: DeploymentOrchestrator | None = None

    @classmethod
    def get_instance(cls) -> ServiceContainer:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def _postgres(self) -> bool:
        return self._settings.persistence_backend is PersistenceBackend.POSTGRES

    @property
    def database(self) -> DatabaseManager:
        if self._database is None:
            self._database = DatabaseManager(self._settings.database)
        return self._database

    @property
    def redis_client(self) -> redis.Redis:
        if self._redis_client is None:
            self._redis_client = create_redis_client(self._settings.redis)
        return self._redis_client

    @property
    def record_store(self) -> DeploymentRecordStore:
        if self._record_store is None:
            self._record_store = (
                PostgresDeploymentRecordStore(self.database)
                if self._postgres
                else InMemoryDeploymentRecordStore()
            )
        return self._record_store

    @property
    def history(self) -> DeploymentHistory:
        if self._history is None:
            if self._postgres:
                self._history = RedisDeploymentHistory(
                    self.redis_client,
                    self._settings.redis.history_key_prefix,
                    fallback=PostgresDeploymentHistory(self.database),
                )
            else:
                self._history = InMemoryDeploymentHistory()
        return self._history

    @property
    def alerts(self) -> AlertSink:
        if self._alerts is None:
            self._alerts = (
                PostgresAlertSink(self.database) if self._postgres else InMemoryAlertSink()
            )
        return self._alerts

    @property
    def event_publisher(self) -> EventPublisher:
        if self._event_publisher is None:
            self._event_publisher = (
                RedisEventPublisher(self.redis_client, self._settings.redis.event_channel_prefix)
                if self._postgres
                else InMemoryEventPublisher()
            )
        return self._event_publisher

    @property
    def tracer(self) -> Tracer:
        return self._tracer

    def _build_effects(self) -> tuple[InfrastructureSignals, RolloutEffects]:
        rollout = self._settings.rollout
        if self._settings.effects_backend is EffectsBackend.HTTP:
            self._http_plane = HttpControlPlane(self._settings.infrastructure)
            self._http_metrics = PrometheusMetricsProbe(self._settings.infrastructure)
            effects = RolloutEffects(
                instances=self._http_plane,
                traffic=self._http_plane,
                health=self._http_plane,
                metrics=self._http_metrics,
                clock=SystemClock(rollout.timezone),
            )
            return self._http_plane, effects

        # Simulated runs each get virtual time starting from the current local time.
        tz = ZoneInfo(rollout.timezone)
        self._run_clock_factory = lambda: VirtualClock(start=datetime.now(tz))
        simulated = SimulatedInfrastructure(clock=SystemClock(rollout.timezone))
        return simulated, simulated.effects()

    @property
    def effects(self) -> RolloutEffects:
        if self._effects is None:
            self._signals, self._effects = self._build_effects()
        return self._effects

    @property
    def signals(self) -> InfrastructureSignals:
        if self._signals is None:
            self._signals, self._effects = self._build_effects()
        return self._signals

    @property
    def orchestrator(self) -> DeploymentOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = DeploymentOrchestrator(
                settings=self._settings.rollout,
                signals=self.signals,
                effects=self.effects,
                store=self.record_store,
                history=self.history,
                alerts=self.alerts,
                tracer=self.tracer,
                event_publisher=self.event_publisher,
                clock_factory=self._run_clock_factory,
            )
        return self._orchestrator

    async def startup(self) -> None:
        if self._postgres:
            await self.database.initialize(create_tables=True)

    async def shutdown(self) -> None:
        if self._http_plane is not None:
            await self._http_plane.close()
        if self._http_metrics is not None:
            await self._http_metrics.close()
        if self._redis_client is not None:
            await self._redis_client.aclose()
        if self._database is not None:
            await self._database.close()


def get_service_container() -> ServiceContainer:
    return ServiceContainer.get_instance()
