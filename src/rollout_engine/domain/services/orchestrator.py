"""Deployment orchestration: the single entry point of the rollout engine.

One call to :meth:`DeploymentOrchestrator.deploy` drives one request through
validation, preflight, strategy execution, post-validation and, on failure,
compensation. The orchestrator is the only writer of the run's record and
writes it once per lifecycle transition.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from rollout_engine.config import RolloutSettings
from rollout_engine.domain.exceptions import (
    CriticalEscalation,
    ExecutionFailure,
    PreflightFailure,
    RolloutError,
)
from rollout_engine.domain.models.alert import CriticalAlert
from rollout_engine.domain.models.base import generate_id
from rollout_engine.domain.models.deployment import (
    DeploymentInput,
    DeploymentOutcome,
    DeploymentRecord,
    DeploymentRequest,
    DeploymentStrategy,
    RollbackPolicy,
)
from rollout_engine.domain.models.rollout import StrategyResult
from rollout_engine.domain.ports.effects import Clock, InfrastructureSignals, RolloutEffects
from rollout_engine.domain.ports.repositories import DeploymentHistory, DeploymentRecordStore
from rollout_engine.domain.ports.services import AlertSink, EventPublisher, Tracer
from rollout_engine.domain.services.preflight import PreflightCheckRunner
from rollout_engine.domain.services.rollback import RollbackCompensator
from rollout_engine.domain.services.strategies import build_strategy
from rollout_engine.domain.services.validator import ConfigValidator, parse_environment
from rollout_engine.infrastructure.observability.metrics import (
    ACTIVE_DEPLOYMENTS,
    CRITICAL_ALERTS_TOTAL,
    DEPLOYMENT_DURATION,
    DEPLOYMENTS_TOTAL,
)


logger = structlog.get_logger(__name__)


class DeploymentOrchestrator:
    """Coordinates one deployment run end to end."""

    def __init__(
        self,
        settings: RolloutSettings,
        signals: InfrastructureSignals,
        effects: RolloutEffects,
        store: DeploymentRecordStore,
        history: DeploymentHistory,
        alerts: AlertSink,
        tracer: Tracer,
        event_publisher: EventPublisher,
        id_factory: Callable[[], str] = generate_id,
        clock_factory: Callable[[], Clock] | None = None,
    ) -> None:
        self._settings = settings
        self._signals = signals
        self._effects = effects
        self._store = store
        self._history = history
        self._alerts = alerts
        self._tracer = tracer
        self._event_publisher = event_publisher
        self._id_factory = id_factory
        self._clock_factory = clock_factory
        self._validator = ConfigValidator(settings)

    async def deploy(self, raw: DeploymentInput) -> DeploymentOutcome:
        """Run one deployment request to a terminal status.

        Returns the outcome on success. Every failure is raised as a
        :class:`RolloutError` subclass; once a record exists the error carries
        its ``deployment_id`` and final ``status``.
        """
        deployment_id = self._id_factory()
        effects = self._effects_for_run()
        span_id = self._tracer.start_span("deployment_orchestration")

        with structlog.contextvars.bound_contextvars(deployment_id=deployment_id):
            try:
                request = await self._validate(raw, effects.clock)
                outcome = await self._run(deployment_id, request, effects)
            except Exception as e:
                self._tracer.finish_span(span_id, "error", e)
                if not isinstance(e, RolloutError):
                    logger.exception("deployment_crashed", error=str(e))
                raise

            self._tracer.finish_span(span_id, "success")
            return outcome

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _validate(self, raw: DeploymentInput, clock: Clock) -> DeploymentRequest:
        span_id = self._tracer.start_span("config_validation")
        try:
            environment = parse_environment(raw.environment)
            version_exists = environment is not None and await self._history.exists(
                raw.version.strip(), environment
            )
            request = self._validator.validate(
                raw, now=clock.now(), version_exists=version_exists
            )
        except Exception as e:
            self._tracer.finish_span(span_id, "error", e)
            logger.warning(
                "deployment_rejected",
                deployment_type=raw.deployment_type,
                environment=raw.environment,
                version=raw.version,
                error=str(e),
            )
            raise

        self._tracer.finish_span(span_id, "success")
        return request

    async def _run(
        self, deployment_id: str, request: DeploymentRequest, effects: RolloutEffects
    ) -> DeploymentOutcome:
        record = DeploymentRecord.accept(deployment_id, request)
        await self._store.create(record)
        await self._publish_events(record)

        logger.info(
            "deployment_accepted",
            strategy=request.strategy.value,
            environment=request.environment.value,
            version=request.version,
            rollback_policy=request.rollback_policy.value,
            initiated_by=request.initiated_by,
        )

        gauge = ACTIVE_DEPLOYMENTS.labels(environment=request.environment.value)
        gauge.inc()
        try:
            return await self._drive(record, effects)
        finally:
            gauge.dec()
            DEPLOYMENTS_TOTAL.labels(
                status=record.status.value,
                environment=request.environment.value,
                strategy=request.strategy.value,
            ).inc()

    async def _drive(self, record: DeploymentRecord, effects: RolloutEffects) -> DeploymentOutcome:
        request = record.request

        if request.strategy is not DeploymentStrategy.HOTFIX:
            await self._run_preflight(record, effects)

        record.start_execution()
        await self._write(record, "preflight_report")

        strategy = build_strategy(request.strategy, effects, self._settings, self._tracer)
        try:
            result = await strategy.execute(request)
            DEPLOYMENT_DURATION.labels(
                environment=request.environment.value, strategy=request.strategy.value
            ).observe(result.duration)

            record.start_post_validation(result)
            await self._write(record, "strategy_result")

            await self._post_validate(request, result, effects)
        except ExecutionFailure as e:
            failure = await self._settle_failure(record, e, effects)
            raise failure

        record.complete()
        await self._write(record)
        await self._history.record(request.version, request.environment)

        logger.info(
            "deployment_completed",
            strategy=request.strategy.value,
            version=request.version,
            duration=result.duration,
        )
        return DeploymentOutcome(
            deployment_id=record.id,
            status=record.status,
            estimated_duration=result.duration,
            rollback_plan=result.rollback_plan,
            strategy_result=result,
        )

    async def _run_preflight(self, record: DeploymentRecord, effects: RolloutEffects) -> None:
        record.start_preflight()
        await self._write(record)

        span_id = self._tracer.start_span("preflight")
        preflight = PreflightCheckRunner(self._signals, effects.clock, self._settings.preflight)
        report = await preflight.run(record.request)
        record.record_preflight(report)
        if report.all_passed:
            self._tracer.finish_span(span_id, "success")
            return

        error = PreflightFailure(report)
        self._tracer.finish_span(span_id, "error", error)
        record.fail("preflight", error.message)
        await self._write(record, "preflight_report", "failed_phase", "error_message")
        raise error.bind(record.id, record.status.value)

    async def _post_validate(
        self, request: DeploymentRequest, result: StrategyResult, effects: RolloutEffects
    ) -> None:
        if not request.health_checks_enabled:
            logger.info("post_validation_skipped", reason="health checks disabled")
            return

        span_id = self._tracer.start_span("post_validation")
        try:
            status = await effects.health.check_environment(request)
            if not status.healthy:
                raise ExecutionFailure(
                    f"Post-deployment validation failed: {status.detail}",
                    phase="post_validation",
                    strategy=request.strategy.value,
                    rollback_plan=result.rollback_plan,
                    partial_result=result,
                )
        except ExecutionFailure as e:
            self._tracer.finish_span(span_id, "error", e)
            raise
        except Exception as e:
            self._tracer.finish_span(span_id, "error", e)
            raise ExecutionFailure(
                f"Post-deployment validation failed: {e}",
                phase="post_validation",
                strategy=request.strategy.value,
                rollback_plan=result.rollback_plan,
                partial_result=result,
            ) from e
        self._tracer.finish_span(span_id, "success")

    async def _settle_failure(
        self, record: DeploymentRecord, error: ExecutionFailure, effects: RolloutEffects
    ) -> RolloutError:
        """Drive a failed run to its final status and return the error to raise."""
        request = record.request
        record.fail(
            error.phase,
            error.message,
            rollback_plan=error.rollback_plan,
            strategy_result=error.partial_result,
        )
        await self._write_settling(
            record, "failed_phase", "error_message", "rollback_plan", "strategy_result"
        )

        if request.rollback_policy is RollbackPolicy.MANUAL:
            logger.warning(
                "rollback_skipped",
                reason="manual rollback policy",
                phase=error.phase,
                error=error.message,
            )
            return error.bind(record.id, record.status.value)

        try:
            compensator = RollbackCompensator(effects, self._tracer)
            outcome = await compensator.compensate(request.strategy, request, error)
        except CriticalEscalation as critical:
            record.mark_rollback_failed(str(critical.rollback_error))
            await self._write_settling(record)
            await self._raise_alert(record, critical)
            return critical.bind(record.id, record.status.value)

        record.mark_rolled_back(outcome)
        await self._write_settling(record, "rollback_outcome")
        return error.bind(record.id, record.status.value)

    async def _raise_alert(self, record: DeploymentRecord, critical: CriticalEscalation) -> None:
        alert = CriticalAlert(
            deployment_id=record.id,
            message=critical.message,
            original_error=str(critical.original_error),
            rollback_error=str(critical.rollback_error),
        )
        CRITICAL_ALERTS_TOTAL.labels(environment=record.request.environment.value).inc()
        logger.critical(
            "critical_alert_raised",
            alert_id=alert.id,
            original_error=alert.original_error,
            rollback_error=alert.rollback_error,
        )
        try:
            await self._alerts.raise_alert(alert)
        except Exception as e:
            logger.error("critical_alert_delivery_failed", alert_id=alert.id, error=str(e))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _effects_for_run(self) -> RolloutEffects:
        if self._clock_factory is None:
            return self._effects
        return self._effects.with_clock(self._clock_factory())

    async def _write(self, record: DeploymentRecord, *fields: str) -> None:
        await self._store.update(record.id, record.to_patch(*fields))
        await self._publish_events(record)

    async def _write_settling(self, record: DeploymentRecord, *fields: str) -> None:
        """Write while settling a failure; a store error must not stop compensation."""
        try:
            await self._write(record, *fields)
        except Exception as e:
            logger.error(
                "record_write_failed",
                status=record.status.value,
                fields=list(fields),
                error=str(e),
            )

    async def _publish_events(self, record: DeploymentRecord) -> None:
        """Collect and publish all pending domain events from the record.

        Publishing is best effort: a broker outage is logged and never
        changes the outcome of the run.
        """
        for event in record.collect_events():
            try:
                await self._event_publisher.publish(
                    event.event_type, event.model_dump(mode="json")
                )
            except Exception as e:
                logger.error(
                    "event_publish_failed",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    error=str(e),
                )
