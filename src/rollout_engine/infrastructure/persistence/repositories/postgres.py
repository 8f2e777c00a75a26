"""PostgreSQL implementations of the record store, history and alert sink.

Each operation runs in its own session and commits on exit, so every
lifecycle transition is durable as soon as the orchestrator writes it.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select, update

from rollout_engine.domain.models.alert import CriticalAlert
from rollout_engine.domain.models.deployment import (
    DeploymentRecord,
    DeploymentRequest,
    DeploymentStatus,
    DeploymentStrategy,
    RollbackPolicy,
    TargetEnvironment,
)
from rollout_engine.domain.models.preflight import PreflightReport
from rollout_engine.domain.models.rollout import RollbackOutcome, RollbackPlan, StrategyResult
from rollout_engine.domain.ports.repositories import DeploymentHistory, DeploymentRecordStore
from rollout_engine.domain.ports.services import AlertSink
from rollout_engine.infrastructure.persistence.database import DatabaseManager
from rollout_engine.infrastructure.persistence.models import AlertORM, DeploymentRecordORM


_JSON_FIELDS = ("preflight_report", "strategy_result", "rollback_plan", "rollback_outcome")
_SCALAR_FIELDS = ("failed_phase", "error_message", "updated_at", "completed_at")


class PostgresDeploymentRecordStore(DeploymentRecordStore):
    """PostgreSQL implementation of DeploymentRecordStore."""

    def __init__(self, database: DatabaseManager) -> None:
        self._database = database

    async def create(self, record: DeploymentRecord) -> str:
        async with self._database.session() as session:
            session.add(self._to_orm(record))
            await session.flush()
        return record.id

    async def update(self, record_id: str, patch: dict[str, Any]) -> None:
        values = self._patch_values(patch)
        async with self._database.session() as session:
            await session.execute(
                update(DeploymentRecordORM)
                .where(DeploymentRecordORM.id == record_id)
                .values(**values)
            )

    async def get_by_id(self, record_id: str) -> DeploymentRecord | None:
        async with self._database.session() as session:
            result = await session.execute(
                select(DeploymentRecordORM).where(DeploymentRecordORM.id == record_id)
            )
            orm = result.scalar_one_or_none()
        return self._to_domain(orm) if orm else None

    @staticmethod
    def _patch_values(patch: dict[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if "status" in patch:
            values["status"] = DeploymentStatus(patch["status"]).value
        for name in _SCALAR_FIELDS:
            if name in patch:
                values[name] = patch[name]
        for name in _JSON_FIELDS:
            if name in patch:
                values[name] = _jsonable(patch[name])
        return values

    def _to_orm(self, record: DeploymentRecord) -> DeploymentRecordORM:
        request = record.request
        data = record.model_dump(mode="json", include=set(_JSON_FIELDS))
        return DeploymentRecordORM(
            id=record.id,
            strategy=request.strategy.value,
            environment=request.environment.value,
            version=request.version,
            rollback_policy=request.rollback_policy.value,
            health_checks_enabled=request.health_checks_enabled,
            approval_required=request.approval_required,
            initiated_by=request.initiated_by,
            status=record.status.value,
            failed_phase=record.failed_phase,
            error_message=record.error_message,
            created_at=record.created_at,
            updated_at=record.updated_at,
            completed_at=record.completed_at,
            **data,
        )

    def _to_domain(self, orm: DeploymentRecordORM) -> DeploymentRecord:
        return DeploymentRecord(
            id=orm.id,
            request=DeploymentRequest(
                strategy=DeploymentStrategy(orm.strategy),
                environment=TargetEnvironment(orm.environment),
                version=orm.version,
                rollback_policy=RollbackPolicy(orm.rollback_policy),
                health_checks_enabled=orm.health_checks_enabled,
                approval_required=orm.approval_required,
                initiated_by=orm.initiated_by,
            ),
            status=DeploymentStatus(orm.status),
            preflight_report=(
                PreflightReport.model_validate(orm.preflight_report)
                if orm.preflight_report else None
            ),
            strategy_result=(
                StrategyResult.model_validate(orm.strategy_result)
                if orm.strategy_result else None
            ),
            rollback_plan=(
                RollbackPlan.model_validate(orm.rollback_plan) if orm.rollback_plan else None
            ),
            rollback_outcome=(
                RollbackOutcome.model_validate(orm.rollback_outcome)
                if orm.rollback_outcome else None
            ),
            failed_phase=orm.failed_phase or "",
            error_message=orm.error_message or "",
            created_at=orm.created_at,
            updated_at=orm.updated_at,
            completed_at=orm.completed_at,
        )


class PostgresDeploymentHistory(DeploymentHistory):
    """History backed by completed records in the record table."""

    def __init__(self, database: DatabaseManager) -> None:
        self._database = database

    async def exists(self, version: str, environment: TargetEnvironment) -> bool:
        async with self._database.session() as session:
            result = await session.execute(
                select(func.count()).select_from(DeploymentRecordORM).where(
                    DeploymentRecordORM.version == version,
                    DeploymentRecordORM.environment == environment.value,
                    DeploymentRecordORM.status == DeploymentStatus.COMPLETED.value,
                )
            )
            return result.scalar_one() > 0

    async def record(self, version: str, environment: TargetEnvironment) -> None:
        # The completed record written by the orchestrator is the history entry.
        return None


class PostgresAlertSink(AlertSink):
    """Persists critical alerts for the operator console."""

    def __init__(self, database: DatabaseManager) -> None:
        self._database = database

    async def raise_alert(self, alert: CriticalAlert) -> None:
        async with self._database.session() as session:
            session.add(AlertORM(**alert.model_dump()))


def _jsonable(value: Any) -> Any:
    """Patches carry python-mode dumps; JSON columns need plain values."""
    if value is None:
        return None
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if hasattr(value, "value"):
        return value.value
    return value
