"""In-memory repository implementations for development and testing."""

from __future__ import annotations

from typing import Any

from rollout_engine.domain.models.alert import CriticalAlert
from rollout_engine.domain.models.deployment import DeploymentRecord, TargetEnvironment
from rollout_engine.domain.ports.repositories import DeploymentHistory, DeploymentRecordStore
from rollout_engine.domain.ports.services import AlertSink


# Module-level shared stores enable cross-instance access in the demo API
# while keeping a single clear point for test isolation.
_record_store: dict[str, DeploymentRecord] = {}
_record_writes: list[tuple[str, dict[str, Any]]] = []
_history_store: set[tuple[str, str]] = set()
_alert_store: list[CriticalAlert] = []


class RecordNotFoundError(Exception):
    """Raised when updating a record that was never created."""


class InMemoryDeploymentRecordStore(DeploymentRecordStore):
    """In-memory record store for testing and demo use."""

    def __init__(self) -> None:
        self._store = _record_store
        self._writes = _record_writes

    async def create(self, record: DeploymentRecord) -> str:
        self._store[record.id] = record.model_copy(deep=True)
        self._writes.append((record.id, {"status": record.status}))
        return record.id

    async def update(self, record_id: str, patch: dict[str, Any]) -> None:
        current = self._store.get(record_id)
        if current is None:
            raise RecordNotFoundError(f"Deployment record {record_id} not found")
        merged = {**current.model_dump(), **patch}
        self._store[record_id] = DeploymentRecord.model_validate(merged)
        self._writes.append((record_id, dict(patch)))

    async def get_by_id(self, record_id: str) -> DeploymentRecord | None:
        return self._store.get(record_id)

    def writes_for(self, record_id: str) -> list[dict[str, Any]]:
        """Every create/update applied to a record, in order."""
        return [patch for rid, patch in self._writes if rid == record_id]

    @classmethod
    def clear(cls) -> None:
        """Clear the shared store. Used by test fixtures for isolation."""
        _record_store.clear()
        _record_writes.clear()


class InMemoryDeploymentHistory(DeploymentHistory):
    """In-memory (version, environment) history."""

    def __init__(self) -> None:
        self._store = _history_store

    async def exists(self, version: str, environment: TargetEnvironment) -> bool:
        return (version, environment.value) in self._store

    async def record(self, version: str, environment: TargetEnvironment) -> None:
        self._store.add((version, environment.value))

    @classmethod
    def clear(cls) -> None:
        _history_store.clear()


class InMemoryAlertSink(AlertSink):
    """Keeps raised alerts in memory."""

    def __init__(self) -> None:
        self._store = _alert_store

    async def raise_alert(self, alert: CriticalAlert) -> None:
        self._store.append(alert)

    @property
    def alerts(self) -> list[CriticalAlert]:
        return list(self._store)

    @classmethod
    def clear(cls) -> None:
        _alert_store.clear()
