"""Unit tests for in-memory repository implementations."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from rollout_engine.domain.models.alert import CriticalAlert
from rollout_engine.domain.models.deployment import (
    DeploymentRecord,
    DeploymentRequest,
    DeploymentStatus,
    TargetEnvironment,
)
from rollout_engine.infrastructure.persistence.repositories.in_memory import (
    InMemoryAlertSink,
    InMemoryDeploymentHistory,
    InMemoryDeploymentRecordStore,
    RecordNotFoundError,
)


class TestInMemoryDeploymentRecordStore:
    @pytest.mark.asyncio
    async def test_create_and_get(self, make_request: Callable[..., DeploymentRequest]) -> None:
        store = InMemoryDeploymentRecordStore()
        record = DeploymentRecord.accept("d-1", make_request())
        await store.create(record)

        stored = await store.get_by_id("d-1")
        assert stored is not None
        assert stored.status == DeploymentStatus.PENDING
        assert stored is not record

    @pytest.mark.asyncio
    async def test_get_nonexistent(self) -> None:
        assert await InMemoryDeploymentRecordStore().get_by_id("nope") is None

    @pytest.mark.asyncio
    async def test_update_applies_patch(
        self, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        store = InMemoryDeploymentRecordStore()
        record = DeploymentRecord.accept("d-1", make_request())
        await store.create(record)

        record.start_preflight()
        await store.update("d-1", record.to_patch())

        stored = await store.get_by_id("d-1")
        assert stored is not None
        assert stored.status == DeploymentStatus.PREFLIGHT
        assert [patch["status"] for patch in store.writes_for("d-1")] == [
            DeploymentStatus.PENDING, DeploymentStatus.PREFLIGHT,
        ]

    @pytest.mark.asyncio
    async def test_update_unknown_record(self) -> None:
        with pytest.raises(RecordNotFoundError):
            await InMemoryDeploymentRecordStore().update("nope", {"status": "failed"})

    @pytest.mark.asyncio
    async def test_store_is_shared_across_instances(
        self, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        await InMemoryDeploymentRecordStore().create(DeploymentRecord.accept("d-1", make_request()))
        assert await InMemoryDeploymentRecordStore().get_by_id("d-1") is not None


class TestInMemoryDeploymentHistory:
    @pytest.mark.asyncio
    async def test_keyed_by_version_and_environment(self) -> None:
        history = InMemoryDeploymentHistory()
        await history.record("3.0.0", TargetEnvironment.STAGING)
        assert await history.exists("3.0.0", TargetEnvironment.STAGING)
        assert not await history.exists("3.0.0", TargetEnvironment.PRODUCTION)
        assert not await history.exists("3.0.1", TargetEnvironment.STAGING)


class TestInMemoryAlertSink:
    @pytest.mark.asyncio
    async def test_raise_alert(self) -> None:
        sink = InMemoryAlertSink()
        await sink.raise_alert(CriticalAlert(
            deployment_id="d-1",
            message="both failed",
            original_error="slot unavailable",
            rollback_error="router down",
        ))
        assert len(sink.alerts) == 1
        assert sink.alerts[0].status == "active"
