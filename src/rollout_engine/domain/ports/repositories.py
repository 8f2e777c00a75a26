"""Repository port interfaces (hexagonal architecture)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from rollout_engine.domain.models.deployment import DeploymentRecord, TargetEnvironment


class DeploymentRecordStore(ABC):
    """Port for the append-only deployment record store."""

    @abstractmethod
    async def create(self, record: DeploymentRecord) -> str:
        """Persist a new record and return its id."""

    @abstractmethod
    async def update(self, record_id: str, patch: dict[str, Any]) -> None:
        """Apply a partial update to an existing record."""

    @abstractmethod
    async def get_by_id(self, record_id: str) -> DeploymentRecord | None:
        """Retrieve a record by id."""


class DeploymentHistory(ABC):
    """Port for the (version, environment) idempotency lookup."""

    @abstractmethod
    async def exists(self, version: str, environment: TargetEnvironment) -> bool:
        """Whether this version already reached this environment."""

    @abstractmethod
    async def record(self, version: str, environment: TargetEnvironment) -> None:
        """Remember a version that completed in an environment."""
