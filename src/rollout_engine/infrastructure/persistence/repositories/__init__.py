"""Repository implementations."""

from rollout_engine.infrastructure.persistence.repositories.in_memory import (
    InMemoryAlertSink,
    InMemoryDeploymentHistory,
    InMemoryDeploymentRecordStore,
)
from rollout_engine.infrastructure.persistence.repositories.postgres import (
    PostgresAlertSink,
    PostgresDeploymentHistory,
    PostgresDeploymentRecordStore,
)


__all__ = [
    "InMemoryAlertSink",
    "InMemoryDeploymentHistory",
    "InMemoryDeploymentRecordStore",
    "PostgresAlertSink",
    "PostgresDeploymentHistory",
    "PostgresDeploymentRecordStore",
]
