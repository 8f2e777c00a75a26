"""Domain events package."""

from rollout_engine.domain.events.deployment_events import (
    DeploymentAccepted,
    DeploymentCompleted,
    DeploymentFailed,
    DeploymentRollbackFailed,
    DeploymentRolledBack,
)


__all__ = [
    "DeploymentAccepted",
    "DeploymentCompleted",
    "DeploymentFailed",
    "DeploymentRollbackFailed",
    "DeploymentRolledBack",
]
