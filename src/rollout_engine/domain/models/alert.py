"""Critical alert raised when a rollback cannot be completed."""

from __future__ import annotations

from pydantic import Field

from rollout_engine.domain.models.base import generate_id, ValueObject


class CriticalAlert(ValueObject):
    id: str = Field(default_factory=generate_id)
    deployment_id: str
    rule_name: str = "deployment_failure_critical"
    severity: str = "critical"
    title: str = "CRITICAL: Deployment and rollback failed"
    message: str
    original_error: str
    rollback_error: str
    status: str = "active"
