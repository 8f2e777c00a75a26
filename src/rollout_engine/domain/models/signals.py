"""Read-only signals returned by infrastructure probes."""

from __future__ import annotations

from datetime import datetime

from rollout_engine.domain.models.base import ValueObject


class ResourceUsage(ValueObject):
    """Percent of capacity in use."""

    cpu: float
    memory: float
    storage: float


class SecurityPosture(ValueObject):
    vulnerabilities: int = 0
    secrets_rotation_ok: bool = True
    access_controls_ok: bool = True


class BackupStatus(ValueObject):
    last_backup_at: datetime


class HealthStatus(ValueObject):
    healthy: bool
    detail: str = ""


class MetricsSample(ValueObject):
    """Derived traffic metrics. Error rate is a percentage."""

    error_rate: float
    latency_ms: float
