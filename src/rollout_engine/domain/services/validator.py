"""Validation and normalisation of incoming deployment requests."""

from __future__ import annotations

import re
from datetime import datetime

from rollout_engine.config import MaintenanceWindowSettings, RolloutSettings
from rollout_engine.domain.exceptions import (
    DuplicateVersion,
    InvalidEnvironment,
    InvalidRollbackPolicy,
    InvalidVersion,
    OutsideMaintenanceWindow,
    UnsupportedStrategyError,
)
from rollout_engine.domain.models.deployment import (
    DeploymentInput,
    DeploymentRequest,
    DeploymentStrategy,
    RollbackPolicy,
    TargetEnvironment,
)


VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+(-[\w.]+)?$")

_STRATEGIES = {strategy.value: strategy for strategy in DeploymentStrategy}
_ENVIRONMENTS = {environment.value: environment for environment in TargetEnvironment}
_POLICIES = {policy.value: policy for policy in RollbackPolicy}


def _normalise(value: str) -> str:
    return value.strip().lower().replace("-", "_")


def parse_environment(value: str) -> TargetEnvironment | None:
    """Known environment for a raw value, or None."""
    return _ENVIRONMENTS.get(_normalise(value))


def in_blocked_window(now: datetime, window: MaintenanceWindowSettings) -> bool:
    """Whether ``now`` falls in the production exclusion (hours are inclusive)."""
    if not window.enabled:
        return False
    return (
        now.weekday() in window.blocked_weekdays
        and window.start_hour <= now.hour <= window.end_hour
    )


class ConfigValidator:
    """Pure validator: the same input, time and lookup result give the same answer."""

    def __init__(self, settings: RolloutSettings) -> None:
        self._settings = settings

    def validate(
        self, raw: DeploymentInput, now: datetime, version_exists: bool
    ) -> DeploymentRequest:
        environment = parse_environment(raw.environment)
        if environment is None:
            raise InvalidEnvironment(
                f"Invalid environment: {raw.environment}",
                details={"allowed": sorted(_ENVIRONMENTS)},
            )

        version = raw.version.strip()
        if not VERSION_PATTERN.match(version):
            raise InvalidVersion(f"Invalid version format: {raw.version}")

        policy_value = raw.rollback_strategy or self._settings.default_rollback_policy
        policy = _POLICIES.get(_normalise(policy_value))
        if policy is None:
            raise InvalidRollbackPolicy(f"Invalid rollback strategy: {policy_value}")

        strategy = _STRATEGIES.get(_normalise(raw.deployment_type))
        if strategy is None:
            raise UnsupportedStrategyError(
                f"Unsupported deployment type: {raw.deployment_type}",
                details={"supported": sorted(_STRATEGIES)},
            )

        if version_exists:
            raise DuplicateVersion(
                f"Version {version} already deployed to {environment.value}"
            )

        if environment is TargetEnvironment.PRODUCTION:
            self._check_window(strategy, now)

        health_checks = raw.health_checks
        if health_checks is None:
            health_checks = self._settings.health_checks_enabled

        return DeploymentRequest(
            strategy=strategy,
            environment=environment,
            version=version,
            rollback_policy=policy,
            health_checks_enabled=health_checks,
            approval_required=raw.approval_required,
            initiated_by=raw.initiated_by,
        )

    def _check_window(self, strategy: DeploymentStrategy, now: datetime) -> None:
        window = self._settings.maintenance_window
        if strategy is DeploymentStrategy.HOTFIX and window.hotfix_bypass:
            return
        if in_blocked_window(now, window):
            raise OutsideMaintenanceWindow(
                "Deployment blocked: outside maintenance window (peak business hours)",
                details={"now": now.isoformat()},
            )
