"""Concurrent readiness checks run before any deployment mutation."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from rollout_engine.config import PreflightSettings
from rollout_engine.domain.models.deployment import DeploymentRequest
from rollout_engine.domain.models.preflight import CheckResult, PreflightReport
from rollout_engine.domain.ports.effects import Clock, InfrastructureSignals
from rollout_engine.infrastructure.observability.metrics import PREFLIGHT_CHECKS_TOTAL


logger = structlog.get_logger(__name__)

# A check returns (passed, detail).
CheckFn = Callable[[DeploymentRequest], Awaitable[tuple[bool, str]]]


class PreflightCheckRunner:
    """Runs every check to completion, then reports all failures together."""

    def __init__(
        self,
        signals: InfrastructureSignals,
        clock: Clock,
        settings: PreflightSettings,
    ) -> None:
        self._signals = signals
        self._clock = clock
        self._settings = settings
        self._checks: list[tuple[str, bool, CheckFn]] = [
            ("system_health", True, self._check_system_health),
            ("resource_headroom", True, self._check_resources),
            ("dependency_reachability", True, self._check_dependencies),
            ("security_compliance", True, self._check_security),
            ("backup_freshness", False, self._check_backup),
        ]

    async def run(self, request: DeploymentRequest) -> PreflightReport:
        results = await asyncio.gather(*(
            self._run_check(name, critical, check, request)
            for name, critical, check in self._checks
        ))
        report = PreflightReport(results=list(results))

        logger.info(
            "preflight_completed",
            environment=request.environment.value,
            all_passed=report.all_passed,
            failed=[result.name for result in report.failures],
        )
        return report

    async def _run_check(
        self, name: str, critical: bool, check: CheckFn, request: DeploymentRequest
    ) -> CheckResult:
        """Run one check under its timeout. Never raises, so siblings are unaffected."""
        started = self._clock.monotonic()
        timeout = self._settings.check_timeout_seconds
        try:
            passed, detail = await asyncio.wait_for(check(request), timeout=timeout)
        except asyncio.TimeoutError:
            passed, detail = False, f"timed out after {timeout:g}s"
        except Exception as e:
            passed, detail = False, f"probe error: {e}"

        result = CheckResult(
            name=name,
            critical=critical,
            passed=passed,
            detail=detail,
            duration=self._clock.monotonic() - started,
        )
        PREFLIGHT_CHECKS_TOTAL.labels(
            check=name, result="passed" if passed else "failed"
        ).inc()
        if not passed:
            logger.warning("preflight_check_failed", check=name, critical=critical, detail=detail)
        return result

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def _check_system_health(self, request: DeploymentRequest) -> tuple[bool, str]:
        score = await self._signals.health_score(request.environment)
        threshold = self._settings.min_health_score
        if score < threshold:
            return False, f"System health below threshold: {score:.1f}% < {threshold:g}%"
        return True, f"health score {score:.1f}%"

    async def _check_resources(self, request: DeploymentRequest) -> tuple[bool, str]:
        usage = await self._signals.resource_usage(request.environment)
        limits = {
            "cpu": (usage.cpu, self._settings.max_cpu_percent),
            "memory": (usage.memory, self._settings.max_memory_percent),
            "storage": (usage.storage, self._settings.max_storage_percent),
        }
        breaches = [
            f"Insufficient {resource}: {used:.1f}% > {limit:g}%"
            for resource, (used, limit) in limits.items()
            if used > limit
        ]
        if breaches:
            return False, ", ".join(breaches)
        return True, "cpu {:.1f}%, memory {:.1f}%, storage {:.1f}%".format(
            usage.cpu, usage.memory, usage.storage
        )

    async def _check_dependencies(self, request: DeploymentRequest) -> tuple[bool, str]:
        names = self._settings.dependencies
        reachable = await asyncio.gather(*(
            self._signals.dependency_reachable(request.environment, name) for name in names
        ))
        unreachable = [name for name, ok in zip(names, reachable) if not ok]
        if len(unreachable) > self._settings.dependency_failure_tolerance:
            return False, f"Dependency checks failed: {', '.join(unreachable)}"
        return True, f"{len(names) - len(unreachable)}/{len(names)} dependencies reachable"

    async def _check_security(self, request: DeploymentRequest) -> tuple[bool, str]:
        posture = await self._signals.security_posture(request.environment)
        problems: list[str] = []
        if posture.vulnerabilities > 0:
            problems.append(f"{posture.vulnerabilities} security vulnerabilities detected")
        if not posture.secrets_rotation_ok:
            problems.append("Secrets rotation compliance failed")
        if not posture.access_controls_ok:
            problems.append("Access control validation failed")
        if problems:
            return False, ", ".join(problems)
        return True, "compliant"

    async def _check_backup(self, request: DeploymentRequest) -> tuple[bool, str]:
        status = await self._signals.backup_status(request.environment)
        age_hours = (self._clock.now() - status.last_backup_at).total_seconds() / 3600
        if age_hours >= self._settings.max_backup_age_hours:
            return False, f"Backup too old: {int(age_hours)} hours"
        return True, f"last backup {age_hours:.1f} hours ago"
