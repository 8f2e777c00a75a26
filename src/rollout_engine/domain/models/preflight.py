"""Preflight check results."""

from __future__ import annotations

from pydantic import computed_field, Field

from rollout_engine.domain.models.base import ValueObject


class CheckResult(ValueObject):
    """Outcome of a single readiness probe."""

    name: str
    critical: bool
    passed: bool
    detail: str = ""
    duration: float = 0.0


class PreflightReport(ValueObject):
    """Aggregate of every preflight check in one run."""

    results: list[CheckResult] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_passed(self) -> bool:
        return all(result.passed for result in self.results)

    @property
    def failures(self) -> list[CheckResult]:
        return [result for result in self.results if not result.passed]

    @property
    def failure_detail(self) -> str:
        """Every failing check's detail, in check order."""
        return "; ".join(f"{result.name}: {result.detail}" for result in self.failures)
