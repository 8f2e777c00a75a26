"""HTTP effect adapters using httpx.

``HttpControlPlane`` drives an infrastructure control-plane REST API for
every environment-mutating action and readiness signal.
``PrometheusMetricsProbe`` derives error rate and latency from a
Prometheus-compatible query API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx
import structlog

from rollout_engine.config import InfrastructureApiSettings
from rollout_engine.domain.models.deployment import DeploymentRequest, TargetEnvironment
from rollout_engine.domain.models.signals import (
    BackupStatus,
    HealthStatus,
    MetricsSample,
    ResourceUsage,
    SecurityPosture,
)
from rollout_engine.domain.ports.effects import (
    HealthProbe,
    InfrastructureSignals,
    InstanceManager,
    MetricsProbe,
    TrafficRouter,
)


logger = structlog.get_logger(__name__)


class InfrastructureApiError(Exception):
    """An infrastructure API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class _ApiClient:
    """Shared request handling for the HTTP adapters."""

    def __init__(self, base_url: str, timeout: float, client: httpx.AsyncClient | None) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
            logger.debug("http_client_created", base_url=self._base_url)
        return self._client

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            try:
                message = e.response.json().get("message", str(e))
            except ValueError:
                message = e.response.text or str(e)
            raise InfrastructureApiError(message, status_code=status_code) from e
        except httpx.RequestError as e:
            raise InfrastructureApiError(f"Request failed: {e}") from e

        if response.content:
            return response.json()
        return None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class HttpControlPlane(
    _ApiClient, InfrastructureSignals, InstanceManager, TrafficRouter, HealthProbe
):
    """Control-plane REST client implementing the mutating and probing ports."""

    def __init__(
        self, settings: InfrastructureApiSettings, client: httpx.AsyncClient | None = None
    ) -> None:
        super().__init__(settings.control_plane_url, settings.request_timeout, client)

    @staticmethod
    def _env(environment: TargetEnvironment) -> str:
        return f"/environments/{environment.value}"

    @staticmethod
    def _status(data: dict[str, Any]) -> HealthStatus:
        return HealthStatus(healthy=bool(data.get("healthy")), detail=data.get("detail", ""))

    # InfrastructureSignals

    async def health_score(self, environment: TargetEnvironment) -> float:
        data = await self._request("GET", f"{self._env(environment)}/health")
        return float(data["score"])

    async def resource_usage(self, environment: TargetEnvironment) -> ResourceUsage:
        data = await self._request("GET", f"{self._env(environment)}/resources")
        return ResourceUsage.model_validate(data)

    async def dependency_reachable(self, environment: TargetEnvironment, name: str) -> bool:
        try:
            data = await self._request("GET", f"{self._env(environment)}/dependencies/{name}")
        except InfrastructureApiError as e:
            logger.warning("dependency_probe_failed", dependency=name, error=str(e))
            return False
        return bool(data.get("reachable"))

    async def security_posture(self, environment: TargetEnvironment) -> SecurityPosture:
        data = await self._request("GET", f"{self._env(environment)}/security")
        return SecurityPosture.model_validate(data)

    async def backup_status(self, environment: TargetEnvironment) -> BackupStatus:
        data = await self._request("GET", f"{self._env(environment)}/backups/latest")
        return BackupStatus(last_backup_at=datetime.fromisoformat(data["last_backup_at"]))

    # InstanceManager

    async def active_slot(self, environment: TargetEnvironment) -> str:
        data = await self._request("GET", f"{self._env(environment)}/slots/active")
        return data["slot"]

    async def deploy_to_slot(self, request: DeploymentRequest, slot: str) -> None:
        await self._request(
            "POST",
            f"{self._env(request.environment)}/slots/{slot}/deploy",
            json={"version": request.version},
        )

    async def list_instances(self, environment: TargetEnvironment) -> list[str]:
        data = await self._request("GET", f"{self._env(environment)}/instances")
        return list(data.get("instances", []))

    async def update_instances(self, request: DeploymentRequest, instances: list[str]) -> None:
        await self._request(
            "POST",
            f"{self._env(request.environment)}/instances/update",
            json={"version": request.version, "instances": instances},
        )

    async def deploy_direct(self, request: DeploymentRequest) -> None:
        await self._request(
            "POST", f"{self._env(request.environment)}/deploy", json={"version": request.version}
        )

    async def rollback_instances(self, request: DeploymentRequest) -> None:
        await self._request(
            "POST",
            f"{self._env(request.environment)}/instances/rollback",
            json={"version": request.version},
        )

    async def rollback_release(self, request: DeploymentRequest) -> None:
        await self._request(
            "POST",
            f"{self._env(request.environment)}/releases/rollback",
            json={"version": request.version},
        )

    # TrafficRouter

    async def shift_traffic(
        self, request: DeploymentRequest, source: str, target: str, percentage: int
    ) -> None:
        await self._request(
            "POST",
            f"{self._env(request.environment)}/traffic/shift",
            json={"source": source, "target": target, "percentage": percentage},
        )

    async def complete_cutover(self, request: DeploymentRequest, slot: str) -> None:
        await self._request(
            "POST", f"{self._env(request.environment)}/traffic/cutover", json={"slot": slot}
        )

    async def set_canary_weight(self, request: DeploymentRequest, percentage: int) -> None:
        await self._request(
            "PUT",
            f"{self._env(request.environment)}/canary",
            json={"version": request.version, "weight": percentage},
        )

    async def remove_canary(self, request: DeploymentRequest) -> None:
        await self._request("DELETE", f"{self._env(request.environment)}/canary")

    # HealthProbe

    async def smoke_test(self, request: DeploymentRequest, slot: str) -> HealthStatus:
        data = await self._request(
            "POST", f"{self._env(request.environment)}/slots/{slot}/smoke-test"
        )
        return self._status(data)

    async def check_slot(self, request: DeploymentRequest, slot: str) -> HealthStatus:
        data = await self._request("GET", f"{self._env(request.environment)}/slots/{slot}/health")
        return self._status(data)

    async def check_instances(
        self, request: DeploymentRequest, instances: list[str]
    ) -> HealthStatus:
        data = await self._request(
            "POST",
            f"{self._env(request.environment)}/instances/health",
            json={"instances": instances},
        )
        return self._status(data)

    async def check_environment(self, request: DeploymentRequest) -> HealthStatus:
        data = await self._request("GET", f"{self._env(request.environment)}/health/check")
        return self._status(data)


ERROR_RATE_QUERY = (
    '100 * sum(rate(http_requests_total{{{selector},code=~"5.."}}[5m]))'
    " / sum(rate(http_requests_total{{{selector}}}[5m]))"
)
LATENCY_QUERY = (
    "1000 * histogram_quantile(0.95, "
    "sum(rate(http_request_duration_seconds_bucket{{{selector}}}[5m])) by (le))"
)


class PrometheusMetricsProbe(_ApiClient, MetricsProbe):
    """Samples error rate and p95 latency through the Prometheus query API."""

    def __init__(
        self, settings: InfrastructureApiSettings, client: httpx.AsyncClient | None = None
    ) -> None:
        super().__init__(settings.metrics_url, settings.request_timeout, client)
        self._service_label = settings.service_label

    async def sample(self, request: DeploymentRequest, scope: str) -> MetricsSample:
        selector = (
            f'{self._service_label}="{request.version}",'
            f'environment="{request.environment.value}",track="{scope}"'
        )
        error_rate = await self._query(ERROR_RATE_QUERY.format(selector=selector))
        latency = await self._query(LATENCY_QUERY.format(selector=selector))
        return MetricsSample(error_rate=error_rate, latency_ms=latency)

    async def _query(self, promql: str) -> float:
        data = await self._request("GET", "/api/v1/query", params={"query": promql})
        results = data.get("data", {}).get("result", [])
        if not results:
            return 0.0
        value = float(results[0]["value"][1])
        # NaN when the window saw no traffic
        return 0.0 if value != value else value
