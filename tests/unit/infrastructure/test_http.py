"""Unit tests for the HTTP effect adapters."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from rollout_engine.config import InfrastructureApiSettings
from rollout_engine.domain.models.deployment import DeploymentRequest, TargetEnvironment
from rollout_engine.infrastructure.effects.http import (
    HttpControlPlane,
    InfrastructureApiError,
    PrometheusMetricsProbe,
)


SETTINGS = InfrastructureApiSettings(
    control_plane_url="http://control-plane", metrics_url="http://prometheus"
)


def _client(handler: Callable[[httpx.Request], httpx.Response], base_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(handler))


class TestHttpControlPlane:
    @pytest.mark.asyncio
    async def test_reads_signals(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/environments/staging/health":
                return httpx.Response(200, json={"score": 88.5})
            if request.url.path == "/environments/staging/resources":
                return httpx.Response(200, json={"cpu": 40, "memory": 50, "storage": 60})
            return httpx.Response(404, json={"message": "not found"})

        plane = HttpControlPlane(SETTINGS, _client(handler, "http://control-plane"))
        assert await plane.health_score(TargetEnvironment.STAGING) == 88.5
        usage = await plane.resource_usage(TargetEnvironment.STAGING)
        assert usage.storage == 60

    @pytest.mark.asyncio
    async def test_shift_traffic_payload(
        self, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        plane = HttpControlPlane(SETTINGS, _client(handler, "http://control-plane"))
        await plane.shift_traffic(make_request(), "blue", "green", 25)

        assert seen[0].method == "POST"
        assert seen[0].url.path == "/environments/staging/traffic/shift"
        assert json.loads(seen[0].content) == {"source": "blue", "target": "green", "percentage": 25}

    @pytest.mark.asyncio
    async def test_error_status_raises(
        self, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"message": "router unavailable"})

        plane = HttpControlPlane(SETTINGS, _client(handler, "http://control-plane"))
        with pytest.raises(InfrastructureApiError) as exc_info:
            await plane.remove_canary(make_request())
        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "router unavailable"

    @pytest.mark.asyncio
    async def test_connection_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        plane = HttpControlPlane(SETTINGS, _client(handler, "http://control-plane"))
        with pytest.raises(InfrastructureApiError) as exc_info:
            await plane.active_slot(TargetEnvironment.PRODUCTION)
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_unreachable_dependency_is_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        plane = HttpControlPlane(SETTINGS, _client(handler, "http://control-plane"))
        assert await plane.dependency_reachable(TargetEnvironment.STAGING, "cache") is False


class TestPrometheusMetricsProbe:
    @pytest.mark.asyncio
    async def test_sample(self, make_request: Callable[..., DeploymentRequest]) -> None:
        queries: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            query = request.url.params["query"]
            queries.append(query)
            value = "0.8" if "http_requests_total" in query else "95.5"
            return httpx.Response(
                200, json={"data": {"result": [{"value": [1700000000, value]}]}}
            )

        probe = PrometheusMetricsProbe(SETTINGS, _client(handler, "http://prometheus"))
        sample = await probe.sample(make_request(), "canary")

        assert sample.error_rate == 0.8
        assert sample.latency_ms == 95.5
        assert all('track="canary"' in query for query in queries)

    @pytest.mark.asyncio
    async def test_empty_and_nan_results_are_zero(
        self, make_request: Callable[..., DeploymentRequest]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if "http_requests_total" in request.url.params["query"]:
                return httpx.Response(200, json={"data": {"result": []}})
            return httpx.Response(200, json={"data": {"result": [{"value": [0, "NaN"]}]}})

        probe = PrometheusMetricsProbe(SETTINGS, _client(handler, "http://prometheus"))
        sample = await probe.sample(make_request(), "canary")
        assert (sample.error_rate, sample.latency_ms) == (0.0, 0.0)
