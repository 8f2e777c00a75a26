"""Unit tests for middleware components."""

from __future__ import annotations

import structlog
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rollout_engine.api.middleware.correlation import (
    CORRELATION_HEADER,
    CorrelationIdMiddleware,
    correlation_id_ctx,
    get_correlation_id,
)


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/context")
    async def context() -> dict:
        return {
            "bound": structlog.contextvars.get_contextvars().get("correlation_id"),
            "ctx": get_correlation_id(),
        }

    return app


class TestCorrelationId:
    def test_default_empty(self) -> None:
        token = correlation_id_ctx.set("")
        assert get_correlation_id() == ""
        correlation_id_ctx.reset(token)

    def test_set_and_get(self) -> None:
        token = correlation_id_ctx.set("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"
        correlation_id_ctx.reset(token)


class TestCorrelationIdMiddleware:
    def test_propagates_header_into_log_context(self) -> None:
        client = TestClient(_app())
        response = client.get("/context", headers={CORRELATION_HEADER: "corr-42"})
        assert response.headers[CORRELATION_HEADER] == "corr-42"
        assert response.json() == {"bound": "corr-42", "ctx": "corr-42"}

    def test_generates_id_when_missing(self) -> None:
        client = TestClient(_app())
        response = client.get("/context")
        generated = response.headers[CORRELATION_HEADER]
        assert generated
