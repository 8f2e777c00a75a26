"""OpenTelemetry tracing configuration and the Tracer port adapters."""

from __future__ import annotations

import itertools
from collections.abc import Container
from contextvars import ContextVar
from dataclasses import dataclass, field

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
)
from opentelemetry.semconv.resource import ResourceAttributes
from opentelemetry.trace import Status, StatusCode

from rollout_engine.config import ObservabilitySettings
from rollout_engine.domain.ports.services import Tracer


def setup_tracing(settings: ObservabilitySettings) -> None:
    """Configure OpenTelemetry tracing."""
    if not settings.tracing_enabled:
        return

    resource = Resource.create({
        ResourceAttributes.SERVICE_NAME: settings.service_name,
        ResourceAttributes.SERVICE_VERSION: "1.0.0",
    })

    provider = TracerProvider(resource=resource)

    # Console exporter for development
    console_exporter = ConsoleSpanExporter()
    provider.add_span_processor(BatchSpanProcessor(console_exporter))

    # OTLP exporter is an optional extra
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    except ImportError:
        pass

    trace.set_tracer_provider(provider)


def get_tracer(name: str = "rollout_engine") -> trace.Tracer:
    """Get a tracer instance."""
    return trace.get_tracer(name)


class SpanStack:
    """Span ids open in the current task, innermost last.

    Concurrent runs execute in separate tasks, so each sees only its own
    spans and nests new spans under its own innermost open one.
    """

    def __init__(self, name: str) -> None:
        self._open: ContextVar[tuple[str, ...]] = ContextVar(name, default=())

    def push(self, span_id: str) -> None:
        self._open.set((*self._open.get(), span_id))

    def remove(self, span_id: str) -> None:
        self._open.set(tuple(open_id for open_id in self._open.get() if open_id != span_id))

    def innermost(self, live: Container[str]) -> str | None:
        for span_id in reversed(self._open.get()):
            if span_id in live:
                return span_id
        return None


class OpenTelemetryTracer(Tracer):
    """Tracer port backed by OpenTelemetry spans, keyed by an opaque id."""

    def __init__(self, tracer: trace.Tracer | None = None) -> None:
        self._tracer = tracer or get_tracer()
        self._spans: dict[str, trace.Span] = {}
        self._ids = itertools.count(1)
        self._stack = SpanStack("otel_open_spans")

    def start_span(self, name: str) -> str:
        parent_id = self._stack.innermost(self._spans)
        context = (
            trace.set_span_in_context(self._spans[parent_id]) if parent_id is not None else None
        )
        span = self._tracer.start_span(name, context=context)
        span_id = f"{name}-{next(self._ids)}"
        self._spans[span_id] = span
        self._stack.push(span_id)
        return span_id

    def finish_span(
        self, span_id: str, outcome: str, error: BaseException | None = None
    ) -> None:
        span = self._spans.pop(span_id, None)
        self._stack.remove(span_id)
        if span is None:
            return
        span.set_attribute("rollout.outcome", outcome)
        if error is not None:
            span.record_exception(error)
            span.set_status(Status(StatusCode.ERROR, str(error)))
        else:
            span.set_status(Status(StatusCode.OK))
        span.end()


@dataclass
class RecordedSpan:
    name: str
    parent: str | None = None
    outcome: str | None = None
    error: str | None = None
    finished: bool = False


@dataclass
class InMemoryTracer(Tracer):
    """Tracer that keeps every span in memory, for tests."""

    spans: dict[str, RecordedSpan] = field(default_factory=dict)
    _stack: SpanStack = field(default_factory=lambda: SpanStack("in_memory_open_spans"), repr=False)

    def start_span(self, name: str) -> str:
        live = {span_id for span_id, span in self.spans.items() if not span.finished}
        span_id = f"{name}-{len(self.spans) + 1}"
        self.spans[span_id] = RecordedSpan(name=name, parent=self._stack.innermost(live))
        self._stack.push(span_id)
        return span_id

    def finish_span(
        self, span_id: str, outcome: str, error: BaseException | None = None
    ) -> None:
        self._stack.remove(span_id)
        span = self.spans[span_id]
        span.outcome = outcome
        span.error = str(error) if error is not None else None
        span.finished = True

    def named(self, name: str) -> list[RecordedSpan]:
        return [span for span in self.spans.values() if span.name == name]

    def clear(self) -> None:
        self.spans.clear()
        self._stack = SpanStack("in_memory_open_spans")
