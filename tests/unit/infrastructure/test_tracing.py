"""Unit tests for the tracer adapters."""

from __future__ import annotations

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from rollout_engine.infrastructure.observability.tracing import InMemoryTracer, OpenTelemetryTracer


def _otel() -> tuple[OpenTelemetryTracer, InMemorySpanExporter]:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return OpenTelemetryTracer(provider.get_tracer("test")), exporter


class TestOpenTelemetryTracer:
    def test_success_span(self) -> None:
        tracer, exporter = _otel()
        span_id = tracer.start_span("preflight")
        tracer.finish_span(span_id, "success")

        (span,) = exporter.get_finished_spans()
        assert span.name == "preflight"
        assert span.attributes["rollout.outcome"] == "success"
        assert span.status.status_code == StatusCode.OK

    def test_error_span_records_exception(self) -> None:
        tracer, exporter = _otel()
        span_id = tracer.start_span("rollback")
        tracer.finish_span(span_id, "error", RuntimeError("router down"))

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.events[0].name == "exception"

    def test_unknown_span_id_is_ignored(self) -> None:
        tracer, exporter = _otel()
        tracer.finish_span("missing-1", "success")
        assert exporter.get_finished_spans() == ()

    def test_spans_nest_under_the_innermost_open_span(self) -> None:
        tracer, exporter = _otel()
        root = tracer.start_span("deployment_orchestration")
        validation = tracer.start_span("config_validation")
        tracer.finish_span(validation, "success")
        strategy = tracer.start_span("canary_deployment")
        phase = tracer.start_span("canary.canary_5")
        tracer.finish_span(phase, "success")
        tracer.finish_span(strategy, "success")
        tracer.finish_span(root, "success")

        spans = {span.name: span for span in exporter.get_finished_spans()}
        root_span = spans["deployment_orchestration"]
        assert root_span.parent is None
        assert spans["config_validation"].parent.span_id == root_span.context.span_id
        assert spans["canary_deployment"].parent.span_id == root_span.context.span_id
        assert spans["canary.canary_5"].parent.span_id == spans["canary_deployment"].context.span_id
        assert len({span.context.trace_id for span in spans.values()}) == 1


class TestInMemoryTracer:
    def test_records_outcome(self) -> None:
        tracer = InMemoryTracer()
        first = tracer.start_span("canary.canary_5")
        tracer.start_span("canary.canary_25")
        tracer.finish_span(first, "error", ValueError("metrics failed"))

        (span,) = tracer.named("canary.canary_5")
        assert span.finished
        assert span.outcome == "error"
        assert span.error == "metrics failed"
        assert not tracer.named("canary.canary_25")[0].finished

    def test_records_parent_of_each_span(self) -> None:
        tracer = InMemoryTracer()
        root = tracer.start_span("deployment_orchestration")
        first = tracer.start_span("preflight")
        tracer.finish_span(first, "success")
        tracer.start_span("rollback")

        assert tracer.named("deployment_orchestration")[0].parent is None
        assert tracer.named("preflight")[0].parent == root
        assert tracer.named("rollback")[0].parent == root
