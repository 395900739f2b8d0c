import hashlib
from unittest.mock import patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from dal.tracing import hash_sql, trace_enabled, trace_query_operation


def _provider_with_exporter():
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider, exporter


def test_trace_enabled_defaults_true_when_otel_exporter_configured(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """DAL tracing should default to enabled when OTEL exporter is configured."""
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    monkeypatch.delenv("DAL_TRACE_QUERIES", raising=False)

    assert trace_enabled() is True


def test_trace_enabled_respects_explicit_false_override(monkeypatch: pytest.MonkeyPatch) -> None:
    """Explicit DAL_TRACE_QUERIES=false should disable tracing despite exporter config."""
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://otel-collector:4317")
    monkeypatch.setenv("DAL_TRACE_QUERIES", "false")

    assert trace_enabled() is False


def test_hash_sql_is_sha256():
    """Statements are hashed, never recorded verbatim."""
    assert hash_sql("select 1") == hashlib.sha256(b"select 1").hexdigest()


@pytest.mark.asyncio
async def test_trace_disabled_runs_operation_without_span(monkeypatch: pytest.MonkeyPatch) -> None:
    """With tracing off the operation is simply awaited."""
    monkeypatch.setenv("DAL_TRACE_QUERIES", "false")
    provider, exporter = _provider_with_exporter()

    async def _operation() -> str:
        return "rows"

    with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
        mock_get_tracer.side_effect = lambda name: provider.get_tracer(name)
        result = await trace_query_operation(
            "dal.query.execute", provider="mysql", sql="select 1", operation=_operation()
        )

    assert result == "rows"
    assert exporter.get_finished_spans() == ()


@pytest.mark.asyncio
async def test_trace_execute_span(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure query tracing emits a span with hashed SQL."""
    monkeypatch.setenv("DAL_TRACE_QUERIES", "true")
    provider, exporter = _provider_with_exporter()

    async def _operation() -> str:
        return "OK"

    with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
        mock_get_tracer.side_effect = lambda name: provider.get_tracer(name)
        result = await trace_query_operation(
            "dal.query.execute", provider="postgres", sql="select 1", operation=_operation()
        )

    assert result == "OK"
    spans = exporter.get_finished_spans()
    assert len(spans) == 1
    span = spans[0]
    assert span.name == "dal.query.execute"
    assert span.attributes["db.provider"] == "postgres"
    assert span.attributes["db.statement_hash"] == hash_sql("select 1")
    assert span.attributes["db.status"] == "ok"
    assert "db.statement" not in span.attributes


@pytest.mark.asyncio
async def test_trace_marks_error_status(monkeypatch: pytest.MonkeyPatch) -> None:
    """Failures propagate and the span records an error status."""
    monkeypatch.setenv("DAL_TRACE_QUERIES", "true")
    provider, exporter = _provider_with_exporter()

    async def _operation():
        raise RuntimeError("relation does not exist")

    with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
        mock_get_tracer.side_effect = lambda name: provider.get_tracer(name)
        with pytest.raises(RuntimeError, match="relation does not exist"):
            await trace_query_operation(
                "dal.query.execute", provider="postgres", sql="select x", operation=_operation()
            )

    (span,) = exporter.get_finished_spans()
    assert span.attributes["db.status"] == "error"


@pytest.mark.asyncio
async def test_trace_query_with_request_id(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure request_id is attached to DAL spans when present in context."""
    from common.observability.context import request_id_var

    monkeypatch.setenv("DAL_TRACE_QUERIES", "true")
    token = request_id_var.set("req-abc-123")

    try:
        provider, exporter = _provider_with_exporter()

        async def _op():
            return "ok"

        with patch("opentelemetry.trace.get_tracer") as mock_get_tracer:
            mock_get_tracer.side_effect = lambda name: provider.get_tracer(name)
            await trace_query_operation("test", provider="mysql", sql="sql", operation=_op())

        spans = exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].attributes["request_id"] == "req-abc-123"

    finally:
        request_id_var.reset(token)
