"""
Unit tests for src/utils/tracing

Tests verify:
- Tracer initialization is idempotent and does not touch the global provider
- trace_operation records attributes and failures
- Span helpers are no-ops outside a recording span
"""

import pytest
from unittest.mock import patch
from opentelemetry import trace
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from src.utils.tracing import (
    add_span_attributes,
    add_span_event,
    get_tracer,
    initialize_tracing,
    shutdown_tracing,
    trace_operation,
)
from src.utils.tracing import tracer as tracer_module


@pytest.fixture
def exporter():
    shutdown_tracing()
    initialize_tracing(service_name="parity-test")
    memory = InMemorySpanExporter()
    tracer_module._provider.add_span_processor(SimpleSpanProcessor(memory))
    yield memory
    shutdown_tracing()


class TestInitializeTracing:
    """Test tracer lifecycle"""

    def test_idempotent(self):
        shutdown_tracing()
        try:
            first = initialize_tracing()
            assert initialize_tracing() is first
            assert get_tracer() is first
        finally:
            shutdown_tracing()

    def test_global_provider_is_untouched(self):
        before = trace.get_tracer_provider()
        shutdown_tracing()
        try:
            initialize_tracing()
            assert trace.get_tracer_provider() is before
        finally:
            shutdown_tracing()

    @patch('src.utils.tracing.tracer.OTLPSpanExporter')
    def test_otlp_only_with_endpoint(self, mock_exporter, monkeypatch):
        monkeypatch.delenv("OTLP_ENDPOINT", raising=False)
        shutdown_tracing()
        try:
            initialize_tracing()
            mock_exporter.assert_not_called()
        finally:
            shutdown_tracing()

    def test_shutdown_without_init(self):
        shutdown_tracing()
        shutdown_tracing()


class TestTraceOperation:
    """Test trace_operation"""

    def test_attributes_and_events(self, exporter):
        with trace_operation("compare_endpoint", endpoint="users", rows=None, limit=2.5):
            add_span_attributes(rows_compared=12, columns=["a", "b"])
            add_span_event("rows_fetched", count_a=12, count_b=12)

        (span,) = exporter.get_finished_spans()
        assert span.name == "compare_endpoint"
        assert span.attributes["endpoint"] == "users"
        assert span.attributes["limit"] == 2.5
        assert "rows" not in span.attributes
        assert span.attributes["rows_compared"] == 12
        assert span.attributes["columns"] == "['a', 'b']"
        assert span.events[0].name == "rows_fetched"
        assert span.events[0].attributes["count_a"] == 12

    def test_failure_is_recorded_and_reraised(self, exporter):
        with pytest.raises(ValueError):
            with trace_operation("fetch_rows", backend="mssql"):
                raise ValueError("Invalid object name")

        (span,) = exporter.get_finished_spans()
        assert span.attributes["error"] is True
        assert span.attributes["error.type"] == "ValueError"
        assert span.attributes["error.message"] == "Invalid object name"

    def test_helpers_outside_span(self):
        add_span_attributes(endpoint="users")
        add_span_event("ignored")
