"""
Distributed tracing using OpenTelemetry.

Spans cover:
- One endpoint comparison per span
- Each backend fetch (PostgreSQL, SQL Server, REST)
- Backend introspection at run start

Spans are exported over OTLP only when an endpoint is configured.
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "add_span_attributes",
    "add_span_event",
]
