"""
Context managers and utilities for span management.

Attribute values of primitive types (str, bool, int, float) are recorded
as-is; anything else is converted to its string form and None is skipped.
"""

from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

from .tracer import get_tracer


def _attribute_value(value: Any) -> str | bool | int | float:
    if isinstance(value, (str, bool, int, float)):
        return value
    return str(value)


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Context manager for tracing operations.

    Creates a span, records the attributes, marks the span as failed when
    the block raises, and re-raises.

    Args:
        operation_name: Name of the operation being traced
        kind: Span kind (INTERNAL, CLIENT, SERVER, etc.)
        **attributes: Custom attributes to add to the span

    Yields:
        Span instance for adding custom events/attributes

    Example:
        >>> with trace_operation("compare_endpoint", endpoint="users") as span:
        ...     result = compare(endpoint)
        ...     span.set_attribute("rows_compared", result.rows_compared)
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(operation_name, kind=kind) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, _attribute_value(value))

        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.set_attribute("error.message", str(e))
            span.record_exception(e)
            raise


def add_span_attributes(**attributes):
    """
    Add attributes to the current span, if one is recording.

    Example:
        >>> with trace_operation("fetch_rows"):
        ...     rows = cursor.fetchall()
        ...     add_span_attributes(row_count=len(rows))
    """
    current_span = trace.get_current_span()
    if current_span.is_recording():
        for key, value in attributes.items():
            if value is not None:
                current_span.set_attribute(key, _attribute_value(value))


def add_span_event(name: str, **attributes):
    """
    Add an event to the current span, if one is recording.

    Example:
        >>> with trace_operation("compare_endpoint"):
        ...     add_span_event("rows_aligned", count=len(rows))
    """
    current_span = trace.get_current_span()
    if current_span.is_recording():
        attrs = {
            k: _attribute_value(v) for k, v in attributes.items() if v is not None
        }
        current_span.add_event(name, attributes=attrs)
