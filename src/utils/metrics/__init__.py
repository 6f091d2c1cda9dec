"""
Custom metrics publishing to Prometheus

This module provides utilities for publishing parity verification metrics
to Prometheus for monitoring and alerting.

Usage:
    from src.utils.metrics import MetricsPublisher, ParityMetrics

    # Initialize publisher
    metrics = MetricsPublisher(port=9091)
    metrics.start()

    # Record parity metrics
    parity_metrics = ParityMetrics()
    parity_metrics.record_endpoint("users", status="success", duration=4.2, rows_compared=1200)
    parity_metrics.record_differences("users", {"boolean_format": 3})
"""

import logging
from typing import Any, Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

from .parity import ParityMetrics
from .publisher import MetricsPublisher

logger = logging.getLogger(__name__)

# Type variable for metric types
T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Utility function for safe metric registration.

    Creates a new metric or returns the existing one if already registered,
    so that module reloads in tests do not fail on duplicate names.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)

    Example:
        DEGRADED_TOTAL = get_or_create_metric(
            lambda: Counter("degraded_total", "Degraded values", ["reason"]),
            "degraded_total"
        )
    """
    try:
        return metric_factory()
    except ValueError:
        # Metric already registered, get existing one
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        # If still not found, re-raise the original error
        raise


def initialize_metrics(
    port: int = 9091,
    registry: CollectorRegistry | None = None,
) -> dict[str, Any]:
    """
    Initialize parity metrics and start the metrics server

    Args:
        port: Port to expose metrics on (default: 9091)
        registry: Custom Prometheus registry (default: global REGISTRY)

    Returns:
        Dictionary containing:
        - publisher: MetricsPublisher
        - parity: ParityMetrics
    """
    logger.info(f"Initializing metrics on port {port}")

    publisher = MetricsPublisher(port=port, registry=registry)
    publisher.start()

    return {
        "publisher": publisher,
        "parity": ParityMetrics(registry=registry),
    }


__all__ = [
    "MetricsPublisher",
    "ParityMetrics",
    "initialize_metrics",
    "get_or_create_metric",
]
