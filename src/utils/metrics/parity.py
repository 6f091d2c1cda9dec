"""
Metrics for parity verification runs.

Tracks endpoint comparisons, differences by kind, and comparison
throughput for monitoring cross-backend data parity.
"""

import logging
import time
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)

logger = logging.getLogger(__name__)


class ParityMetrics:
    """
    Metrics for parity verification

    Tracks endpoint outcomes, differences, and performance.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize parity metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.endpoint_comparisons_total = Counter(
            "parity_endpoint_comparisons_total",
            "Total number of endpoint comparisons",
            ["endpoint", "mode", "status"],
            registry=self.registry,
        )

        self.endpoint_duration_seconds = Histogram(
            "parity_endpoint_duration_seconds",
            "Duration of one endpoint comparison in seconds",
            ["endpoint", "mode"],
            buckets=(0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600),
            registry=self.registry,
        )

        self.endpoint_last_run_timestamp = Gauge(
            "parity_endpoint_last_run_timestamp",
            "Timestamp of last endpoint comparison",
            ["endpoint", "mode"],
            registry=self.registry,
        )

        self.differences_total = Counter(
            "parity_differences_total",
            "Total number of field differences detected",
            ["endpoint", "kind"],
            registry=self.registry,
        )

        self.rows_compared_total = Counter(
            "parity_rows_compared_total",
            "Total number of rows compared",
            ["endpoint"],
            registry=self.registry,
        )

        self.comparison_rate = Gauge(
            "parity_comparison_rate_rows_per_second",
            "Rate of row comparison (rows/second)",
            ["endpoint"],
            registry=self.registry,
        )

    def record_endpoint(
        self,
        endpoint: str,
        status: str,
        duration: float,
        rows_compared: Optional[int] = None,
        mode: str = "database",
    ) -> None:
        """
        Record one endpoint comparison

        Args:
            endpoint: Logical endpoint name
            status: Endpoint status (success, different, error, ...)
            duration: Duration in seconds
            rows_compared: Number of rows compared (optional)
            mode: "database" or "api"
        """
        self.endpoint_comparisons_total.labels(
            endpoint=endpoint,
            mode=mode,
            status=status,
        ).inc()

        self.endpoint_duration_seconds.labels(
            endpoint=endpoint,
            mode=mode,
        ).observe(duration)

        self.endpoint_last_run_timestamp.labels(
            endpoint=endpoint,
            mode=mode,
        ).set(time.time())

        if rows_compared:
            self.rows_compared_total.labels(endpoint=endpoint).inc(rows_compared)

            if duration > 0:
                self.comparison_rate.labels(endpoint=endpoint).set(
                    rows_compared / duration
                )

        logger.debug(
            f"Recorded endpoint comparison: endpoint={endpoint}, mode={mode}, "
            f"status={status}, duration={duration:.2f}s, rows={rows_compared or 'N/A'}"
        )

    def record_differences(self, endpoint: str, counts: dict[str, int]) -> None:
        """
        Record field differences grouped by kind

        Args:
            endpoint: Logical endpoint name
            counts: Mapping of difference kind to count
        """
        for kind, count in counts.items():
            if count:
                self.differences_total.labels(endpoint=endpoint, kind=kind).inc(count)
