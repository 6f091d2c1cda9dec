"""
Unit tests for src/utils/metrics

Tests cover Prometheus metrics publishing: MetricsPublisher, ParityMetrics,
get_or_create_metric and initialize_metrics.
"""

import pytest
from unittest.mock import patch
from prometheus_client import CollectorRegistry, Counter

from src.utils.metrics import (
    MetricsPublisher,
    ParityMetrics,
    get_or_create_metric,
    initialize_metrics,
)


@pytest.fixture
def registry():
    return CollectorRegistry()


class TestMetricsPublisher:
    """Test MetricsPublisher class"""

    def test_init_defaults(self):
        publisher = MetricsPublisher()

        assert publisher.port == 9091
        assert publisher.is_started() is False

    @patch('src.utils.metrics.publisher.start_http_server')
    def test_start(self, mock_start, registry):
        publisher = MetricsPublisher(port=9200, registry=registry)

        publisher.start()
        publisher.start()

        mock_start.assert_called_once_with(9200, registry=registry)
        assert publisher.is_started() is True

    @patch('src.utils.metrics.publisher.start_http_server')
    def test_port_in_use(self, mock_start, registry):
        mock_start.side_effect = OSError("[Errno 98] Address already in use")
        publisher = MetricsPublisher(port=9200, registry=registry)

        with pytest.raises(RuntimeError, match="--metrics-port"):
            publisher.start()

        assert publisher.is_started() is False

    @patch('src.utils.metrics.publisher.start_http_server')
    def test_other_os_errors_propagate(self, mock_start, registry):
        mock_start.side_effect = OSError("Permission denied")

        with pytest.raises(OSError, match="Permission denied"):
            MetricsPublisher(registry=registry).start()


class TestParityMetrics:
    """Test ParityMetrics class"""

    def test_record_endpoint(self, registry):
        metrics = ParityMetrics(registry=registry)

        metrics.record_endpoint("users", status="success", duration=2.0, rows_compared=100)

        labels = {"endpoint": "users", "mode": "database", "status": "success"}
        assert registry.get_sample_value("parity_endpoint_comparisons_total", labels) == 1.0
        assert registry.get_sample_value(
            "parity_rows_compared_total", {"endpoint": "users"}
        ) == 100.0
        assert registry.get_sample_value(
            "parity_comparison_rate_rows_per_second", {"endpoint": "users"}
        ) == 50.0
        assert registry.get_sample_value(
            "parity_endpoint_duration_seconds_count", {"endpoint": "users", "mode": "database"}
        ) == 1.0

    def test_record_endpoint_without_rows(self, registry):
        metrics = ParityMetrics(registry=registry)

        metrics.record_endpoint("orgs", status="error", duration=0.5, mode="api")

        assert registry.get_sample_value(
            "parity_endpoint_comparisons_total",
            {"endpoint": "orgs", "mode": "api", "status": "error"},
        ) == 1.0
        assert registry.get_sample_value(
            "parity_rows_compared_total", {"endpoint": "orgs"}
        ) is None

    def test_record_differences_skips_zero_counts(self, registry):
        metrics = ParityMetrics(registry=registry)

        metrics.record_differences("users", {"boolean_format": 3, "value": 0})

        assert registry.get_sample_value(
            "parity_differences_total", {"endpoint": "users", "kind": "boolean_format"}
        ) == 3.0
        assert registry.get_sample_value(
            "parity_differences_total", {"endpoint": "users", "kind": "value"}
        ) is None


class TestGetOrCreateMetric:
    """Test get_or_create_metric"""

    def test_returns_existing_metric(self, registry):
        def factory():
            return Counter("degraded_values_total", "Degraded values", registry=registry)

        first = get_or_create_metric(factory, "degraded_values", registry)
        second = get_or_create_metric(factory, "degraded_values", registry)

        assert first is second

    def test_unknown_name_reraises(self, registry):
        Counter("degraded_values_total", "Degraded values", registry=registry)

        with pytest.raises(ValueError):
            get_or_create_metric(
                lambda: Counter("degraded_values_total", "Degraded values", registry=registry),
                "other_name",
                registry,
            )


class TestInitializeMetrics:
    """Test initialize_metrics"""

    @patch('src.utils.metrics.publisher.start_http_server')
    def test_starts_server_and_builds_metrics(self, mock_start, registry):
        result = initialize_metrics(port=9300, registry=registry)

        mock_start.assert_called_once_with(9300, registry=registry)
        assert result["publisher"].is_started() is True
        assert isinstance(result["parity"], ParityMetrics)
