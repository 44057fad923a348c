"""Tests for metrics/otel.py: OTLP JSON payloads."""

from __future__ import annotations

import dataclasses
import json

import pytest

from pizza_service.core.config import MetricsConfig
from pizza_service.core.exceptions import MetricsEncodingError
from pizza_service.metrics.aggregator import MetricAggregator, MetricsSnapshot
from pizza_service.metrics.otel import OtelEncoder


@pytest.fixture
def snapshot(aggregator: MetricAggregator) -> MetricsSnapshot:
    aggregator.record_request("GET")
    aggregator.record_latency(42)
    aggregator.record_pizza_purchase(True, 120, 9.99)
    return aggregator.snapshot()


def _metrics(payload: dict) -> list[dict]:
    return payload["resourceMetrics"][0]["scopeMetrics"][0]["metrics"]


class TestOtelEncoder:
    def test_resource_and_scope(self, snapshot: MetricsSnapshot) -> None:
        payload = OtelEncoder().encode(snapshot)

        resource_metrics = payload["resourceMetrics"][0]
        assert resource_metrics["resource"]["attributes"] == [
            {"key": "service.name", "value": {"stringValue": "test-pizza"}},
            {"key": "service.version", "value": {"stringValue": "1.0.0"}},
        ]
        assert resource_metrics["scopeMetrics"][0]["scope"] == {
            "name": "jwt-pizza-service-metrics",
            "version": "1.0.0",
        }

    def test_one_gauge_per_numeric_field(self, snapshot: MetricsSnapshot) -> None:
        metrics = _metrics(OtelEncoder().encode(snapshot))
        names = [metric["name"] for metric in metrics]

        assert names == [name for name, _ in snapshot.metric_values()]
        assert "source" not in names
        assert "timestamp" not in names

    def test_data_point_shape(self, snapshot: MetricsSnapshot) -> None:
        metrics = {m["name"]: m for m in _metrics(OtelEncoder().encode(snapshot))}
        requests = metrics["http_requests_total"]

        assert requests["description"] == "http_requests_total metric from JWT Pizza Service"
        point = requests["gauge"]["dataPoints"][0]
        assert point["asDouble"] == 1.0
        assert isinstance(point["asDouble"], float)
        assert point["timeUnixNano"] == int(snapshot.timestamp) * 1_000_000_000
        assert point["attributes"] == [{"key": "source", "value": {"stringValue": "test-pizza"}}]

    def test_units_follow_metric_names(self, snapshot: MetricsSnapshot) -> None:
        units = {m["name"]: m["unit"] for m in _metrics(OtelEncoder().encode(snapshot))}

        assert units["cpu_percent"] == "%"
        assert units["memory_percent"] == "%"
        assert units["service_latency_avg"] == "ms"
        assert units["pizza_latency_avg"] == "ms"
        assert units["pizza_revenue"] == "USD"
        assert units["http_requests_total"] == "1"
        assert units["active_users"] == "1"

    def test_config_overrides_labels(self, snapshot: MetricsSnapshot) -> None:
        config = MetricsConfig(service_version="2.3.4", scope_name="custom-scope", currency="EUR")
        payload = OtelEncoder.from_config(config).encode(snapshot)

        scope = payload["resourceMetrics"][0]["scopeMetrics"][0]["scope"]
        assert scope == {"name": "custom-scope", "version": "2.3.4"}
        units = {m["name"]: m["unit"] for m in _metrics(payload)}
        assert units["pizza_revenue"] == "EUR"

    def test_encoding_is_byte_stable(self, snapshot: MetricsSnapshot) -> None:
        encoder = OtelEncoder()
        first = encoder.dumps(encoder.encode(snapshot))
        second = encoder.dumps(encoder.encode(snapshot))
        assert first == second
        assert json.loads(first) == encoder.encode(snapshot)

    def test_malformed_snapshot_raises_encoding_error(self, snapshot: MetricsSnapshot) -> None:
        broken = dataclasses.replace(snapshot, timestamp=None)  # type: ignore[arg-type]
        with pytest.raises(MetricsEncodingError):
            OtelEncoder().encode(broken)

    def test_nan_values_cannot_be_serialised(self, snapshot: MetricsSnapshot) -> None:
        broken = dataclasses.replace(snapshot, cpu_percent=float("nan"))
        encoder = OtelEncoder()
        with pytest.raises(MetricsEncodingError):
            encoder.dumps(encoder.encode(broken))
