"""Tests for metrics/hooks.py: recorder protocol and purchase timing."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from pizza_service.metrics.aggregator import MetricAggregator
from pizza_service.metrics.hooks import MetricsRecorder, PurchaseTimer


class TestMetricsRecorder:
    def test_aggregator_satisfies_protocol(self, aggregator: MetricAggregator) -> None:
        assert isinstance(aggregator, MetricsRecorder)


class TestPurchaseTimer:
    def test_clean_exit_records_sale(self, aggregator: MetricAggregator) -> None:
        with PurchaseTimer(aggregator, revenue=12.5) as timer:
            pass

        snap = aggregator.snapshot()
        assert snap.pizzas_sold == 1
        assert snap.pizza_revenue == 12.5
        assert timer.latency_ms is not None
        assert aggregator.latency_samples()["pizza"] == [timer.latency_ms]

    def test_exception_records_failure_and_propagates(self, aggregator: MetricAggregator) -> None:
        with pytest.raises(RuntimeError):
            with PurchaseTimer(aggregator, revenue=12.5):
                raise RuntimeError("factory down")

        snap = aggregator.snapshot()
        assert snap.pizzas_sold == 0
        assert snap.pizza_failures == 1
        assert snap.pizza_revenue == 0

    def test_revenue_can_be_set_inside_block(self) -> None:
        recorder = MagicMock()
        with PurchaseTimer(recorder) as timer:
            timer.revenue = 3.5

        recorder.record_pizza_purchase.assert_called_once_with(True, timer.latency_ms, 3.5)
