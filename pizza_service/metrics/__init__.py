"""Metrics aggregation and OTLP reporting."""
from pizza_service.metrics.activity import ActivityRegistry
from pizza_service.metrics.aggregator import MetricAggregator, MetricsSnapshot
from pizza_service.metrics.hooks import MetricsRecorder, PurchaseTimer
from pizza_service.metrics.otel import OtelEncoder
from pizza_service.metrics.reporter import MetricsReporter, ReporterState
from pizza_service.metrics.system import SystemSampler, SystemStats
from pizza_service.metrics.window import SampleWindow

__all__ = [
    "ActivityRegistry",
    "MetricAggregator",
    "MetricsRecorder",
    "MetricsReporter",
    "MetricsSnapshot",
    "OtelEncoder",
    "PurchaseTimer",
    "ReporterState",
    "SampleWindow",
    "SystemSampler",
    "SystemStats",
]
