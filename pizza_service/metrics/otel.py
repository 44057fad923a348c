"""OTLP/HTTP JSON encoding for metric snapshots.

Every numeric snapshot field becomes one gauge carrying a single data point.
Units follow the metric name: ``*percent*`` is ``%``, ``*latency*`` is
``ms``, ``*revenue*`` is the configured currency, anything else is the
dimensionless ``1``.
"""
from __future__ import annotations

import json
from typing import Any

from pizza_service.core.config import DEFAULT_SCOPE_NAME, MetricsConfig
from pizza_service.core.exceptions import MetricsEncodingError
from pizza_service.metrics.aggregator import MetricsSnapshot

NANOS_PER_SECOND = 1_000_000_000


def _string_attribute(key: str, value: str) -> dict[str, Any]:
    return {"key": key, "value": {"stringValue": value}}


class OtelEncoder:
    def __init__(
        self,
        *,
        service_version: str = "1.0.0",
        scope_name: str = DEFAULT_SCOPE_NAME,
        currency: str = "USD",
    ) -> None:
        self._service_version = service_version
        self._scope_name = scope_name
        self._currency = currency

    @classmethod
    def from_config(cls, config: MetricsConfig) -> "OtelEncoder":
        return cls(
            service_version=config.service_version,
            scope_name=config.scope_name,
            currency=config.currency,
        )

    def unit_for(self, metric_name: str) -> str:
        if "percent" in metric_name:
            return "%"
        if "latency" in metric_name:
            return "ms"
        if "revenue" in metric_name:
            return self._currency
        return "1"

    def encode(self, snapshot: MetricsSnapshot) -> dict[str, Any]:
        """Build the ``resourceMetrics`` payload for one snapshot."""
        try:
            time_unix_nano = int(round(snapshot.timestamp * NANOS_PER_SECOND))
            source = str(snapshot.source)
            metrics = [
                {
                    "name": name,
                    "description": f"{name} metric from JWT Pizza Service",
                    "unit": self.unit_for(name),
                    "gauge": {
                        "dataPoints": [
                            {
                                "attributes": [_string_attribute("source", source)],
                                "asDouble": float(value),
                                "timeUnixNano": time_unix_nano,
                            }
                        ]
                    },
                }
                for name, value in snapshot.metric_values()
            ]
        except (AttributeError, TypeError, ValueError, OverflowError) as exc:
            raise MetricsEncodingError(f"Cannot encode metrics snapshot: {exc}") from exc

        return {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": [
                            _string_attribute("service.name", source),
                            _string_attribute("service.version", self._service_version),
                        ]
                    },
                    "scopeMetrics": [
                        {
                            "scope": {
                                "name": self._scope_name,
                                "version": self._service_version,
                            },
                            "metrics": metrics,
                        }
                    ],
                }
            ]
        }

    @staticmethod
    def dumps(payload: dict[str, Any]) -> bytes:
        """Serialise a payload to the compact JSON request body."""
        try:
            return json.dumps(payload, separators=(",", ":"), allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise MetricsEncodingError(f"Cannot serialise metrics payload: {exc}") from exc
