"""In-process metric aggregation shared by request handlers and the reporter.

Counters (HTTP requests, auth attempts, pizza sales) accumulate for one
reporting period and are zeroed by :meth:`MetricAggregator.reset_period`
after a successful export. Gauges (active users, host utilisation, latency
averages) describe current state and survive period rollover.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
import functools
import logging
import math
import numbers
import threading
import time
from typing import Any, Callable, Iterator, TypeVar

from pizza_service.core.config import DEFAULT_SOURCE, MetricsConfig
from pizza_service.metrics.activity import DEFAULT_EXPIRY_SECONDS, ActivityRegistry, UserId
from pizza_service.metrics.system import SystemSampler
from pizza_service.metrics.window import DEFAULT_HARD_CAP, DEFAULT_RETENTION_CAP, SampleWindow

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TRACKED_METHODS = ("GET", "POST", "PUT", "DELETE")
_IDENTITY_FIELDS = frozenset({"source", "timestamp"})


def _best_effort(func: F) -> F:
    """Keep recording hooks from ever raising into the request path."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:  # noqa: BLE001
            logger.exception("Metrics hook %s failed", func.__name__)
            return None

    return wrapper  # type: ignore[return-value]


def _as_number(value: Any, label: str) -> float | None:
    if isinstance(value, bool):
        logger.warning("Ignoring boolean %s: %r", label, value)
        return None
    if not isinstance(value, numbers.Real):
        try:
            value = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric %s: %r", label, value)
            return None
    if not math.isfinite(value):
        logger.warning("Ignoring non-finite %s: %r", label, value)
        return None
    return value


@dataclass
class HttpRequestCounts:
    total: int = 0
    get: int = 0
    post: int = 0
    put: int = 0
    delete: int = 0
    other: int = 0

    def record(self, method: str | None) -> None:
        self.total += 1
        bucket = (method or "").strip().upper()
        if bucket in TRACKED_METHODS:
            name = bucket.lower()
            setattr(self, name, getattr(self, name) + 1)
        else:
            self.other += 1


@dataclass
class AuthAttempts:
    successful: int = 0
    failed: int = 0


@dataclass
class PizzaMetrics:
    sold: int = 0
    failures: int = 0
    revenue: float = 0.0


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time read of the aggregate store."""

    source: str
    timestamp: float
    http_requests_total: int
    http_requests_get: int
    http_requests_post: int
    http_requests_put: int
    http_requests_delete: int
    http_requests_other: int
    auth_attempts_successful: int
    auth_attempts_failed: int
    active_users: int
    cpu_percent: float
    memory_percent: float
    pizzas_sold: int
    pizza_failures: int
    pizza_revenue: float
    service_latency_avg: int
    pizza_latency_avg: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def metric_values(self) -> Iterator[tuple[str, float]]:
        """Yield ``(name, value)`` for every numeric metric field, in declaration order."""
        for item in fields(self):
            if item.name in _IDENTITY_FIELDS:
                continue
            value = getattr(self, item.name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                continue
            yield item.name, value


class MetricAggregator:
    """Process-wide metrics store. All public methods are thread-safe."""

    def __init__(
        self,
        *,
        source: str = DEFAULT_SOURCE,
        sampler: SystemSampler | None = None,
        clock: Callable[[], float] = time.time,
        activity_expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
        latency_hard_cap: int = DEFAULT_HARD_CAP,
        latency_retention_cap: int = DEFAULT_RETENTION_CAP,
    ) -> None:
        if latency_retention_cap > latency_hard_cap:
            raise ValueError("latency_retention_cap cannot exceed latency_hard_cap")
        self._source = source
        self._sampler = sampler or SystemSampler()
        self._clock = clock
        self._expiry_seconds = activity_expiry_seconds
        self._retention_cap = latency_retention_cap
        self._lock = threading.Lock()
        self._requests = HttpRequestCounts()
        self._auth = AuthAttempts()
        self._pizza = PizzaMetrics()
        self._service_latencies = SampleWindow(latency_hard_cap)
        self._pizza_latencies = SampleWindow(latency_hard_cap)
        self._activity = ActivityRegistry()

    @classmethod
    def from_config(cls, config: MetricsConfig, *, sampler: SystemSampler | None = None) -> "MetricAggregator":
        return cls(
            source=config.source,
            sampler=sampler,
            activity_expiry_seconds=config.activity_expiry_seconds,
            latency_hard_cap=config.latency_hard_cap,
            latency_retention_cap=config.latency_retention_cap,
        )

    @property
    def source(self) -> str:
        return self._source

    # -- recording hooks ---------------------------------------------------

    @_best_effort
    def record_request(self, method: str | None) -> None:
        with self._lock:
            self._requests.record(method)

    @_best_effort
    def record_latency(self, duration_ms: float) -> None:
        value = _as_number(duration_ms, "service latency")
        if value is None:
            return
        with self._lock:
            self._service_latencies.append(value)

    @_best_effort
    def record_auth_attempt(self, success: bool, user_id: UserId | None = None) -> None:
        now = self._clock()
        with self._lock:
            if success:
                self._auth.successful += 1
                if user_id:
                    self._activity.upsert(user_id, now)
            else:
                self._auth.failed += 1

    @_best_effort
    def touch_activity(self, user_id: UserId | None) -> None:
        if not user_id:
            return
        now = self._clock()
        with self._lock:
            self._activity.upsert(user_id, now)

    @_best_effort
    def remove_activity(self, user_id: UserId | None) -> None:
        if not user_id:
            return
        with self._lock:
            removed = self._activity.remove(user_id)
        if removed:
            logger.info("User %s explicitly removed from active users", user_id)

    @_best_effort
    def record_pizza_purchase(self, success: bool, latency_ms: float, revenue: float = 0.0) -> None:
        latency = _as_number(latency_ms, "pizza latency")
        amount = _as_number(revenue, "pizza revenue") if success else None
        with self._lock:
            if success:
                self._pizza.sold += 1
                if amount is not None:
                    self._pizza.revenue += amount
            else:
                self._pizza.failures += 1
            if latency is not None:
                self._pizza_latencies.append(latency)

    # -- reporting ---------------------------------------------------------

    def snapshot(self) -> MetricsSnapshot:
        """Read every metric; expires idle users but leaves counters alone."""
        stats = self._sampler.sample()
        now = self._clock()
        with self._lock:
            expired = self._activity.sweep_expired(now, self._expiry_seconds)
            snapshot = MetricsSnapshot(
                source=self._source,
                timestamp=now,
                http_requests_total=self._requests.total,
                http_requests_get=self._requests.get,
                http_requests_post=self._requests.post,
                http_requests_put=self._requests.put,
                http_requests_delete=self._requests.delete,
                http_requests_other=self._requests.other,
                auth_attempts_successful=self._auth.successful,
                auth_attempts_failed=self._auth.failed,
                active_users=self._activity.size(),
                cpu_percent=stats.cpu_percent,
                memory_percent=stats.memory_percent,
                pizzas_sold=self._pizza.sold,
                pizza_failures=self._pizza.failures,
                pizza_revenue=self._pizza.revenue,
                service_latency_avg=self._service_latencies.average(),
                pizza_latency_avg=self._pizza_latencies.average(),
            )
        for user_id, seen in expired.items():
            logger.info(
                "User %s expired from active users (last activity: %s)",
                user_id,
                datetime.fromtimestamp(seen, tz=timezone.utc).isoformat(),
            )
        return snapshot

    def reset_period(self) -> None:
        """Zero the per-period counters and trim latency history.

        Active users and host gauges are untouched.
        """
        with self._lock:
            self._requests = HttpRequestCounts()
            self._auth = AuthAttempts()
            self._pizza = PizzaMetrics()
            self._service_latencies.trim_to(self._retention_cap)
            self._pizza_latencies.trim_to(self._retention_cap)

    # -- introspection -----------------------------------------------------

    def active_users(self) -> dict[UserId, float]:
        with self._lock:
            return self._activity.entries()

    def latency_samples(self) -> dict[str, list[float]]:
        with self._lock:
            return {
                "service": self._service_latencies.values(),
                "pizza": self._pizza_latencies.values(),
            }
