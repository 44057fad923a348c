"""Narrow recording interface handed to request-handling code."""
from __future__ import annotations

import time
from types import TracebackType
from typing import Hashable, Optional, Protocol, Type, runtime_checkable


@runtime_checkable
class MetricsRecorder(Protocol):
    """Fire-and-forget hooks; implementations must never raise."""

    def record_request(self, method: str | None) -> None: ...

    def record_latency(self, duration_ms: float) -> None: ...

    def record_auth_attempt(self, success: bool, user_id: Hashable | None = None) -> None: ...

    def touch_activity(self, user_id: Hashable | None) -> None: ...

    def remove_activity(self, user_id: Hashable | None) -> None: ...

    def record_pizza_purchase(self, success: bool, latency_ms: float, revenue: float = 0.0) -> None: ...


class PurchaseTimer:
    """Time a purchase and report its outcome.

    A clean exit records a sale worth ``revenue``; an exception escaping the
    block records a failure and keeps propagating.

        with PurchaseTimer(recorder, revenue=order_total):
            await factory.create(order)
    """

    def __init__(self, recorder: MetricsRecorder, revenue: float = 0.0) -> None:
        self._recorder = recorder
        self.revenue = revenue
        self._started: float | None = None
        self.latency_ms: int | None = None

    def __enter__(self) -> "PurchaseTimer":
        self._started = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        started = self._started if self._started is not None else time.perf_counter()
        self.latency_ms = int((time.perf_counter() - started) * 1000)
        success = exc_type is None
        self._recorder.record_pizza_purchase(success, self.latency_ms, self.revenue if success else 0.0)
        return False
