"""Periodic export of metric snapshots to an OTLP/HTTP collector.

One reporting cycle walks ``SAMPLING -> ENCODING -> DELIVERING`` and ends in
``SUCCESS`` or ``FAILED`` before returning to ``IDLE``. Only a successful
delivery resets the period counters; after a failure the next snapshot still
contains the unreported counts, so periods are merged rather than dropped.
Nothing here raises into request handling.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
import json
import logging
from typing import Any, Awaitable, Callable, Optional
import urllib.error
import urllib.request

from pizza_service.core.config import MetricsConfig
from pizza_service.core.exceptions import MetricsDeliveryError
from pizza_service.core.request_context import request_context
from pizza_service.core.tasks import cancel_task, monitor_task
from pizza_service.metrics.aggregator import MetricAggregator
from pizza_service.metrics.otel import OtelEncoder

logger = logging.getLogger(__name__)

Sender = Callable[[bytes], Awaitable[None]]

TASK_NAME = "metrics-reporter"


class ReporterState(str, Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    ENCODING = "encoding"
    DELIVERING = "delivering"
    SUCCESS = "success"
    FAILED = "failed"


class MetricsReporter:
    """Drive snapshot, encode and deliver on a fixed interval."""

    def __init__(
        self,
        aggregator: MetricAggregator,
        encoder: OtelEncoder,
        config: MetricsConfig,
        *,
        sender: Optional[Sender] = None,
    ) -> None:
        self._aggregator = aggregator
        self._encoder = encoder
        self._url = config.url
        self._api_key = config.api_key
        self._interval = config.interval_seconds
        self._timeout = config.timeout_seconds
        self._sender: Sender = sender or self._post_payload
        self._custom_sender = sender is not None

        self._state = ReporterState.IDLE
        self._last_outcome: ReporterState | None = None
        self._cycle_lock = asyncio.Lock()
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None
        self._cycle_tasks: set[asyncio.Task] = set()

        self._cycles = 0
        self._consecutive_failures = 0
        self._last_success_at: datetime | None = None
        self._last_error: str | None = None

    @property
    def state(self) -> ReporterState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._custom_sender or bool(self._url)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "running": self.running,
            "state": self._state.value,
            "last_outcome": self._last_outcome.value if self._last_outcome else None,
            "interval_seconds": self._interval,
            "cycles": self._cycles,
            "consecutive_failures": self._consecutive_failures,
            "last_success_at": self._last_success_at.isoformat() if self._last_success_at else None,
            "last_error": self._last_error,
        }

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        if self.running:
            return
        if not self.enabled:
            logger.warning("Metrics collector URL not configured; reporting disabled")
            return
        self._stop_event = asyncio.Event()
        task = asyncio.create_task(self._run(self._stop_event), name=TASK_NAME)
        self._task = monitor_task(task, name=TASK_NAME, logger=logger)
        logger.info("Metrics reporting started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        await cancel_task(self._task)
        self._task = None
        for task in list(self._cycle_tasks):
            await cancel_task(task)
        self._cycle_tasks.clear()
        self._state = ReporterState.IDLE
        logger.info("Metrics reporting stopped")

    async def _run(self, stop_event: asyncio.Event) -> None:
        with request_context(f"bg:{TASK_NAME}"):
            while not stop_event.is_set():
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    self._tick()

    def _tick(self) -> None:
        if self._cycle_lock.locked():
            logger.warning("Previous metrics cycle still running; skipping this tick")
            return
        task = asyncio.create_task(self.run_cycle(), name=f"{TASK_NAME}-cycle")
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)
        monitor_task(task, name=f"{TASK_NAME}-cycle", logger=logger)

    # -- cycle -------------------------------------------------------------

    async def run_cycle(self) -> bool:
        """Run one reporting cycle. Returns True when the collector accepted it."""
        if self._cycle_lock.locked():
            logger.debug("Metrics cycle already in flight; dropping request")
            return False
        async with self._cycle_lock:
            with request_context(f"bg:{TASK_NAME}"):
                self._cycles += 1
                try:
                    return await self._run_stages()
                finally:
                    self._state = ReporterState.IDLE

    async def _run_stages(self) -> bool:
        self._state = ReporterState.SAMPLING
        try:
            snapshot = self._aggregator.snapshot()
        except Exception as exc:  # noqa: BLE001
            return self._fail("sampling", exc)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Metrics collected: %s", json.dumps(snapshot.as_dict(), indent=2))

        self._state = ReporterState.ENCODING
        try:
            body = self._encoder.dumps(self._encoder.encode(snapshot))
        except Exception as exc:  # noqa: BLE001
            return self._fail("encoding", exc)

        self._state = ReporterState.DELIVERING
        try:
            await self._sender(body)
        except Exception as exc:  # noqa: BLE001
            return self._fail("delivery", exc)

        self._state = ReporterState.SUCCESS
        self._last_outcome = ReporterState.SUCCESS
        self._aggregator.reset_period()
        self._consecutive_failures = 0
        self._last_success_at = datetime.now(timezone.utc)
        self._last_error = None
        logger.info("Metrics successfully sent to collector")
        return True

    def _fail(self, stage: str, exc: BaseException) -> bool:
        self._state = ReporterState.FAILED
        self._last_outcome = ReporterState.FAILED
        self._consecutive_failures += 1
        self._last_error = f"{stage}: {exc}"
        if isinstance(exc, MetricsDeliveryError):
            logger.error(
                "Failed to send metrics (status=%s): %s %s",
                exc.status,
                exc.detail,
                exc.body or "",
            )
        else:
            logger.error("Metrics %s failed: %s", stage, exc, exc_info=exc)
        return False

    # -- delivery ----------------------------------------------------------

    async def _post_payload(self, body: bytes) -> None:
        if not self._url:
            raise MetricsDeliveryError("No metrics collector URL configured")
        await asyncio.to_thread(self._post_blocking, self._url, body)

    def _post_blocking(self, url: str, body: bytes) -> None:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        request = urllib.request.Request(url, data=body, headers=headers, method="POST")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                status = response.status
                if not 200 <= status < 300:
                    text = response.read().decode("utf-8", errors="replace")
                    raise MetricsDeliveryError(
                        f"Collector responded {status}",
                        status=status,
                        body=text,
                    )
        except urllib.error.HTTPError as exc:
            text = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
            raise MetricsDeliveryError(
                f"Collector responded {exc.code} {exc.reason}",
                status=exc.code,
                body=text,
            ) from exc
        except (urllib.error.URLError, OSError) as exc:
            reason = getattr(exc, "reason", exc)
            raise MetricsDeliveryError(f"Collector unreachable: {reason}") from exc
