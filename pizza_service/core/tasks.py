"""Utilities for running and monitoring background asyncio tasks."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Sequence

Logger = logging.Logger
LifecycleStep = Callable[[], Awaitable[None]]


def monitor_task(task: asyncio.Task, *, name: str, logger: Logger, on_error: Callable[[BaseException], None] | None = None) -> asyncio.Task:
    """Attach a callback to log unexpected task termination."""

    def _callback(finished: asyncio.Task) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            exc = finished.exception()
            if exc is None:
                return
            logger.error("Background task %s crashed: %s", name, exc, exc_info=exc)
            if on_error:
                on_error(exc)

    task.add_done_callback(_callback)
    return task


async def cancel_task(task: asyncio.Task | None) -> None:
    """Cancel a task and wait for it to unwind."""

    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


class LifecycleManager:
    """Start/stop helper shared by the service registry."""

    def __init__(self, *, name: str, logger: Logger) -> None:
        self._name = name
        self._logger = logger
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self, steps: Sequence[LifecycleStep]) -> None:
        if self._started:
            return
        self._started = True
        if not steps:
            return
        await asyncio.gather(*(step() for step in steps))

    async def stop(self, steps: Sequence[LifecycleStep]) -> None:
        if not self._started:
            return
        self._started = False
        if not steps:
            return
        results = await asyncio.gather(*(step() for step in steps), return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                self._logger.error("%s stop failed: %s", self._name, result, exc_info=result)
