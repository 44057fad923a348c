"""Host CPU and memory utilisation sampling."""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Callable

import psutil

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemStats:
    cpu_percent: float
    memory_percent: float


def _load_average() -> float:
    return os.getloadavg()[0]


class SystemSampler:
    """Reads instantaneous utilisation from the host.

    CPU is the one-minute load average divided by the logical CPU count,
    capped at 100%. Memory is the share of physical memory not available to
    new processes, rounded to two decimals. A probe that fails reports 0
    rather than breaking the snapshot.
    """

    def __init__(
        self,
        *,
        load_average: Callable[[], float] = _load_average,
        cpu_count: Callable[[], int | None] = os.cpu_count,
        virtual_memory: Callable[[], object] = psutil.virtual_memory,
    ) -> None:
        self._load_average = load_average
        self._cpu_count = cpu_count
        self._virtual_memory = virtual_memory

    def cpu_percent(self) -> float:
        try:
            load = self._load_average()
        except (AttributeError, OSError) as exc:
            # getloadavg is missing on Windows
            logger.debug("Load average unavailable: %s", exc)
            return 0.0
        cpus = self._cpu_count() or 1
        return min(load / cpus * 100, 100.0)

    def memory_percent(self) -> float:
        try:
            memory = self._virtual_memory()
        except (OSError, RuntimeError) as exc:
            logger.warning("Memory statistics unavailable: %s", exc)
            return 0.0
        total = memory.total
        if not total:
            return 0.0
        used = total - memory.available
        return round(used / total * 100, 2)

    def sample(self) -> SystemStats:
        return SystemStats(
            cpu_percent=self.cpu_percent(),
            memory_percent=self.memory_percent(),
        )
