"""Bounded latency sample window."""
from __future__ import annotations

from collections import deque
import math
from typing import Deque

DEFAULT_HARD_CAP = 100
DEFAULT_RETENTION_CAP = 50


class SampleWindow:
    """FIFO of the most recent numeric samples.

    The window never holds more than ``hard_cap`` values; appending past the
    cap evicts the oldest sample. Not thread-safe on its own, the aggregator
    serialises access.
    """

    def __init__(self, hard_cap: int = DEFAULT_HARD_CAP) -> None:
        if hard_cap <= 0:
            raise ValueError("hard_cap must be positive")
        self._hard_cap = hard_cap
        self._values: Deque[float] = deque(maxlen=hard_cap)

    @property
    def hard_cap(self) -> int:
        return self._hard_cap

    def __len__(self) -> int:
        return len(self._values)

    def values(self) -> list[float]:
        return list(self._values)

    def append(self, value: float) -> bool:
        """Add a sample. Non-finite values are not retained and return False."""
        if not math.isfinite(value):
            return False
        self._values.append(value)
        return True

    def average(self) -> int:
        """Mean of the retained samples, rounded half up. 0 when empty."""
        if not self._values:
            return 0
        mean = sum(self._values) / len(self._values)
        return int(math.floor(mean + 0.5))

    def trim_to(self, retention_cap: int) -> None:
        """Keep only the newest ``retention_cap`` samples."""
        if retention_cap < 0:
            raise ValueError("retention_cap must not be negative")
        if len(self._values) <= retention_cap:
            return
        recent = list(self._values)[-retention_cap:] if retention_cap else []
        self._values = deque(recent, maxlen=self._hard_cap)
