"""Test doubles shared across the suite."""
from __future__ import annotations

from types import SimpleNamespace

from pizza_service.metrics.system import SystemSampler


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_sampler(load: float = 0.5, cpus: int = 2, total: int = 1000, available: int = 250) -> SystemSampler:
    """Sampler reporting 25% CPU and 75% memory by default."""
    return SystemSampler(
        load_average=lambda: load,
        cpu_count=lambda: cpus,
        virtual_memory=lambda: SimpleNamespace(total=total, available=available),
    )
