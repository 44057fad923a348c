"""Shared fixtures for the pizza service test-suite."""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from pizza_service.metrics.aggregator import MetricAggregator
from pizza_service.metrics.system import SystemSampler
from tests.helpers import FakeClock, make_sampler


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sampler() -> SystemSampler:
    return make_sampler()


@pytest.fixture
def aggregator(clock: FakeClock, sampler: SystemSampler) -> MetricAggregator:
    return MetricAggregator(source="test-pizza", sampler=sampler, clock=clock)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep host environment and any local config.json out of the tests."""
    for key in list(os.environ):
        if key.startswith("PIZZA_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PIZZA_CONFIG_FILE", str(tmp_path / "missing-config.json"))
