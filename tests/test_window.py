"""Tests for metrics/window.py: bounded latency samples."""

from __future__ import annotations

import pytest

from pizza_service.metrics.window import SampleWindow


class TestSampleWindow:
    def test_average_of_empty_window_is_zero(self) -> None:
        window = SampleWindow()
        assert window.average() == 0

    def test_append_never_exceeds_hard_cap(self) -> None:
        window = SampleWindow(hard_cap=100)
        for value in range(150):
            window.append(value)
            assert len(window) <= 100
        assert len(window) == 100

    def test_eviction_drops_oldest_samples(self) -> None:
        window = SampleWindow(hard_cap=3)
        for value in (1, 2, 3, 4, 5):
            window.append(value)
        assert window.values() == [3, 4, 5]

    def test_average_rounds_half_up(self) -> None:
        window = SampleWindow()
        window.append(1)
        window.append(2)
        assert window.average() == 2

    def test_average_uses_retained_samples_only(self) -> None:
        window = SampleWindow(hard_cap=2)
        for value in (1000, 10, 20):
            window.append(value)
        assert window.average() == 15

    def test_trim_keeps_most_recent(self) -> None:
        window = SampleWindow(hard_cap=100)
        for value in range(80):
            window.append(value)
        window.trim_to(50)
        assert len(window) == 50
        assert window.values()[0] == 30
        assert window.values()[-1] == 79

    def test_trim_is_noop_when_short(self) -> None:
        window = SampleWindow()
        window.append(5)
        window.trim_to(50)
        assert window.values() == [5]

    def test_trimmed_window_still_enforces_hard_cap(self) -> None:
        window = SampleWindow(hard_cap=4)
        for value in range(4):
            window.append(value)
        window.trim_to(2)
        for value in range(10, 15):
            window.append(value)
        assert window.values() == [11, 12, 13, 14]

    def test_non_finite_samples_are_not_retained(self) -> None:
        window = SampleWindow()
        assert window.append(float("inf")) is False
        assert window.append(float("nan")) is False
        assert window.append(10) is True
        assert window.values() == [10]
        assert window.average() == 10

    def test_rejects_non_positive_hard_cap(self) -> None:
        with pytest.raises(ValueError):
            SampleWindow(hard_cap=0)
