"""Tests for the radial gauge colour scale and animation."""

from __future__ import annotations

import pytest

from backend.services.gauge import (
    GAUGE_CIRCUMFERENCE,
    GaugeAnimation,
    GaugeFrame,
    frame_after,
    gauge_color,
    traffic_light,
)


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestGaugeColor:
    """Green to yellow to red."""

    @pytest.mark.parametrize("percent,color", [
        (0, "rgb(0,255,0)"),
        (25, "rgb(128,255,0)"),
        (50, "rgb(255,255,0)"),
        (75, "rgb(255,128,0)"),
        (100, "rgb(255,0,0)"),
        (150, "rgb(255,0,0)"),
        (-5, "rgb(0,255,0)"),
    ])
    def test_scale(self, percent: float, color: str) -> None:
        assert gauge_color(percent) == color

    @pytest.mark.parametrize("percent,light", [
        (0, "green"),
        (30.9, "green"),
        (31, "orange"),
        (60.9, "orange"),
        (61, "red"),
        (100, "red"),
    ])
    def test_traffic_light(self, percent: float, light: str) -> None:
        assert traffic_light(percent) == light


class TestGaugeAnimation:
    """Time-based interpolation."""

    def test_linear_fill(self) -> None:
        animation = GaugeAnimation(80, duration_ms=1000)

        assert animation.value_at(0) == 0
        assert animation.value_at(250) == 20
        assert animation.value_at(500) == 40
        assert animation.value_at(1000) == 80
        assert animation.value_at(5000) == 80

    def test_monotone(self) -> None:
        animation = GaugeAnimation(73.25, duration_ms=1000)
        values = [animation.value_at(t) for t in range(0, 1200, 37)]

        assert values == sorted(values)
        assert values[-1] == 73.25

    def test_set_target_restarts(self) -> None:
        clock = FakeClock()
        animation = GaugeAnimation(50, duration_ms=1000, clock=clock)
        animation.frame()
        clock.now = 2000
        assert animation.value_at() == 50

        animation.set_target(90)
        clock.now = 2500

        assert animation.value_at() == 0
        clock.now = 3000
        assert animation.value_at() == 45

    def test_same_target_does_not_restart(self) -> None:
        animation = GaugeAnimation(50, duration_ms=1000)
        animation.value_at(0)

        animation.set_target(50)

        assert animation.value_at(1000) == 50

    def test_frame_uses_animated_value_for_color(self) -> None:
        animation = GaugeAnimation(100, duration_ms=1000)
        animation.progress_at(0)

        frame = animation.frame(500)

        assert frame.value == 50
        assert frame.color == "rgb(255,255,0)"
        assert not frame.finished

    def test_rejects_non_positive_duration(self) -> None:
        with pytest.raises(ValueError):
            GaugeAnimation(10, duration_ms=0)


class TestGaugeFrame:
    """Ring geometry."""

    def test_dash_and_gap_cover_circumference(self) -> None:
        frame = GaugeFrame.for_value(25)

        assert frame.dash == pytest.approx(GAUGE_CIRCUMFERENCE / 4)
        assert frame.dash + frame.gap == pytest.approx(GAUGE_CIRCUMFERENCE)

    def test_frame_after(self) -> None:
        assert frame_after(60, 500).value == 30
        finished = frame_after(60, 1000)
        assert finished.value == 60
        assert finished.finished
