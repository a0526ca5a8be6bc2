"""Radial similarity gauge: colour scale and time-based fill animation."""
from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

GAUGE_RADIUS = 60
GAUGE_STROKE = 12
GAUGE_CIRCUMFERENCE = 2 * math.pi * GAUGE_RADIUS
DEFAULT_DURATION_MS = 1000.0

Clock = Callable[[], float]


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def gauge_color(percent: float) -> str:
    """Green at 0, yellow at 50, red at 100."""
    pct = _clamp(percent)
    if pct <= 50:
        r, g = round(255 * (pct / 50)), 255
    else:
        r, g = 255, round(255 * ((100 - pct) / 50))
    return f"rgb({r},{g},0)"


def traffic_light(percent: float) -> str:
    """Coarse indicator used in the similar-documents table."""
    if percent >= 61:
        return "red"
    if percent >= 31:
        return "orange"
    return "green"


@dataclass(frozen=True, slots=True)
class GaugeFrame:
    value: float
    color: str
    dash: float
    gap: float
    finished: bool

    @classmethod
    def for_value(cls, value: float, finished: bool = True) -> "GaugeFrame":
        pct = _clamp(value)
        dash = (pct / 100) * GAUGE_CIRCUMFERENCE
        return cls(
            value=value,
            color=gauge_color(pct),
            dash=dash,
            gap=GAUGE_CIRCUMFERENCE - dash,
            finished=finished,
        )


class GaugeAnimation:
    """
    Fills the gauge from 0 to ``target`` over ``duration_ms``.

    Progress is computed from elapsed time, not from how many frames were
    drawn, so dropped frames do not slow the animation down. Any change of the
    target restarts the fill from 0. Timestamps are in milliseconds.
    """

    def __init__(
        self,
        target: float,
        duration_ms: float = DEFAULT_DURATION_MS,
        clock: Optional[Clock] = None,
    ):
        if duration_ms <= 0:
            raise ValueError("duration_ms must be positive")
        self.duration_ms = duration_ms
        self._clock = clock or (lambda: time.monotonic() * 1000)
        self.target = _clamp(target)
        self._start: Optional[float] = None

    def set_target(self, target: float) -> None:
        target = _clamp(target)
        if target != self.target:
            self.target = target
            self._start = None

    def restart(self) -> None:
        self._start = None

    def progress_at(self, timestamp: float) -> float:
        # the first frame after a (re)start pins the start time
        if self._start is None:
            self._start = timestamp
        elapsed = max(0.0, timestamp - self._start)
        return min(1.0, elapsed / self.duration_ms)

    def value_at(self, timestamp: Optional[float] = None) -> float:
        if timestamp is None:
            timestamp = self._clock()
        return round(self.progress_at(timestamp) * self.target, 2)

    def frame(self, timestamp: Optional[float] = None) -> GaugeFrame:
        if timestamp is None:
            timestamp = self._clock()
        value = self.value_at(timestamp)
        return GaugeFrame.for_value(value, finished=self.progress_at(timestamp) >= 1.0)


def frame_after(target: float, elapsed_ms: float, duration_ms: float = DEFAULT_DURATION_MS) -> GaugeFrame:
    """Frame of a freshly started animation ``elapsed_ms`` after its first frame."""
    animation = GaugeAnimation(target, duration_ms=duration_ms)
    animation.progress_at(0.0)
    return animation.frame(max(0.0, elapsed_ms))
