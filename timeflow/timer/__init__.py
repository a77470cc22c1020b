"""Timer engine and clock sources."""

from timeflow.timer.clock import ClockSource, SystemClock
from timeflow.timer.engine import AccuracyMetrics, TickEvent, TimerEngine

__all__ = [
    "AccuracyMetrics",
    "ClockSource",
    "SystemClock",
    "TickEvent",
    "TimerEngine",
]
