"""Test-only utilities for deterministic timing assertions."""

from .time_control import ManualClock, SleepRecorder

__all__ = [
    "ManualClock",
    "SleepRecorder",
]
