"""Deterministic clock helpers."""

from __future__ import annotations

import pytest

from substack_api.testing import ManualClock, SleepRecorder


def test_sleep_recorder_tracks_calls_and_total() -> None:
    sleep = SleepRecorder()
    sleep(1)
    sleep(2.5)

    assert sleep.calls == [1.0, 2.5]
    assert sleep.total == 3.5


def test_manual_clock_only_moves_forward() -> None:
    clock = ManualClock(now=10.0)
    clock.advance(2.0)

    assert clock() == 12.0
    assert clock.sleeps == [2.0]
    with pytest.raises(ValueError, match="backwards"):
        clock.advance(-1.0)
