"""Unit tests for clock helpers."""

import time

import pytest

from colloquy.utils.timing import ManualClock, now_ms


def test_now_ms_tracks_wall_clock():
    before = time.time() * 1000
    value = now_ms()
    after = time.time() * 1000

    assert before <= value <= after


class TestManualClock:
    """Test the manually advanced clock."""

    def test_starts_at_given_time(self):
        clock = ManualClock(start_ms=1000.0)
        assert clock() == 1000.0

    def test_advance(self):
        clock = ManualClock(start_ms=0.0)

        assert clock.advance(250) == 250
        assert clock.advance(0) == 250
        assert clock() == 250

    def test_cannot_go_backwards(self):
        clock = ManualClock()

        with pytest.raises(ValueError):
            clock.advance(-1)
