"""Clock helpers shared by the store, queue and orchestrator.

All conversation timestamps are wall-clock milliseconds since the epoch so they
can be sent over the wire unchanged. Components accept an injectable clock to
keep tick processing deterministic under test.
"""

import time
from collections.abc import Callable

Clock = Callable[[], float]


def now_ms() -> float:
    """Get current wall clock time in milliseconds.

    Returns:
        Milliseconds since the epoch
    """
    return time.time() * 1000.0


class ManualClock:
    """Clock that only moves when told to.

    Useful for driving staleness and retention logic without sleeping.
    """

    def __init__(self, start_ms: float = 1_700_000_000_000.0) -> None:
        self._now = start_ms

    def __call__(self) -> float:
        return self._now

    def advance(self, delta_ms: float) -> float:
        """Move the clock forward.

        Args:
            delta_ms: Milliseconds to advance (must be non-negative)

        Returns:
            New clock value

        Raises:
            ValueError: If delta_ms is negative
        """
        if delta_ms < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += delta_ms
        return self._now
