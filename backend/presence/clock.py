"""Time source shared by throttling, liveness and heartbeat checks.

All presence timestamps are monotonic milliseconds. Components take a Clock
so tests can advance time explicitly instead of sleeping.
"""

import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> float:
        """Current monotonic time in milliseconds."""
        ...


class MonotonicClock:
    def now_ms(self) -> float:
        return time.monotonic() * 1000.0
