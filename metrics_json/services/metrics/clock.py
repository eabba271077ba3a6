"""Clock abstraction for instruments and document timestamps.

Meters read ``tick()`` to decay their moving averages and the document
serializer reads ``time()`` for its ``current_time`` field. Both go through
an injected clock so tests can pin them.
"""

import time
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic ticks and wall-clock time."""

    def tick(self) -> int:
        """Monotonic time in nanoseconds."""
        ...

    def time(self) -> int:
        """Wall-clock time in milliseconds since the epoch."""
        ...


class SystemClock:
    """Clock backed by the interpreter's own timers."""

    def tick(self) -> int:
        return time.monotonic_ns()

    def time(self) -> int:
        return time.time_ns() // 1_000_000


DEFAULT_CLOCK = SystemClock()
