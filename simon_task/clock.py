from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Scheduler, capture and timer code depend on this interface rather than
    calling real time directly, so trials can be replayed under a fake clock.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


def to_ms(seconds: float) -> int:
    return int(round(float(seconds) * 1000.0))
