from __future__ import annotations

import heapq
from collections.abc import Callable
from dataclasses import dataclass, field

from .clock import Clock


@dataclass(slots=True)
class TimerHandle:
    due_s: float
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class TimerQueue:
    """One-shot timers pumped cooperatively from the host frame loop.

    Nothing runs in the background: callbacks fire from ``update()`` once the
    injected clock has reached their due time, in due order (FIFO for equal
    due times). A callback may schedule further timers; those fire in the same
    ``update()`` call if they are already due.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._heap: list[tuple[float, int, TimerHandle]] = []
        self._seq = 0

    @property
    def clock(self) -> Clock:
        return self._clock

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        delay_s = max(0.0, float(delay_s))
        handle = TimerHandle(due_s=self._clock.now() + delay_s, callback=callback)
        heapq.heappush(self._heap, (handle.due_s, self._seq, handle))
        self._seq += 1
        return handle

    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._heap if not h.cancelled)

    def next_due_s(self) -> float | None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
        if not self._heap:
            return None
        return self._heap[0][0]

    def update(self) -> int:
        """Fire every due timer. Returns the number of callbacks run."""

        fired = 0
        # Re-read per timer: under a real clock a callback's zero-delay follow-up
        # is stamped later than the time this update started.
        while self._heap and self._heap[0][0] <= self._clock.now():
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle.cancelled = True
            handle.callback()
            fired += 1
        return fired

    def clear(self) -> None:
        for _, _, handle in self._heap:
            handle.cancelled = True
        self._heap.clear()
