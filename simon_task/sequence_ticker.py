from __future__ import annotations

from collections.abc import Callable, Sequence

from .timers import TimerHandle, TimerQueue


class SequenceTicker:
    """Drift-corrected playback of a position sequence.

    The first tick fires synchronously from ``start()``. Every following tick
    is a one-shot timer whose delay is shortened by however late the previous
    firing was, so the ticks stay on the ``start + k * interval`` grid instead
    of accumulating scheduling jitter. ``on_done`` fires once, right after the
    last tick.
    """

    def __init__(
        self,
        *,
        sequence: Sequence[int],
        on_tick: Callable[[int], None],
        on_done: Callable[[], None],
        interval_s: float,
        timers: TimerQueue,
    ) -> None:
        if not sequence:
            raise ValueError("sequence must not be empty")
        if interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")

        self._sequence = tuple(sequence)
        self._on_tick = on_tick
        self._on_done = on_done
        self._interval_s = float(interval_s)
        self._timers = timers

        self._index = 0
        self._expected_s: float | None = None
        self._running = False
        self._started = False
        self._pending: TimerHandle | None = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._running = True
        self._expected_s = self._timers.clock.now() + self._interval_s

        self._emit_next()
        if self._finish_if_exhausted():
            return
        if not self._running:
            return
        self._pending = self._timers.call_later(self._interval_s, self._step)

    def stop(self) -> None:
        self._running = False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _step(self) -> None:
        self._pending = None
        if not self._running:
            return
        assert self._expected_s is not None

        self._emit_next()
        if self._finish_if_exhausted():
            return
        if not self._running:
            return

        # Positive when this firing overshot its slot.
        drift = self._timers.clock.now() - self._expected_s
        self._expected_s += self._interval_s
        self._pending = self._timers.call_later(max(0.0, self._interval_s - drift), self._step)

    def _emit_next(self) -> None:
        position = self._sequence[self._index]
        self._index += 1
        self._on_tick(position)

    def _finish_if_exhausted(self) -> bool:
        if self._index < len(self._sequence):
            return False
        # A tick handler may have stopped playback.
        if not self._running:
            return True
        self._running = False
        self._on_done()
        return True
