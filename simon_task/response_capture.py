from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from .clock import Clock, to_ms
from .simon_core import CaptureState, MismatchPolicy, ResponseEvent, is_position

logger = logging.getLogger(__name__)


class ResponseCapture:
    """AWAITING_PLAYBACK -> CAPTURING -> FINISHED.

    Press/release signals are only honoured while CAPTURING. A press is
    recorded with the time since the previous accepted press (or since
    capture began); termination is evaluated after each release of a held
    position. ``on_finish`` receives the frozen response list and the
    reaction time exactly once.
    """

    def __init__(
        self,
        *,
        sequence: Sequence[int],
        clock: Clock,
        on_finish: Callable[[tuple[ResponseEvent, ...], int], None],
        on_press: Callable[[int], None] | None = None,
        on_release: Callable[[int], None] | None = None,
        mismatch_policy: MismatchPolicy = MismatchPolicy.EARLY_EXIT,
    ) -> None:
        if not sequence:
            raise ValueError("sequence must not be empty")
        self._sequence = tuple(sequence)
        self._clock = clock
        self._on_finish = on_finish
        self._on_press = on_press
        self._on_release = on_release
        self._policy = MismatchPolicy(mismatch_policy)

        self._state = CaptureState.AWAITING_PLAYBACK
        self._response: list[ResponseEvent] = []
        self._held: set[int] = set()
        # Whole-millisecond anchors so the deltas always sum to the reaction time.
        self._started_at_ms: int | None = None
        self._last_event_at_ms: int | None = None

    @property
    def state(self) -> CaptureState:
        return self._state

    def responses(self) -> list[ResponseEvent]:
        return list(self._response)

    def is_held(self, position: int) -> bool:
        return position in self._held

    def begin(self) -> None:
        if self._state is not CaptureState.AWAITING_PLAYBACK:
            return
        now_ms = to_ms(self._clock.now())
        self._state = CaptureState.CAPTURING
        self._started_at_ms = now_ms
        self._last_event_at_ms = now_ms
        self._response.clear()
        self._held.clear()
        logger.debug("capture started for sequence of length %d", len(self._sequence))

    def press(self, position: int) -> bool:
        """Record a button-down. Returns True if the press was accepted."""

        if self._state is not CaptureState.CAPTURING or not is_position(position):
            return False
        if len(self._response) >= len(self._sequence):
            return False
        assert self._last_event_at_ms is not None

        now_ms = to_ms(self._clock.now())
        self._response.append(
            ResponseEvent(
                position=int(position),
                delta_time_ms=max(0, now_ms - self._last_event_at_ms),
            )
        )
        self._last_event_at_ms = now_ms
        self._held.add(int(position))

        if self._on_press is not None:
            self._on_press(int(position))
        return True

    def release(self, position: int) -> bool:
        """Handle a button-up. Returns True if the release was accepted."""

        if self._state is not CaptureState.CAPTURING or position not in self._held:
            return False
        self._held.discard(position)

        if self._on_release is not None:
            self._on_release(int(position))

        if self._should_terminate():
            self._finish()
        return True

    def _should_terminate(self) -> bool:
        n = len(self._response)
        if n >= len(self._sequence):
            return True
        if self._policy is MismatchPolicy.FULL_LENGTH or n == 0:
            return False
        return self._response[-1].position != self._sequence[n - 1]

    def _finish(self) -> None:
        assert self._started_at_ms is not None
        assert self._last_event_at_ms is not None
        self._state = CaptureState.FINISHED
        self._held.clear()
        rt_ms = max(0, self._last_event_at_ms - self._started_at_ms)
        logger.debug("capture finished: %d responses, rt=%d ms", len(self._response), rt_ms)
        self._on_finish(tuple(self._response), rt_ms)
