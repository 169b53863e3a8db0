from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from .clock import Clock
from .response_capture import ResponseCapture
from .sequence_ticker import SequenceTicker
from .simon_core import (
    CaptureState,
    PresentationMode,
    ResponseEvent,
    SimonTimingConfig,
    TrialConfig,
    TrialResult,
)
from .timers import TimerQueue

logger = logging.getLogger(__name__)


class StimulusDisplay(Protocol):
    def set_highlighted(self, position: int, highlighted: bool) -> None: ...


class ToneEmitter(Protocol):
    def play_tone(self, position: int, duration_s: float) -> None:
        """Start an audible tone for ``position`` lasting ``duration_s``."""
        ...


class SilentToneEmitter:
    """Tone emitter for hosts without audio output."""

    def play_tone(self, position: int, duration_s: float) -> None:
        return None


class SimonTrial:
    """One Simon trial: playback of the target sequence, then reproduction.

    Owns a SequenceTicker for the playback line and a ResponseCapture for the
    reproduction line, and routes both to the display / tone collaborators.
    ``finish`` is called exactly once with the TrialResult; after that the
    trial never touches the collaborators again.
    """

    def __init__(
        self,
        *,
        config: TrialConfig,
        clock: Clock,
        timers: TimerQueue,
        display: StimulusDisplay,
        tone: ToneEmitter,
        finish: Callable[[TrialResult], None],
        timing: SimonTimingConfig | None = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._timers = timers
        self._display = display
        self._tone = tone
        self._finish = finish
        self._timing = SimonTimingConfig() if timing is None else timing

        self._started = False
        self._aborted = False
        self._result: TrialResult | None = None

        self._ticker = SequenceTicker(
            sequence=config.sequence,
            on_tick=self._on_tick,
            on_done=self._on_playback_done,
            interval_s=self._timing.interval_s,
            timers=timers,
        )
        self._capture = ResponseCapture(
            sequence=config.sequence,
            clock=clock,
            on_finish=self._on_capture_finished,
            on_press=self._on_press_feedback,
            on_release=self._on_release_feedback,
            mismatch_policy=self._timing.mismatch_policy,
        )

    @property
    def config(self) -> TrialConfig:
        return self._config

    @property
    def state(self) -> CaptureState:
        return self._capture.state

    @property
    def finished(self) -> bool:
        return self._capture.state is CaptureState.FINISHED

    @property
    def result(self) -> TrialResult | None:
        return self._result

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        logger.debug(
            "trial start: mode=%s length=%d",
            self._config.mode.value,
            len(self._config.sequence),
        )
        self._ticker.start()

    def abort(self) -> None:
        """Tear the trial down without producing a result."""

        self._aborted = True
        self._ticker.stop()

    def press(self, position: int) -> bool:
        if self._aborted:
            return False
        return self._capture.press(position)

    def release(self, position: int) -> bool:
        if self._aborted:
            return False
        return self._capture.release(position)

    def _live(self) -> bool:
        return not self._aborted and self._result is None

    def _on_tick(self, position: int) -> None:
        self._display.set_highlighted(position, True)
        if self._config.mode is PresentationMode.AUDIOVISUAL:
            self._tone.play_tone(position, self._timing.blink_s)
        self._timers.call_later(self._timing.blink_s, lambda: self._release_blink(position))

    def _release_blink(self, position: int) -> None:
        if not self._live():
            return
        # The last tick is still lit when capture opens; a press owns it now.
        if self._capture.is_held(position):
            return
        self._display.set_highlighted(position, False)

    def _on_playback_done(self) -> None:
        if self._aborted:
            return
        self._capture.begin()

    def _on_press_feedback(self, position: int) -> None:
        self._display.set_highlighted(position, True)
        if self._config.mode is PresentationMode.AUDIOVISUAL:
            self._tone.play_tone(position, self._timing.blink_s)

    def _on_release_feedback(self, position: int) -> None:
        self._display.set_highlighted(position, False)

    def _on_capture_finished(self, response: tuple[ResponseEvent, ...], reaction_time_ms: int) -> None:
        if self._result is not None:
            return
        self._result = TrialResult(
            sequence=self._config.sequence,
            mode=self._config.mode,
            response=response,
            reaction_time_ms=int(reaction_time_ms),
        )
        logger.debug("trial finished: %d/%d responses", len(response), len(self._config.sequence))
        self._finish(self._result)


def build_simon_trial(
    *,
    sequence: Sequence[int],
    mode: PresentationMode | str,
    clock: Clock,
    timers: TimerQueue,
    display: StimulusDisplay,
    finish: Callable[[TrialResult], None],
    tone: ToneEmitter | None = None,
    timing: SimonTimingConfig | None = None,
) -> SimonTrial:
    """Validate the configuration and wire a trial. Raises TrialConfigError."""

    return SimonTrial(
        config=TrialConfig(sequence=tuple(sequence), mode=mode),
        clock=clock,
        timers=timers,
        display=display,
        tone=SilentToneEmitter() if tone is None else tone,
        finish=finish,
        timing=timing,
    )
