from __future__ import annotations

import random
from dataclasses import dataclass
from enum import StrEnum

POSITIONS: tuple[int, ...] = (0, 1, 2, 3)

DEFAULT_INTERVAL_S = 0.270
DEFAULT_BLINK_S = 0.220


class TrialConfigError(ValueError):
    """Raised when a trial is built from a malformed configuration."""


class PresentationMode(StrEnum):
    VISUAL = "visual"
    AUDIOVISUAL = "audiovisual"


class MismatchPolicy(StrEnum):
    # End the trial on the first release whose press deviated from the target.
    EARLY_EXIT = "early_exit"
    # Only end once as many presses as sequence elements were captured.
    FULL_LENGTH = "full_length"


class CaptureState(StrEnum):
    AWAITING_PLAYBACK = "awaiting_playback"
    CAPTURING = "capturing"
    FINISHED = "finished"


@dataclass(frozen=True, slots=True)
class SimonTimingConfig:
    interval_s: float = DEFAULT_INTERVAL_S
    blink_s: float = DEFAULT_BLINK_S
    mismatch_policy: MismatchPolicy = MismatchPolicy.EARLY_EXIT

    def __post_init__(self) -> None:
        if self.interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")
        if self.blink_s <= 0.0:
            raise ValueError("blink_s must be > 0")


@dataclass(frozen=True, slots=True)
class TrialConfig:
    sequence: tuple[int, ...]
    mode: PresentationMode

    def __post_init__(self) -> None:
        seq = tuple(self.sequence)
        if not seq:
            raise TrialConfigError("sequence must contain at least one position")
        for p in seq:
            if not is_position(p):
                raise TrialConfigError(f"invalid position {p!r}; expected one of {POSITIONS}")
        try:
            mode = PresentationMode(self.mode)
        except ValueError:
            raise TrialConfigError(f"unknown presentation mode {self.mode!r}") from None
        object.__setattr__(self, "sequence", seq)
        object.__setattr__(self, "mode", mode)


@dataclass(frozen=True, slots=True)
class ResponseEvent:
    position: int
    delta_time_ms: int


@dataclass(frozen=True, slots=True)
class TrialResult:
    sequence: tuple[int, ...]
    mode: PresentationMode
    response: tuple[ResponseEvent, ...]
    reaction_time_ms: int


def is_position(value: object) -> bool:
    # bool is an int subclass but never a board position.
    return isinstance(value, int) and not isinstance(value, bool) and value in POSITIONS


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def choice(self, seq: tuple[int, ...]) -> int:
        return self._rng.choice(seq)
