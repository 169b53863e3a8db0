from __future__ import annotations

from .simon_core import POSITIONS, PresentationMode, SeededRng, TrialConfig

_AV = PresentationMode.AUDIOVISUAL
_V = PresentationMode.VISUAL

PRACTICE_SEQUENCES: tuple[TrialConfig, ...] = (
    TrialConfig(sequence=(0, 1, 0, 1), mode=_AV),
    TrialConfig(sequence=(0, 1, 1, 0), mode=_V),
    TrialConfig(sequence=(0, 1, 2, 0, 1, 2), mode=_AV),
    TrialConfig(sequence=(0, 3, 2, 1, 3, 2, 1, 0), mode=_V),
)

MAIN_SEQUENCES: tuple[TrialConfig, ...] = (
    TrialConfig(sequence=(3, 1, 1, 2, 3, 0, 3, 1), mode=_AV),
    TrialConfig(sequence=(1, 1, 2, 0, 0, 3, 0, 0), mode=_V),
    TrialConfig(sequence=(1, 1, 0, 0, 1, 1, 3, 3), mode=_AV),
    TrialConfig(sequence=(2, 0, 0, 2, 2, 1, 1, 0), mode=_V),
)


class SimonSequenceGenerator:
    """Deterministic random sequences for ad-hoc blocks."""

    def __init__(self, rng: SeededRng) -> None:
        self._rng = rng

    def next_sequence(self, *, length: int) -> tuple[int, ...]:
        if length < 1:
            raise ValueError("length must be >= 1")
        return tuple(int(self._rng.choice(POSITIONS)) for _ in range(int(length)))

    def next_block(self, *, lengths: list[int], first_mode: PresentationMode = _AV) -> list[TrialConfig]:
        # Modes alternate trial by trial, starting from first_mode.
        other = _V if first_mode is _AV else _AV
        block: list[TrialConfig] = []
        for i, n in enumerate(lengths):
            mode = first_mode if i % 2 == 0 else other
            block.append(TrialConfig(sequence=self.next_sequence(length=n), mode=mode))
        return block
