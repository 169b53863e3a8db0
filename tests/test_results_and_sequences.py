from __future__ import annotations

import pytest

from simon_task.results import correct_prefix_length, trial_summary_from_result
from simon_task.sequences import MAIN_SEQUENCES, PRACTICE_SEQUENCES, SimonSequenceGenerator
from simon_task.simon_core import POSITIONS, PresentationMode, ResponseEvent, SeededRng, TrialResult


def _result(sequence, presses, deltas, mode=PresentationMode.VISUAL) -> TrialResult:
    response = tuple(ResponseEvent(position=p, delta_time_ms=d) for p, d in zip(presses, deltas))
    return TrialResult(
        sequence=tuple(sequence),
        mode=mode,
        response=response,
        reaction_time_ms=sum(deltas),
    )


def test_summary_of_correct_trial() -> None:
    s = trial_summary_from_result(_result([0, 1, 2, 3], [0, 1, 2, 3], [400, 300, 200, 500]))
    assert s.is_correct is True
    assert s.correct_prefix == 4
    assert s.reaction_time_ms == 1400
    assert s.step_latencies_ms == (400, 300, 200, 500)
    assert s.mean_latency_ms == pytest.approx(350.0)
    assert s.median_latency_ms == pytest.approx(350.0)


def test_summary_of_early_exit_trial() -> None:
    s = trial_summary_from_result(_result([0, 1, 2, 3], [0, 2], [600, 250]))
    assert s.is_correct is False
    assert s.correct_prefix == 1
    assert s.response_length == 2
    assert s.sequence_length == 4
    assert s.median_latency_ms == pytest.approx(425.0)


def test_summary_of_empty_response() -> None:
    s = trial_summary_from_result(_result([1], [], []))
    assert s.correct_prefix == 0
    assert s.mean_latency_ms is None
    assert s.median_latency_ms is None


def test_correct_prefix_stops_at_first_mismatch() -> None:
    assert correct_prefix_length(_result([1, 1, 2, 0], [1, 1, 0, 0], [1, 1, 1, 1])) == 2


def test_builtin_sequence_sets_alternate_modes() -> None:
    for block in (PRACTICE_SEQUENCES, MAIN_SEQUENCES):
        assert len(block) == 4
        assert [c.mode for c in block] == [
            PresentationMode.AUDIOVISUAL,
            PresentationMode.VISUAL,
            PresentationMode.AUDIOVISUAL,
            PresentationMode.VISUAL,
        ]
    assert all(len(c.sequence) == 8 for c in MAIN_SEQUENCES)


def test_generator_is_deterministic_for_same_seed() -> None:
    g1 = SimonSequenceGenerator(SeededRng(77))
    g2 = SimonSequenceGenerator(SeededRng(77))

    b1 = g1.next_block(lengths=[4, 6, 8])
    b2 = g2.next_block(lengths=[4, 6, 8])

    assert b1 == b2
    assert [len(c.sequence) for c in b1] == [4, 6, 8]
    assert [c.mode for c in b1] == [
        PresentationMode.AUDIOVISUAL,
        PresentationMode.VISUAL,
        PresentationMode.AUDIOVISUAL,
    ]
    assert all(p in POSITIONS for c in b1 for p in c.sequence)


def test_generator_rejects_empty_length() -> None:
    with pytest.raises(ValueError):
        SimonSequenceGenerator(SeededRng(1)).next_sequence(length=0)
