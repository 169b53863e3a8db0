from __future__ import annotations

from dataclasses import dataclass

from .simon_core import PresentationMode, TrialResult


@dataclass(frozen=True, slots=True)
class TrialSummary:
    """Scored view of a finished trial.

    Latencies are the per-press deltas; the first one is measured from the
    start of the capture phase.
    """

    mode: PresentationMode
    sequence_length: int
    response_length: int
    correct_prefix: int
    is_correct: bool
    reaction_time_ms: int
    step_latencies_ms: tuple[int, ...]
    mean_latency_ms: float | None
    median_latency_ms: float | None


def correct_prefix_length(result: TrialResult) -> int:
    n = 0
    for target, event in zip(result.sequence, result.response):
        if event.position != target:
            break
        n += 1
    return n


def trial_summary_from_result(result: TrialResult) -> TrialSummary:
    latencies = tuple(int(e.delta_time_ms) for e in result.response)
    rts_ms = sorted(latencies)

    mean_ms: float | None
    median_ms: float | None
    if not rts_ms:
        mean_ms = None
        median_ms = None
    else:
        mean_ms = float(sum(rts_ms)) / float(len(rts_ms))
        mid = len(rts_ms) // 2
        if len(rts_ms) % 2 == 1:
            median_ms = float(rts_ms[mid])
        else:
            median_ms = float(rts_ms[mid - 1] + rts_ms[mid]) / 2.0

    prefix = correct_prefix_length(result)
    return TrialSummary(
        mode=result.mode,
        sequence_length=len(result.sequence),
        response_length=len(result.response),
        correct_prefix=prefix,
        is_correct=prefix == len(result.sequence) and len(result.response) == len(result.sequence),
        reaction_time_ms=int(result.reaction_time_ms),
        step_latencies_ms=latencies,
        mean_latency_ms=mean_ms,
        median_latency_ms=median_ms,
    )
