from __future__ import annotations

from dataclasses import dataclass

import pytest

from simon_task.response_capture import ResponseCapture
from simon_task.simon_core import CaptureState, MismatchPolicy, ResponseEvent


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


class Sink:
    def __init__(self) -> None:
        self.calls: list[tuple[tuple[ResponseEvent, ...], int]] = []
        self.feedback: list[tuple[str, int]] = []

    def on_finish(self, response: tuple[ResponseEvent, ...], rt_ms: int) -> None:
        self.calls.append((response, rt_ms))

    def on_press(self, position: int) -> None:
        self.feedback.append(("down", position))

    def on_release(self, position: int) -> None:
        self.feedback.append(("up", position))


def _capture(seq, clock: FakeClock, sink: Sink, policy: MismatchPolicy = MismatchPolicy.EARLY_EXIT) -> ResponseCapture:
    return ResponseCapture(
        sequence=seq,
        clock=clock,
        on_finish=sink.on_finish,
        on_press=sink.on_press,
        on_release=sink.on_release,
        mismatch_policy=policy,
    )


def _tap(cap: ResponseCapture, clock: FakeClock, position: int, *, wait_s: float, hold_s: float = 0.05) -> None:
    clock.advance(wait_s)
    assert cap.press(position) is True
    clock.advance(hold_s)
    assert cap.release(position) is True


def test_input_is_ignored_before_capture_begins() -> None:
    clock = FakeClock()
    sink = Sink()
    cap = _capture([0, 1], clock, sink)

    assert cap.state is CaptureState.AWAITING_PLAYBACK
    assert cap.press(0) is False
    assert cap.release(0) is False
    assert cap.responses() == []
    assert sink.feedback == []


def test_full_reproduction_records_deltas_and_reaction_time() -> None:
    clock = FakeClock(t=10.0)
    sink = Sink()
    cap = _capture([0, 1, 2, 3], clock, sink)
    cap.begin()
    assert cap.state is CaptureState.CAPTURING

    _tap(cap, clock, 0, wait_s=0.5)   # press at +500
    _tap(cap, clock, 1, wait_s=0.25)  # press at +800
    _tap(cap, clock, 2, wait_s=0.25)  # press at +1100
    assert sink.calls == []
    _tap(cap, clock, 3, wait_s=0.45)  # press at +1600

    assert cap.state is CaptureState.FINISHED
    assert len(sink.calls) == 1
    response, rt_ms = sink.calls[0]
    assert [e.position for e in response] == [0, 1, 2, 3]
    assert [e.delta_time_ms for e in response] == [500, 300, 300, 500]
    assert rt_ms == 1600
    assert sum(e.delta_time_ms for e in response) == rt_ms


def test_first_delta_is_anchored_at_capture_start() -> None:
    clock = FakeClock(t=3.0)
    sink = Sink()
    cap = _capture([2, 2], clock, sink)

    clock.advance(1.0)
    cap.begin()
    clock.advance(0.75)
    cap.press(2)

    assert cap.responses() == [ResponseEvent(position=2, delta_time_ms=750)]


def test_wrong_position_ends_trial_on_release() -> None:
    clock = FakeClock()
    sink = Sink()
    cap = _capture([0, 1, 2, 3], clock, sink)
    cap.begin()

    _tap(cap, clock, 0, wait_s=0.3)
    clock.advance(0.3)
    cap.press(2)
    assert cap.state is CaptureState.CAPTURING
    cap.release(2)

    assert cap.state is CaptureState.FINISHED
    response, rt_ms = sink.calls[0]
    assert [e.position for e in response] == [0, 2]
    assert rt_ms == 650


def test_full_length_policy_ignores_mismatches_until_length_reached() -> None:
    clock = FakeClock()
    sink = Sink()
    cap = _capture([0, 1, 2], clock, sink, policy=MismatchPolicy.FULL_LENGTH)
    cap.begin()

    _tap(cap, clock, 3, wait_s=0.2)
    _tap(cap, clock, 3, wait_s=0.2)
    assert cap.state is CaptureState.CAPTURING
    _tap(cap, clock, 2, wait_s=0.2)

    assert cap.state is CaptureState.FINISHED
    assert [e.position for e in sink.calls[0][0]] == [3, 3, 2]


def test_finished_capture_ignores_further_input() -> None:
    clock = FakeClock()
    sink = Sink()
    cap = _capture([1], clock, sink)
    cap.begin()
    _tap(cap, clock, 1, wait_s=0.2)

    assert cap.state is CaptureState.FINISHED
    assert cap.press(1) is False
    assert cap.release(1) is False
    cap.begin()
    assert cap.state is CaptureState.FINISHED
    assert len(sink.calls) == 1
    assert len(cap.responses()) == 1


def test_release_without_matching_press_is_a_no_op() -> None:
    clock = FakeClock()
    sink = Sink()
    cap = _capture([0, 1], clock, sink)
    cap.begin()

    assert cap.release(3) is False
    cap.press(0)
    assert cap.release(1) is False
    assert cap.state is CaptureState.CAPTURING
    assert sink.feedback == [("down", 0)]


def test_held_presses_never_exceed_sequence_length() -> None:
    clock = FakeClock()
    sink = Sink()
    cap = _capture([0, 1], clock, sink, policy=MismatchPolicy.FULL_LENGTH)
    cap.begin()

    assert cap.press(0) is True
    assert cap.press(1) is True
    assert cap.press(2) is False
    assert len(cap.responses()) == 2

    cap.release(0)
    assert cap.state is CaptureState.FINISHED


def test_out_of_range_press_is_rejected() -> None:
    clock = FakeClock()
    cap = _capture([0], clock, Sink())
    cap.begin()
    assert cap.press(4) is False
    assert cap.press(-1) is False
    assert cap.responses() == []


def test_empty_sequence_rejected() -> None:
    with pytest.raises(ValueError):
        ResponseCapture(sequence=[], clock=FakeClock(), on_finish=lambda r, rt: None)
