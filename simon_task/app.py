"""Pygame host shell for the Simon sequence-reproduction task.

The shell supplies the collaborators a trial needs (a four-button board that
can be highlighted and touched, and a tone emitter) and runs a list of trial
configurations one after another. Deterministic timing/capture/state lives in
simon_task/* core modules; nothing here decides when a trial ends.
"""

from __future__ import annotations

import logging
import math
from array import array
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

import pygame

from .clock import Clock, RealClock
from .results import trial_summary_from_result
from .sequences import MAIN_SEQUENCES, PRACTICE_SEQUENCES
from .simon_core import CaptureState, SimonTimingConfig, TrialConfig, TrialResult
from .timers import TimerQueue
from .trial import SimonTrial

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 720)
TARGET_FPS = 60

# Index is the position id: (idle, highlighted).
BUTTON_COLOURS: tuple[tuple[tuple[int, int, int], tuple[int, int, int]], ...] = (
    ((0x9B, 0x9E, 0x00), (0xFE, 0xFF, 0xBE)),
    ((0x00, 0x46, 0x80), (0xAD, 0xDA, 0xFF)),
    ((0x96, 0x00, 0x3E), (0xFF, 0xA1, 0xC8)),
    ((0x00, 0x75, 0x33), (0xAF, 0xFF, 0xD2)),
)

TONE_FREQUENCIES_HZ: tuple[float, ...] = (261.626, 195.998, 329.628, 391.995)

KEY_POSITIONS: dict[int, int] = {
    pygame.K_1: 0,
    pygame.K_2: 1,
    pygame.K_3: 2,
    pygame.K_4: 3,
    pygame.K_KP1: 2,
    pygame.K_KP2: 3,
    pygame.K_KP4: 0,
    pygame.K_KP5: 1,
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


class PygameToneEmitter:
    """Square-wave tones on pygame.mixer, one channel per board position.

    If the mixer cannot be initialised the emitter stays silent; trials run
    unchanged without audio.
    """

    _requested_rate = 22050
    _amp = 32767
    _gain = 0.22

    def __init__(self) -> None:
        self._available = False
        self._sample_rate = self._requested_rate
        self._out_channels = 1
        self._cache: dict[tuple[int, int], pygame.mixer.Sound] = {}
        self._channels: list[pygame.mixer.Channel] = []

        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._requested_rate, size=-16, channels=1, buffer=512)
            # pygame.init() may already have opened the mixer with its own format.
            freq, _size, out_channels = pygame.mixer.get_init()
            self._sample_rate = int(freq)
            self._out_channels = max(1, int(out_channels))
            pygame.mixer.set_num_channels(max(len(TONE_FREQUENCIES_HZ), int(pygame.mixer.get_num_channels())))
            self._channels = [pygame.mixer.Channel(i) for i in range(len(TONE_FREQUENCIES_HZ))]
            self._available = True
        except (pygame.error, NotImplementedError) as exc:
            logger.warning("audio unavailable, tones disabled: %s", exc)
            self._available = False

    @property
    def available(self) -> bool:
        return self._available

    def sound_for(self, position: int, duration_s: float) -> pygame.mixer.Sound | None:
        if not self._available:
            return None
        key = (int(position), int(round(duration_s * 1000.0)))
        sound = self._cache.get(key)
        if sound is None:
            pcm = self._render_square_pcm(TONE_FREQUENCIES_HZ[key[0]], duration_s)
            sound = pygame.mixer.Sound(buffer=pcm.tobytes())
            self._cache[key] = sound
        return sound

    def play_tone(self, position: int, duration_s: float) -> None:
        sound = self.sound_for(position, duration_s)
        if sound is None:
            return
        self._channels[int(position)].play(sound)

    def stop(self) -> None:
        for channel in self._channels:
            channel.stop()

    def _render_square_pcm(self, frequency_hz: float, duration_s: float) -> array[int]:
        sample_count = max(1, int(self._sample_rate * duration_s))
        fade_n = max(1, int(self._sample_rate * 0.004))
        out = array("h")
        for idx in range(sample_count):
            envelope = 1.0
            if idx < fade_n:
                envelope = idx / float(fade_n)
            tail = sample_count - idx - 1
            if tail < fade_n:
                envelope = min(envelope, tail / float(fade_n))
            phase = (2.0 * math.pi * float(frequency_hz) * idx) / float(self._sample_rate)
            sample = (1.0 if math.sin(phase) >= 0.0 else -1.0) * self._gain * max(0.0, envelope)
            value = int(max(-1.0, min(1.0, sample)) * self._amp)
            # Interleaved frames: one copy of the sample per output channel.
            for _ in range(self._out_channels):
                out.append(value)
        return out


class PygameBoard:
    """Four quarter-disc buttons around a central cutout.

    Implements the stimulus display protocol (``set_highlighted``) and maps
    pointer coordinates back to positions.
    """

    def __init__(self) -> None:
        self._highlighted: set[int] = set()
        self._rect = pygame.Rect(0, 0, 0, 0)

    def set_highlighted(self, position: int, highlighted: bool) -> None:
        if highlighted:
            self._highlighted.add(int(position))
        else:
            self._highlighted.discard(int(position))

    def is_highlighted(self, position: int) -> bool:
        return int(position) in self._highlighted

    def clear(self) -> None:
        self._highlighted.clear()

    def layout(self, surface_size: tuple[int, int]) -> pygame.Rect:
        w, h = surface_size
        side = int(min(w, h) * 0.75)
        self._rect = pygame.Rect(0, 0, side, side)
        self._rect.center = (w // 2, h // 2)
        return self._rect

    def position_at(self, point: tuple[int, int]) -> int | None:
        r = self._rect
        if r.w <= 0:
            return None
        dx = point[0] - r.centerx
        dy = point[1] - r.centery
        distance = math.hypot(dx, dy)
        # Only the drawn ring counts: outside the central cutout, inside the outer arc.
        if distance <= r.w * 0.25 or distance > r.w / 2:
            return None
        for position, button in enumerate(self._button_rects()):
            if button.collidepoint(point):
                return position
        return None

    def _button_rects(self) -> tuple[pygame.Rect, ...]:
        r = self._rect
        q = int(r.w * 0.475)
        return (
            pygame.Rect(r.left, r.top, q, q),
            pygame.Rect(r.right - q, r.top, q, q),
            pygame.Rect(r.left, r.bottom - q, q, q),
            pygame.Rect(r.right - q, r.bottom - q, q, q),
        )

    def render(self, surface: pygame.Surface) -> None:
        r = self.layout(surface.get_size())
        q = int(r.w * 0.475)
        for position, button in enumerate(self._button_rects()):
            idle, lit = BUTTON_COLOURS[position]
            colour = lit if position in self._highlighted else idle
            radii = {
                0: {"border_top_left_radius": q},
                1: {"border_top_right_radius": q},
                2: {"border_bottom_left_radius": q},
                3: {"border_bottom_right_radius": q},
            }[position]
            pygame.draw.rect(surface, colour, button, **radii)
        pygame.draw.circle(surface, (0, 0, 0), r.center, r.w // 4)


class _SessionStage(StrEnum):
    READY = "ready"
    TRIAL = "trial"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class SessionEntry:
    index: int
    result: TrialResult


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class SimonSessionScreen:
    """Runs trial configurations back to back.

    Each trial waits for Enter/Space before its sequence plays. Results are
    collected in order and handed to ``on_result`` as they arrive.
    """

    def __init__(
        self,
        app: App,
        *,
        trials: Sequence[TrialConfig],
        clock: Clock,
        tone: PygameToneEmitter,
        timing: SimonTimingConfig | None = None,
        on_result: Callable[[TrialResult], None] | None = None,
    ) -> None:
        self._app = app
        self._configs = list(trials)
        self._clock = clock
        self._timers = TimerQueue(clock)
        self._board = PygameBoard()
        self._tone = tone
        self._timing = timing
        self._on_result = on_result

        self._stage = _SessionStage.READY if self._configs else _SessionStage.DONE
        self._index = 0
        self._trial: SimonTrial | None = None
        self._entries: list[SessionEntry] = []

        # Pointer id -> position currently held by that pointer.
        self._held: dict[object, int] = {}

        self._title_font = pygame.font.Font(None, 42)
        self._text_font = pygame.font.Font(None, 30)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            self._abort()
            self._app.quit()
            return

        if self._stage is _SessionStage.READY:
            if event.type == pygame.KEYDOWN and event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
                self._start_trial()
            return

        if self._stage is _SessionStage.DONE:
            if event.type == pygame.KEYDOWN and event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self._app.quit()
            return

        # Touch input arrives as FINGER events; skip the emulated mouse copies.
        if event.type in (pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP) and getattr(event, "touch", False):
            return

        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self._pointer_down("mouse", self._board.position_at(event.pos))
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self._pointer_up("mouse")
        elif event.type == pygame.FINGERDOWN:
            w, h = pygame.display.get_surface().get_size()
            point = (int(event.x * w), int(event.y * h))
            self._pointer_down(("finger", event.finger_id), self._board.position_at(point))
        elif event.type == pygame.FINGERUP:
            self._pointer_up(("finger", event.finger_id))
        elif event.type == pygame.KEYDOWN and event.key in KEY_POSITIONS:
            self._pointer_down(("key", event.key), KEY_POSITIONS[event.key])
        elif event.type == pygame.KEYUP and event.key in KEY_POSITIONS:
            self._pointer_up(("key", event.key))

    def render(self, surface: pygame.Surface) -> None:
        self._timers.update()

        surface.fill((0, 0, 0))
        w, h = surface.get_size()

        if self._stage is _SessionStage.DONE:
            self._render_summary(surface)
            return

        self._board.render(surface)

        if self._stage is _SessionStage.READY:
            label = f"Sequence {self._index + 1} of {len(self._configs)}"
            title = self._title_font.render(label, True, (238, 245, 255))
            surface.blit(title, title.get_rect(midtop=(w // 2, 12)))
            hint = self._hint_font.render("Enter/Space: Start sequence  |  Esc: Quit", True, (186, 200, 224))
            surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 10)))
            return

        assert self._trial is not None
        if self._trial.state is CaptureState.CAPTURING:
            hint = self._hint_font.render(
                "Reproduce the sequence  |  Mouse/touch or keys 1-4",
                True,
                (186, 200, 224),
            )
            surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 10)))

    def _pointer_down(self, pointer: object, position: int | None) -> None:
        if position is None or self._trial is None:
            return
        self._held[pointer] = position
        self._trial.press(position)

    def _pointer_up(self, pointer: object) -> None:
        position = self._held.pop(pointer, None)
        if position is None or self._trial is None:
            return
        self._trial.release(position)

    def _start_trial(self) -> None:
        config = self._configs[self._index]
        self._board.clear()
        self._held.clear()
        self._trial = SimonTrial(
            config=config,
            clock=self._clock,
            timers=self._timers,
            display=self._board,
            tone=self._tone,
            finish=self._on_trial_finished,
            timing=self._timing,
        )
        self._stage = _SessionStage.TRIAL
        self._trial.start()

    def _on_trial_finished(self, result: TrialResult) -> None:
        self._entries.append(SessionEntry(index=self._index, result=result))
        summary = trial_summary_from_result(result)
        logger.info(
            "trial %d finished: %d/%d correct, rt=%d ms",
            self._index + 1,
            summary.correct_prefix,
            summary.sequence_length,
            summary.reaction_time_ms,
        )
        if self._on_result is not None:
            self._on_result(result)

        self._trial = None
        self._held.clear()
        self._board.clear()
        self._index += 1
        self._stage = _SessionStage.READY if self._index < len(self._configs) else _SessionStage.DONE

    def _abort(self) -> None:
        if self._trial is not None:
            self._trial.abort()
            self._trial = None
        self._timers.clear()
        self._tone.stop()

    def _render_summary(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        title = self._title_font.render("Session complete", True, (238, 245, 255))
        surface.blit(title, title.get_rect(midtop=(w // 2, 24)))

        y = 90
        for entry in self._entries:
            s = trial_summary_from_result(entry.result)
            mean = "n/a" if s.mean_latency_ms is None else f"{s.mean_latency_ms:.0f} ms"
            line = (
                f"{entry.index + 1:>2}. {s.mode.value:<11} "
                f"{s.correct_prefix}/{s.sequence_length} correct   "
                f"RT {s.reaction_time_ms} ms   mean step {mean}"
            )
            text = self._text_font.render(line, True, (238, 245, 255))
            surface.blit(text, (40, y))
            y += text.get_height() + 8

        hint = self._hint_font.render("Enter: Quit", True, (186, 200, 224))
        surface.blit(hint, hint.get_rect(midbottom=(w // 2, h - 10)))


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    trials: Sequence[TrialConfig] | None = None,
    on_result: Callable[[TrialResult], None] | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption("Simon Task")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    clock = pygame.time.Clock()

    app = App(surface=surface)
    configs = list(PRACTICE_SEQUENCES + MAIN_SEQUENCES) if trials is None else list(trials)
    session = SimonSessionScreen(
        app,
        trials=configs,
        clock=RealClock(),
        tone=PygameToneEmitter(),
        on_result=on_result,
    )
    app.push(session)

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
