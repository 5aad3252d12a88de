"""Sequence data model: events, patterns, channels and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum

NUM_CHANNELS = 4
DEFAULT_STEP_TIME = 30


class Layer(IntEnum):
    """Memory layers edited through the numeric keypad."""

    CV1 = 0
    STEP_TIME = 1
    GATE_TIME = 2
    VELOCITY = 3
    CV2 = 4
    MPX = 5


class Field(IntEnum):
    """Fields shown in the current-event display."""

    PITCH = 0
    STEP_TIME = 1
    GATE_TIME = 2
    VELOCITY = 3
    CV2 = 4
    ACCENT = 5
    SLIDE = 6
    MPX = 7


class Mode(Enum):
    EDIT = "edit"
    PLAY = "play"


class InputMode(Enum):
    """What a typed number means when Enter is pressed."""

    NORMAL = "normal"
    INSERT_MULTI = "insert_multi"
    DELETE_MULTI = "delete_multi"
    DIVIDE = "divide"
    TEMPO_EDIT = "tempo_edit"
    TIMEBASE_EDIT = "timebase_edit"
    COPY_START_MEAS = "copy_start_meas"
    COPY_END_MEAS = "copy_end_meas"
    COPY_REPS = "copy_reps"
    COPY_TRANSPOSE = "copy_transpose"
    REPEAT_END = "repeat_end"
    DEFAULT_NOTE = "default_note"
    BASE_VELOCITY = "base_velocity"
    ROTATE_MEASURE = "rotate_measure"
    ROTATE_NOTES_ONLY = "rotate_notes_only"


@dataclass
class CopyState:
    """Arguments gathered by the multi-step copy command."""

    start_measure: int = 1
    end_measure: int = 1
    repetitions: int = 1
    transpose: int = 0
    insert_mode: bool = False


@dataclass
class Event:
    """One sequencer step. A pitch of -1 means unset."""

    pitch: int = 48
    step_time: int = DEFAULT_STEP_TIME
    gate_time: int = 0
    velocity: int = -1
    cv2: int = 64
    accent: bool = False
    slide: bool = False
    measure_end: bool = False
    mpx: bool = False


@dataclass
class RepeatMark:
    """A section played `count` times in total."""

    start_event: int = -1
    end_event: int = -1
    count: int = 2


def _blank_event() -> Event:
    return Event(pitch=-1, step_time=DEFAULT_STEP_TIME, gate_time=DEFAULT_STEP_TIME)


@dataclass
class Pattern:
    """A complete event list with its repeat marks."""

    events: list[Event] = field(default_factory=lambda: [_blank_event()])
    repeat_marks: list[RepeatMark] = field(default_factory=list)
    pending_repeat_start: int = -1


@dataclass
class Channel:
    """One of the four sequencer channels, holding one or more patterns."""

    patterns: list[Pattern] = field(default_factory=lambda: [Pattern()])
    active_pattern: int = 0
    cursor_pos: int = 0
    active_layer: int = 0
    field_cursor: int = 0

    @property
    def events(self) -> list[Event]:
        return self.patterns[self.active_pattern].events

    @property
    def repeat_marks(self) -> list[RepeatMark]:
        return self.patterns[self.active_pattern].repeat_marks

    @property
    def pending_repeat_start(self) -> int:
        return self.patterns[self.active_pattern].pending_repeat_start

    @pending_repeat_start.setter
    def pending_repeat_start(self, value: int) -> None:
        self.patterns[self.active_pattern].pending_repeat_start = value

    def clamp_cursor(self) -> None:
        """Keep the cursor inside the active event list."""
        events = self.events
        if not events:
            self.cursor_pos = 0
            return
        self.cursor_pos = max(0, min(self.cursor_pos, len(events) - 1))

    def measure_info(self, event_idx: int) -> tuple[int, int]:
        """Return the 1-based (measure, step within measure) of an event."""
        measure, step = 1, 1
        for event in self.events[: max(event_idx, 0)]:
            step += 1
            if event.measure_end:
                measure += 1
                step = 1
        return measure, step

    def find_measure_end(self, target_measure: int) -> int:
        """Exclusive end index of a 1-based measure."""
        events = self.events
        measure = 1
        for i, event in enumerate(events):
            if event.measure_end:
                if measure == target_measure:
                    return i + 1
                measure += 1
        return len(events)

    def find_measure_start(self, target_measure: int) -> int:
        """First event index of a 1-based measure."""
        if target_measure <= 1:
            return 0
        events = self.events
        measure = 1
        for i, event in enumerate(events):
            if event.measure_end:
                measure += 1
                if measure == target_measure:
                    return min(i + 1, len(events) - 1)
        return len(events) - 1

    def events_in_measure_range(self, start_measure: int, end_measure: int) -> list[Event]:
        """Copies of the events in measures start..end inclusive."""
        start_idx = self.find_measure_start(start_measure)
        end_idx = self.find_measure_end(end_measure)
        events = self.events
        if start_idx >= len(events) or start_idx >= end_idx:
            return []
        return [replace(e) for e in events[max(start_idx, 0) : end_idx]]

    def adjust_repeat_marks_for_insert(self, insert_idx: int, count: int = 1) -> None:
        """Shift repeat marks after `count` events were inserted at `insert_idx`."""
        for mark in self.repeat_marks:
            if mark.start_event >= insert_idx:
                mark.start_event += count
            if mark.end_event >= insert_idx:
                mark.end_event += count
        if self.pending_repeat_start >= insert_idx:
            self.pending_repeat_start += count

    def adjust_repeat_marks_for_delete(self, delete_idx: int, count: int = 1) -> None:
        """Drop or shift repeat marks after `count` events were removed at `delete_idx`."""
        end_del = delete_idx + count
        kept = []
        for mark in self.repeat_marks:
            if delete_idx <= mark.start_event < end_del or delete_idx <= mark.end_event < end_del:
                continue
            if mark.start_event >= end_del:
                mark.start_event -= count
            if mark.end_event >= end_del:
                mark.end_event -= count
            kept.append(mark)
        self.repeat_marks[:] = kept

        pending = self.pending_repeat_start
        if delete_idx <= pending < end_del:
            self.pending_repeat_start = -1
        elif pending >= end_del:
            self.pending_repeat_start = pending - count

    def measure_total_ticks(self, start_idx: int, end_idx: int) -> int:
        """Sum of step times of events in [start_idx, end_idx)."""
        return sum(e.step_time for e in self.events[max(start_idx, 0) : max(end_idx, 0)])


@dataclass
class Sequence:
    """The four channels plus global timing settings."""

    channels: list[Channel] = field(
        default_factory=lambda: [Channel() for _ in range(NUM_CHANNELS)]
    )
    active_channel: int = 0
    timebase: int = 120
    tempo: int = 120
    cycle_on: bool = True

    @property
    def channel(self) -> Channel:
        return self.channels[self.active_channel]


@dataclass
class Config:
    """Settings-panel values."""

    cv2_output_mode: int = 0
    mpx_output_cc: int = 1
    accent_boost: int = 32
    base_velocity: int = 90
    default_note: int = -1
    portamento_time: int = 50
    portamento_curve: int = 0
    pitch_bend_range: int = 48
    note_display_mode: int = 1


@dataclass
class ChannelSnapshot:
    """Undo/redo snapshot of one channel, all patterns included."""

    patterns: list[Pattern] = field(default_factory=list)
    active_pattern: int = 0
    cursor_pos: int = 0
    field_cursor: int = 0
    active_layer: int = 0


_NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


def midi_note_to_name(note: int) -> str:
    """Name a MIDI note, e.g. 48 -> 'C3'; out-of-range gives '---'."""
    if note < 0 or note > 127:
        return "---"
    return f"{_NOTE_NAMES[note % 12]}{note // 12 - 1}"


def pad_right(text: str, width: int) -> str:
    """Pad with spaces on the right, or truncate, to exactly `width`."""
    if len(text) >= width:
        return text[:width]
    return text.ljust(width)


def pad_left(text: str, width: int) -> str:
    """Pad with spaces on the left, or truncate, to exactly `width`."""
    if len(text) >= width:
        return text[:width]
    return text.rjust(width)