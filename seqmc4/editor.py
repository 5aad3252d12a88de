"""Keyboard-driven editor state: numeric entry, edit commands and undo history."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

from . import edits
from .model import Channel, CopyState, Field, InputMode, Sequence
from .processor import Processor

_DIGITS = "0123456789"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class SpecialKey(Enum):
    """Non-character keys the editor understands."""

    ESCAPE = "escape"
    BACKSPACE = "backspace"
    RETURN = "return"
    TAB = "tab"
    SPACE = "space"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    F1 = "f1"
    F2 = "f2"
    F3 = "f3"
    F4 = "f4"


_FUNCTION_KEYS = (SpecialKey.F1, SpecialKey.F2, SpecialKey.F3, SpecialKey.F4)

_LAYER_KEYS = {
    "1": 0, "!": 0,
    "2": 1, "@": 1,
    "3": 2, "#": 2, "\u00a3": 2,
    "4": 3, "$": 3,
    "5": 4, "%": 4,
    "6": 5, "^": 5,
}

_NUDGE_DELTAS = {
    SpecialKey.RIGHT: 1,
    SpecialKey.LEFT: -1,
    SpecialKey.UP: 10,
    SpecialKey.DOWN: -10,
}

_SIGNED_MODES = (
    InputMode.ROTATE_MEASURE,
    InputMode.ROTATE_NOTES_ONLY,
    InputMode.COPY_TRANSPOSE,
)


@dataclass(frozen=True)
class KeyPress:
    """A key with its modifiers. Letters are stored upper case.

    `numpad` marks keys from the numeric keypad (digits, '-' and '.').
    """

    key: str | SpecialKey
    shift: bool = False
    command: bool = False
    ctrl: bool = False
    numpad: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.key, str):
            if len(self.key) != 1:
                raise ValueError(f"a key must be a single character, got {self.key!r}")
            object.__setattr__(self, "key", self.key.upper())


def _int_value(text: str) -> int:
    """Leading integer of `text`, 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


class Editor:
    """The sequencer editor: interprets key presses against the processor's data."""

    MAX_UNDO_DEPTH = 50
    MAX_INPUT_DIGITS = 6

    def __init__(self, processor: Processor) -> None:
        self.processor = processor
        self.input_buffer = ""
        self.input_mode = InputMode.NORMAL
        self.copy_state = CopyState()
        self.undo_stack: list = []
        self.redo_stack: list = []

    @property
    def _lock(self):
        return self.processor.lock

    @property
    def sequence(self) -> Sequence:
        return self.processor.sequence

    @property
    def channel(self) -> Channel:
        """The channel currently being edited."""
        return self.processor.sequence.channel

    # ------------------------------------------------------------------
    # Step record

    def poll_step_record(self) -> int:
        """Write queued incoming notes at the cursor; returns how many were taken."""
        if not self.processor.step_record_enabled:
            return 0
        taken = 0
        while (note := self.processor.pop_midi_note()) is not None:
            pitch, velocity = note
            self.push_undo()
            with self._lock:
                edits.step_record(self.channel, pitch, velocity)
            taken += 1
        return taken

    # ------------------------------------------------------------------
    # Undo / redo

    def push_undo(self) -> None:
        """Save the channel for undo; a new edit discards the redo history."""
        with self._lock:
            self.undo_stack.append(edits.take_snapshot(self.channel))
            if len(self.undo_stack) > self.MAX_UNDO_DEPTH:
                del self.undo_stack[0]
            self.redo_stack.clear()

    def undo(self) -> None:
        if not self.undo_stack:
            return
        with self._lock:
            self.redo_stack.append(edits.take_snapshot(self.channel))
            edits.restore_snapshot(self.channel, self.undo_stack.pop())

    def redo(self) -> None:
        if not self.redo_stack:
            return
        with self._lock:
            self.undo_stack.append(edits.take_snapshot(self.channel))
            edits.restore_snapshot(self.channel, self.redo_stack.pop())

    # ------------------------------------------------------------------
    # Basic edits

    def advance_cursor(self) -> None:
        with self._lock:
            channel = self.channel
            if channel.cursor_pos < len(channel.events) - 1:
                channel.cursor_pos += 1

    def commit_value(self, value: int) -> None:
        """Store `value` in the active field of the event at the cursor."""
        self.push_undo()
        with self._lock:
            channel = self.channel
            if not channel.events:
                return
            edits.apply_field_value(
                channel.events[channel.cursor_pos], channel.field_cursor, value
            )

    # ------------------------------------------------------------------
    # Keyboard

    def key_pressed(self, key: KeyPress) -> bool:
        """Handle one key press; False if the key is not one the editor uses."""
        code = key.key

        if code is SpecialKey.ESCAPE:
            self.input_buffer = ""
            self.input_mode = InputMode.NORMAL
            return True

        if code is SpecialKey.BACKSPACE and not key.command:
            self.input_buffer = self.input_buffer[:-1]
            return True

        if code == "-" and self.input_mode in _SIGNED_MODES and not self.input_buffer:
            self.input_buffer = "-"
            return True

        if isinstance(code, str) and code in _DIGITS and (key.numpad or not key.shift):
            return self._handle_digit(code)

        if code is SpecialKey.RETURN:
            return self._handle_enter(key.command)

        if key.command and code == "Z":
            if key.shift:
                self.redo()
            else:
                self.undo()
            return True

        if key.command and code == "P":
            self.push_undo()
            with self._lock:
                edits.new_pattern(self.channel)
            return True

        if key.command and code is SpecialKey.BACKSPACE:
            with self._lock:
                if len(self.channel.patterns) <= 1:
                    return True
            self.push_undo()
            with self._lock:
                edits.delete_pattern(self.channel)
            return True

        for handler in (
            self._handle_channel_selection,
            self._handle_layer_selection,
            self._handle_nudge,
            self._handle_navigation,
            self._handle_transport,
            self._handle_edit_command,
        ):
            if handler(key):
                return True
        return False

    def _handle_digit(self, digit: str) -> bool:
        if len(self.input_buffer) < self.MAX_INPUT_DIGITS:
            self.input_buffer += digit
        return True

    def _handle_enter(self, should_advance: bool) -> bool:
        if not self.input_buffer:
            self.advance_cursor()
            return True

        value = _int_value(self.input_buffer)
        self.input_buffer = ""
        mode = self.input_mode
        next_mode = InputMode.NORMAL

        if mode is InputMode.NORMAL:
            self.commit_value(value)
            if should_advance:
                self.advance_cursor()
        elif mode is InputMode.INSERT_MULTI:
            with self._lock:
                edits.insert_events(self.channel, value)
        elif mode is InputMode.DELETE_MULTI:
            with self._lock:
                edits.delete_events(self.channel, value)
        elif mode is InputMode.DIVIDE:
            with self._lock:
                edits.divide_event(self.channel, value)
        elif mode is InputMode.TEMPO_EDIT:
            with self._lock:
                self.sequence.tempo = max(20, min(value, 300))
        elif mode is InputMode.TIMEBASE_EDIT:
            with self._lock:
                self.sequence.timebase = max(1, min(value, 960))
        elif mode is InputMode.COPY_START_MEAS:
            self.copy_state.start_measure = max(1, value)
            next_mode = InputMode.COPY_END_MEAS
        elif mode is InputMode.COPY_END_MEAS:
            self.copy_state.end_measure = max(self.copy_state.start_measure, value)
            next_mode = InputMode.COPY_REPS
        elif mode is InputMode.COPY_REPS:
            self.copy_state.repetitions = max(1, min(value, 99))
            next_mode = InputMode.COPY_TRANSPOSE
            self.input_buffer = "0"
        elif mode is InputMode.COPY_TRANSPOSE:
            self.copy_state.transpose = max(-127, min(127, value))
            with self._lock:
                edits.copy_measures(self.channel, self.copy_state)
        elif mode is InputMode.DEFAULT_NOTE:
            with self._lock:
                self.processor.config.default_note = (
                    -1 if value == 0 else max(0, min(value, 127))
                )
        elif mode is InputMode.BASE_VELOCITY:
            with self._lock:
                self.processor.config.base_velocity = max(1, min(value, 127))
        elif mode is InputMode.REPEAT_END:
            with self._lock:
                edits.add_repeat_mark(self.channel, value)
        elif mode in (InputMode.ROTATE_MEASURE, InputMode.ROTATE_NOTES_ONLY):
            with self._lock:
                edits.rotate_measure(
                    self.channel, value, mode is InputMode.ROTATE_NOTES_ONLY
                )

        self.input_mode = next_mode
        return True

    def _handle_channel_selection(self, key: KeyPress) -> bool:
        if key.key not in _FUNCTION_KEYS:
            return False
        with self._lock:
            self.sequence.active_channel = _FUNCTION_KEYS.index(key.key)
        self.undo_stack.clear()
        self.redo_stack.clear()
        return True

    def _handle_layer_selection(self, key: KeyPress) -> bool:
        if not key.shift or not isinstance(key.key, str):
            return False
        layer = _LAYER_KEYS.get(key.key)
        if layer is None:
            return False
        with self._lock:
            self.channel.active_layer = layer
            self.channel.field_cursor = edits.layer_to_field(layer)
        return True

    def _handle_nudge(self, key: KeyPress) -> bool:
        if not key.command:
            return False
        delta = _NUDGE_DELTAS.get(key.key) if isinstance(key.key, SpecialKey) else None
        if delta is None:
            return False
        self.push_undo()
        with self._lock:
            channel = self.channel
            if not channel.events:
                return False
            edits.nudge(
                channel.events[channel.cursor_pos],
                channel.field_cursor,
                delta,
                self.processor.config,
            )
        return True

    @staticmethod
    def _previous_measure(channel: Channel) -> None:
        measure, _ = channel.measure_info(channel.cursor_pos)
        channel.cursor_pos = channel.find_measure_start(measure - 1) if measure > 1 else 0

    @staticmethod
    def _next_measure(channel: Channel) -> None:
        measure, _ = channel.measure_info(channel.cursor_pos)
        channel.cursor_pos = channel.find_measure_start(measure + 1)
        channel.clamp_cursor()

    def _handle_navigation(self, key: KeyPress) -> bool:
        code = key.key
        if not isinstance(code, SpecialKey):
            return False
        with self._lock:
            channel = self.channel
            if key.shift and code is SpecialKey.UP:
                self._previous_measure(channel)
            elif key.shift and code is SpecialKey.DOWN:
                self._next_measure(channel)
            elif code is SpecialKey.UP:
                if channel.cursor_pos > 0:
                    channel.cursor_pos -= 1
            elif code is SpecialKey.DOWN:
                if channel.cursor_pos < len(channel.events) - 1:
                    channel.cursor_pos += 1
            elif code is SpecialKey.LEFT:
                if channel.field_cursor > 0:
                    channel.field_cursor -= 1
            elif code is SpecialKey.RIGHT:
                if channel.field_cursor < len(Field) - 1:
                    channel.field_cursor += 1
            elif code is SpecialKey.PAGE_UP:
                self._previous_measure(channel)
            elif code is SpecialKey.PAGE_DOWN:
                self._next_measure(channel)
            elif code is SpecialKey.HOME:
                channel.cursor_pos = 0
            elif code is SpecialKey.END:
                channel.cursor_pos = max(0, len(channel.events) - 1)
            else:
                return False
        return True

    def _enter_mode(self, mode: InputMode) -> bool:
        self.input_mode = mode
        self.input_buffer = ""
        return True

    def _handle_transport(self, key: KeyPress) -> bool:
        code = key.key
        shift = key.shift

        if code is SpecialKey.SPACE:
            if not self.processor.standalone:
                return False
            self.processor.standalone_play_request = not self.processor.standalone_play_request
            return True

        if code is SpecialKey.TAB:
            with self._lock:
                self.sequence.cycle_on = not self.sequence.cycle_on
            return True

        if shift and code == "T":
            return self._enter_mode(InputMode.TEMPO_EDIT)
        if shift and code == "B":
            return self._enter_mode(InputMode.TIMEBASE_EDIT)
        if shift and code == "N":
            return self._enter_mode(InputMode.DEFAULT_NOTE)
        if shift and code == "V":
            return self._enter_mode(InputMode.BASE_VELOCITY)

        if code == "N":
            self.processor.step_record_enabled = not self.processor.step_record_enabled
            return True

        if code == "S" and (shift or key.ctrl):
            host_bpm = self.processor.host_tempo
            if host_bpm > 0:
                with self._lock:
                    self.sequence.tempo = int(math.floor(host_bpm + 0.5))
            return True

        return False

    def _toggle_flag(self, name: str) -> bool:
        self.push_undo()
        with self._lock:
            channel = self.channel
            if channel.events:
                event = channel.events[channel.cursor_pos]
                setattr(event, name, not getattr(event, name))
        return True

    def _start_copy(self, insert_mode: bool) -> bool:
        self.copy_state = CopyState(insert_mode=insert_mode)
        with self._lock:
            measure, _ = self.channel.measure_info(self.channel.cursor_pos)
        self.copy_state.start_measure = measure
        self.input_mode = InputMode.COPY_END_MEAS
        self.input_buffer = str(measure)
        return True

    def _measure_end_key(self) -> bool:
        self.push_undo()
        with self._lock:
            channel = self.channel
            has_events = bool(channel.events)
            if has_events and channel.events[channel.cursor_pos].measure_end:
                channel.events[channel.cursor_pos].measure_end = False
                return True
        if has_events:
            if self.input_buffer:
                self.commit_value(_int_value(self.input_buffer))
                self.input_buffer = ""
            with self._lock:
                channel = self.channel
                channel.events[channel.cursor_pos].measure_end = True
        self.advance_cursor()
        return True

    def _handle_edit_command(self, key: KeyPress) -> bool:
        code = key.key
        shift = key.shift
        timebase = self.sequence.timebase

        if code == "I":
            self.push_undo()
            with self._lock:
                edits.insert_event(self.channel, timebase, before=shift)
            return True

        if code == "D":
            if shift:
                return self._enter_mode(InputMode.DELETE_MULTI)
            self.push_undo()
            with self._lock:
                edits.delete_event(self.channel, timebase)
            return True

        if code == "C":
            return self._start_copy(insert_mode=shift)

        if code == "R":
            with self._lock:
                if shift:
                    removed = edits.clear_repeat_marks_at_cursor(self.channel)
                else:
                    edits.toggle_repeat_start(self.channel)
                    return True
            if not removed:
                self._enter_mode(InputMode.REPEAT_END)
            return True

        if code == "V" and not shift:
            return self._enter_mode(InputMode.DIVIDE)

        if code == "J" and not shift:
            self.push_undo()
            with self._lock:
                edits.join_events(self.channel)
            return True

        if not shift and code in ("A", "S", "X"):
            return self._toggle_flag({"A": "accent", "S": "slide", "X": "mpx"}[code])

        if code == "X":
            self.push_undo()
            with self._lock:
                edits.clear_event(self.channel, timebase)
            return True

        if code == "M":
            if shift:
                return self._toggle_flag("measure_end")
            return self._measure_end_key()

        if code in ("[", "]"):
            self.push_undo()
            with self._lock:
                edits.shift_boundary(self.channel, later=code == "[", step=10 if shift else 1)
            return True

        if code == "." and (key.numpad or not shift):
            with self._lock:
                channel = self.channel
                if channel.events:
                    channel.events[channel.cursor_pos].gate_time = 0
            self.advance_cursor()
            return True

        if code == "T" and not shift:
            with self._lock:
                channel = self.channel
                if channel.events:
                    event = channel.events[channel.cursor_pos]
                    event.gate_time = event.step_time
            self.advance_cursor()
            return True

        if code == "O":
            return self._enter_mode(
                InputMode.ROTATE_NOTES_ONLY if shift else InputMode.ROTATE_MEASURE
            )

        if code == "P":
            self.push_undo()
            with self._lock:
                if shift:
                    edits.double_pattern(self.channel)
                else:
                    edits.commit_pattern(self.channel)
            return True

        if (code == "," and shift) or code == "<":
            self.push_undo()
            with self._lock:
                edits.previous_pattern(self.channel)
            return True

        if (code == "." and shift) or code == ">":
            self.push_undo()
            with self._lock:
                edits.next_pattern(self.channel)
            return True

        return False