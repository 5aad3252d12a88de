"""Text rendering of the editor screen: status bar, current event, context view."""

from __future__ import annotations

import re

from . import edits
from .editor import Editor
from .model import Config, Event, Field, InputMode, Layer, midi_note_to_name, pad_left, pad_right

CONTEXT_LINES = 9
SEPARATOR_WIDTH = 64
PLAY_MARKER = "\u25c0"
_EMPTY_FLAG = "\u00b7"

_LAYER_NAMES = ("CV1", "ST", "GT", "VEL", "CV2", "MPX")
_FIELD_NAMES = ("Pitch", "StepT", "GateT", "Vel", "CV2", "Acc", "Slide", "MPX")

_PROMPTS = {
    InputMode.INSERT_MULTI: "INSERT COUNT: ",
    InputMode.DELETE_MULTI: "DELETE COUNT: ",
    InputMode.DIVIDE: "DIVIDE BY: ",
    InputMode.TEMPO_EDIT: "TEMPO: ",
    InputMode.TIMEBASE_EDIT: "TIMEBASE: ",
    InputMode.COPY_START_MEAS: "COPY START MEAS: ",
    InputMode.COPY_END_MEAS: "COPY END MEAS: ",
    InputMode.COPY_REPS: "REPETITIONS: ",
    InputMode.COPY_TRANSPOSE: "TRANSPOSE ST: ",
    InputMode.REPEAT_END: "REPEAT COUNT: ",
    InputMode.DEFAULT_NOTE: "DEFAULT NOTE: ",
    InputMode.BASE_VELOCITY: "BASE VELOCITY: ",
    InputMode.ROTATE_MEASURE: "ROTATE BY ST: ",
    InputMode.ROTATE_NOTES_ONLY: "ROTATE NOTES BY: ",
}

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _int_value(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def _effective_velocity(event: Event, config: Config) -> int:
    velocity = event.velocity if event.velocity >= 0 else config.base_velocity
    if event.accent:
        velocity = min(127, velocity + config.accent_boost)
    return velocity


def layer_name(layer: int) -> str:
    """Short name of a memory layer, '?' when out of range."""
    if 0 <= layer < len(_LAYER_NAMES):
        return _LAYER_NAMES[layer]
    return "?"


def field_name(field: int) -> str:
    """Short name of an event field, '?' when out of range."""
    if 0 <= field < len(_FIELD_NAMES):
        return _FIELD_NAMES[field]
    return "?"


def input_mode_prompt(mode: InputMode) -> str:
    """The prompt shown before the input buffer."""
    return _PROMPTS.get(mode, "> ")


def field_value_string(event: Event, field: int, config: Config) -> str:
    """Display text for one field of an event."""
    if field == Field.PITCH:
        if event.pitch < 0:
            return "---"
        return f"{midi_note_to_name(event.pitch)} ({event.pitch})"
    if field == Field.STEP_TIME:
        return f"ST:{event.step_time}"
    if field == Field.GATE_TIME:
        return f"GT:{event.gate_time}"
    if field == Field.VELOCITY:
        marker = "*" if event.velocity < 0 else ""
        return f"{_effective_velocity(event, config)}{marker}"
    if field == Field.CV2:
        return f"CV2:{event.cv2}"
    if field == Field.ACCENT:
        return "A" if event.accent else "-"
    if field == Field.SLIDE:
        return "S" if event.slide else "-"
    if field == Field.MPX:
        return "X" if event.mpx else "-"
    return ""


def status_line(editor: Editor) -> str:
    """Channel, layer, mode, timing, cycle, pattern and event count."""
    processor = editor.processor
    sequence = editor.sequence
    channel = editor.channel

    if processor.step_record_enabled:
        mode = "REC"
    else:
        mode = "PLAY" if processor.is_currently_playing else "EDIT"

    parts = [
        f"CH:{sequence.active_channel + 1}",
        f"[{layer_name(channel.active_layer)}]",
        mode,
        f"TB:{sequence.timebase}",
        f"T:{sequence.tempo}",
        f"CYC:{'ON' if sequence.cycle_on else 'OFF'}",
    ]
    if len(channel.patterns) > 1:
        parts.append(f"P:{channel.active_pattern + 1}/{len(channel.patterns)}")
    parts.append(str(len(channel.events)))
    return " ".join(parts)


def current_event_lines(editor: Editor) -> list[str]:
    """Position line and field line for the event at the cursor.

    A number typed in normal mode is previewed in the active field without
    being stored. The active field is shown in brackets.
    """
    channel = editor.channel
    if not channel.events:
        return ["(no events)"]

    event = channel.events[channel.cursor_pos]
    if editor.input_mode is InputMode.NORMAL and editor.input_buffer:
        event = edits.preview_event(
            event, channel.field_cursor, _int_value(editor.input_buffer)
        )

    measure, step = channel.measure_info(channel.cursor_pos)
    position = f"M:{measure:03d} S:{step:02d}"

    config = editor.processor.config
    cells = []
    for field in Field:
        value = field_value_string(event, field, config)
        cells.append(f"[{value}]" if field == channel.field_cursor else f" {value} ")
    return [position, "".join(cells).rstrip()]


def context_row(editor: Editor, event_idx: int) -> str:
    """One line of the event list around the cursor."""
    channel = editor.channel
    event = channel.events[event_idx]
    config = editor.processor.config
    is_cursor = event_idx == channel.cursor_pos

    if event.pitch < 0:
        pitch = "---"
    else:
        pitch = f"{midi_note_to_name(event.pitch)}({event.pitch})"

    flags = "".join(
        letter if on else _EMPTY_FLAG
        for letter, on in (
            ("A", event.accent),
            ("S", event.slide),
            ("M", event.measure_end),
            ("X", event.mpx),
        )
    )

    repeats = ""
    if channel.pending_repeat_start == event_idx:
        repeats += "R>"
    for mark in channel.repeat_marks:
        if mark.start_event == event_idx:
            repeats += "|:"
        if mark.end_event == event_idx:
            repeats += f"x{mark.count}:|"

    row = " ".join(
        [
            ">" if is_cursor else " ",
            f"{event_idx + 1:03d}",
            pad_right(pitch, 8),
            pad_left(str(event.step_time), 5),
            pad_left(str(event.gate_time), 5),
            pad_left(str(_effective_velocity(event, config)), 3),
            pad_left(str(event.cv2), 3),
            flags,
            repeats,
        ]
    ).rstrip()

    processor = editor.processor
    if processor.is_currently_playing:
        position = processor.engine.playback_position(editor.sequence.active_channel)
        if position == event_idx:
            row += f" {PLAY_MARKER}"
    return row


def context_rows(editor: Editor) -> list[str]:
    """The visible window of rows, centred on the cursor."""
    channel = editor.channel
    first = channel.cursor_pos - CONTEXT_LINES // 2
    indices = range(max(first, 0), min(first + CONTEXT_LINES, len(channel.events)))
    return [context_row(editor, idx) for idx in indices]


def input_line(editor: Editor) -> str:
    """Prompt, typed input and, in normal mode, the field it will go to."""
    line = f"{input_mode_prompt(editor.input_mode)}{editor.input_buffer}_"
    if editor.input_mode is InputMode.NORMAL:
        line += f" ({field_name(editor.channel.field_cursor)})"
    return line


def shift_map(editor: Editor) -> str:
    """The layer selector row with the active layer bracketed."""
    active = editor.channel.active_layer
    return " ".join(
        f"[{layer_name(layer)}]" if layer == active else f" {layer_name(layer)} "
        for layer in Layer
    )


def render(editor: Editor) -> str:
    """The whole editor screen as text."""
    separator = "-" * SEPARATOR_WIDTH
    lines = [status_line(editor), separator]
    lines.extend(current_event_lines(editor))
    lines.append(separator)
    lines.extend(context_rows(editor))
    lines.append(separator)
    lines.append(input_line(editor))
    lines.append(separator)
    lines.append(shift_map(editor))
    return "\n".join(lines)