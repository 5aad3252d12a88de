"""JSON persistence of the sequence and configuration."""

from __future__ import annotations

import json
import re
from typing import Any

from .model import (
    DEFAULT_STEP_TIME,
    NUM_CHANNELS,
    Channel,
    Config,
    Event,
    Pattern,
    RepeatMark,
    Sequence,
)

STATE_VERSION = 1

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _as_int(value: Any) -> int:
    """Loose integer conversion: missing or unconvertible values become 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return 0
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else 0
    return 0


def _as_bool(value: Any) -> bool:
    """Loose boolean conversion: missing values are False."""
    if isinstance(value, (bool, int, float)):
        return bool(value)
    if isinstance(value, str):
        return _as_int(value) != 0 or value.strip().lower() == "true"
    return False


def _get_int(data: dict, key: str) -> int:
    return _as_int(data.get(key))


def _get_bool(data: dict, key: str) -> bool:
    return _as_bool(data.get(key))


def _rest_event() -> Event:
    return Event(pitch=-1, gate_time=DEFAULT_STEP_TIME)


def event_to_dict(event: Event) -> dict:
    return {
        "p": event.pitch,
        "st": event.step_time,
        "gt": event.gate_time,
        "vel": event.velocity,
        "cv2": event.cv2,
        "acc": event.accent,
        "sld": event.slide,
        "mend": event.measure_end,
        "mpx": event.mpx,
    }


def event_from_dict(data: Any) -> Event:
    """Build an event; a non-object gives a default event, missing keys give 0/False."""
    if not isinstance(data, dict):
        return Event()
    return Event(
        pitch=_get_int(data, "p"),
        step_time=_get_int(data, "st"),
        gate_time=_get_int(data, "gt"),
        velocity=_get_int(data, "vel"),
        cv2=_get_int(data, "cv2"),
        accent=_get_bool(data, "acc"),
        slide=_get_bool(data, "sld"),
        measure_end=_get_bool(data, "mend"),
        mpx=_get_bool(data, "mpx"),
    )


def repeat_mark_to_dict(mark: RepeatMark) -> dict:
    return {"start": mark.start_event, "end": mark.end_event, "count": mark.count}


def repeat_mark_from_dict(data: Any) -> RepeatMark:
    if not isinstance(data, dict):
        return RepeatMark()
    return RepeatMark(
        start_event=_get_int(data, "start"),
        end_event=_get_int(data, "end"),
        count=_get_int(data, "count"),
    )


def pattern_to_dict(pattern: Pattern) -> dict:
    return {
        "events": [event_to_dict(e) for e in pattern.events],
        "repeats": [repeat_mark_to_dict(m) for m in pattern.repeat_marks],
    }


def _pattern_from_parts(events: list, repeats: Any) -> Pattern:
    pattern = Pattern(events=[event_from_dict(e) for e in events])
    if not pattern.events:
        pattern.events.append(_rest_event())
    if isinstance(repeats, list):
        pattern.repeat_marks = [repeat_mark_from_dict(m) for m in repeats]
    return pattern


def pattern_from_dict(data: Any) -> Pattern:
    """Build a pattern; an empty event list becomes a single rest."""
    if not isinstance(data, dict):
        return Pattern(events=[])
    events = data.get("events")
    return _pattern_from_parts(events if isinstance(events, list) else [], data.get("repeats"))


def channel_to_dict(channel: Channel) -> dict:
    return {
        "patterns": [pattern_to_dict(p) for p in channel.patterns],
        "activePat": channel.active_pattern,
        "cursor": channel.cursor_pos,
        "layer": channel.active_layer,
        "field": channel.field_cursor,
    }


def load_channel(data: Any, channel: Channel) -> None:
    """Update `channel` in place; also reads the older single-pattern layout."""
    if not isinstance(data, dict):
        return
    patterns = data.get("patterns")
    legacy_events = data.get("events")
    if isinstance(patterns, list):
        channel.patterns = [pattern_from_dict(p) for p in patterns] or [Pattern()]
    elif isinstance(legacy_events, list):
        channel.patterns = [_pattern_from_parts(legacy_events, data.get("repeats"))]

    channel.active_pattern = max(0, min(len(channel.patterns) - 1, _get_int(data, "activePat")))
    channel.cursor_pos = _get_int(data, "cursor")
    channel.active_layer = _get_int(data, "layer")
    channel.field_cursor = _get_int(data, "field")
    channel.clamp_cursor()


def config_to_dict(config: Config) -> dict:
    return {
        "cv2Mode": config.cv2_output_mode,
        "mpxCC": config.mpx_output_cc,
        "accentBoost": config.accent_boost,
        "baseVel": config.base_velocity,
        "defaultNote": config.default_note,
        "portTime": config.portamento_time,
        "portCurve": config.portamento_curve,
        "pbRange": config.pitch_bend_range,
        "noteDisplay": config.note_display_mode,
    }


def load_config(data: Any, config: Config) -> None:
    """Update `config` in place from a settings object."""
    if not isinstance(data, dict):
        return
    config.cv2_output_mode = _get_int(data, "cv2Mode")
    config.mpx_output_cc = _get_int(data, "mpxCC")
    config.accent_boost = _get_int(data, "accentBoost")
    config.base_velocity = _get_int(data, "baseVel")
    config.default_note = _get_int(data, "defaultNote")
    config.portamento_time = _get_int(data, "portTime")
    config.portamento_curve = _get_int(data, "portCurve")
    config.pitch_bend_range = _get_int(data, "pbRange")
    config.note_display_mode = _get_int(data, "noteDisplay")


def dump_state(sequence: Sequence, config: Config) -> bytes:
    """Serialise the sequence and configuration to UTF-8 JSON."""
    root = {
        "version": STATE_VERSION,
        "sequence": {
            "channels": [channel_to_dict(c) for c in sequence.channels[:NUM_CHANNELS]],
            "activeCh": sequence.active_channel,
            "timebase": sequence.timebase,
            "tempo": sequence.tempo,
            "cycle": sequence.cycle_on,
        },
        "config": config_to_dict(config),
    }
    return json.dumps(root, indent=2).encode("utf-8")


def load_state(data: bytes | str, sequence: Sequence, config: Config) -> None:
    """Apply saved JSON state to `sequence` and `config` in place.

    Raises ValueError if the data is not JSON or not a known state format.
    """
    try:
        root = json.loads(data)
    except ValueError as exc:
        raise ValueError("state is not valid JSON") from exc
    if not isinstance(root, dict) or _get_int(root, "version") < 1:
        raise ValueError("unknown state format")

    seq_data = root.get("sequence")
    if isinstance(seq_data, dict):
        channels = seq_data.get("channels")
        if isinstance(channels, list):
            for channel_data, channel in zip(channels[:NUM_CHANNELS], sequence.channels):
                load_channel(channel_data, channel)
        sequence.active_channel = max(0, min(NUM_CHANNELS - 1, _get_int(seq_data, "activeCh")))
        sequence.timebase = max(1, _get_int(seq_data, "timebase"))
        sequence.tempo = max(20, min(300, _get_int(seq_data, "tempo")))
        sequence.cycle_on = _get_bool(seq_data, "cycle")

    config_data = root.get("config")
    if config_data is not None:
        load_config(config_data, config)