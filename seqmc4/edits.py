"""Editing operations on a channel's active pattern, as driven by the editor keys."""

from __future__ import annotations

import copy
from dataclasses import dataclass, replace

from .model import Channel, ChannelSnapshot, Config, CopyState, Event, Field, Pattern, RepeatMark

MAX_TICKS = 61690
MAX_INSERT = 999
MAX_DIVISOR = 64
MAX_REPEAT_COUNT = 99

_LAYER_FIELDS = (
    Field.PITCH,
    Field.STEP_TIME,
    Field.GATE_TIME,
    Field.VELOCITY,
    Field.CV2,
    Field.MPX,
)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _quarter(timebase: int) -> int:
    return max(1, timebase // 4)


def layer_to_field(layer: int) -> Field:
    """The event field a memory layer edits; unknown layers map to pitch."""
    if 0 <= layer < len(_LAYER_FIELDS):
        return _LAYER_FIELDS[layer]
    return Field.PITCH


def apply_field_value(event: Event, field: int, value: int) -> None:
    """Store a typed value in one field of `event`, clamped to its range."""
    if field == Field.PITCH:
        event.pitch = _clamp(value, 0, 127)
    elif field == Field.STEP_TIME:
        event.step_time = _clamp(value, 1, MAX_TICKS)
    elif field == Field.GATE_TIME:
        event.gate_time = _clamp(value, 0, MAX_TICKS)
    elif field == Field.VELOCITY:
        event.velocity = _clamp(value, 1, 127)
    elif field == Field.CV2:
        event.cv2 = _clamp(value, 0, 127)
    elif field == Field.ACCENT:
        event.accent = value != 0
    elif field == Field.SLIDE:
        event.slide = value != 0
    elif field == Field.MPX:
        event.mpx = value != 0


def preview_event(event: Event, field: int, value: int) -> Event:
    """A copy of `event` with `value` applied, leaving `event` untouched."""
    preview = replace(event)
    apply_field_value(preview, field, value)
    return preview


def nudge(event: Event, field: int, delta: int, config: Config) -> None:
    """Step a field up or down; +-10 on pitch means an octave, flags just toggle."""
    if field == Field.PITCH:
        if delta == 10:
            delta = 12
        elif delta == -10:
            delta = -12
        if event.pitch < 0:
            event.pitch = config.default_note if config.default_note >= 0 else 48
        event.pitch = _clamp(event.pitch + delta, 0, 127)
    elif field == Field.STEP_TIME:
        event.step_time = _clamp(event.step_time + delta, 1, MAX_TICKS)
    elif field == Field.GATE_TIME:
        event.gate_time = _clamp(event.gate_time + delta, 0, MAX_TICKS)
    elif field == Field.VELOCITY:
        if event.velocity < 0:
            event.velocity = config.base_velocity
        event.velocity = _clamp(event.velocity + delta, 1, 127)
    elif field == Field.CV2:
        event.cv2 = _clamp(event.cv2 + delta, 0, 127)
    elif field == Field.ACCENT:
        event.accent = not event.accent
    elif field == Field.SLIDE:
        event.slide = not event.slide
    elif field == Field.MPX:
        event.mpx = not event.mpx


def insert_events(channel: Channel, count: int) -> int:
    """Insert `count` (1..999) default events at the cursor; returns how many."""
    count = _clamp(count, 1, MAX_INSERT)
    pos = channel.cursor_pos
    channel.adjust_repeat_marks_for_insert(pos, count)
    channel.events[pos:pos] = [Event() for _ in range(count)]
    return count


def delete_events(channel: Channel, count: int) -> int:
    """Delete up to `count` events from the cursor on; returns how many went."""
    events = channel.events
    if not events:
        return 0
    pos = channel.cursor_pos
    count = max(1, min(count, len(events) - pos))
    channel.adjust_repeat_marks_for_delete(pos, count)
    del events[pos : pos + count]
    channel.clamp_cursor()
    return count


def divide_event(channel: Channel, divisor: int) -> bool:
    """Split the event at the cursor into `divisor` (2..64) sub-steps."""
    events = channel.events
    if not events or divisor < 2:
        return False
    n = min(divisor, MAX_DIVISOR)
    pos = channel.cursor_pos
    orig = events[pos]
    sub_step = orig.step_time // n
    remainder = orig.step_time - sub_step * n
    sounded = orig.gate_time

    subs = []
    for i in range(n):
        last = i == n - 1
        if sounded >= sub_step:
            gate = sub_step
            sounded -= sub_step
        elif sounded > 0:
            gate = sounded
            sounded = 0
        else:
            gate = 0
        subs.append(
            Event(
                pitch=orig.pitch,
                step_time=sub_step + remainder if last else sub_step,
                gate_time=gate,
                cv2=orig.cv2,
                accent=orig.accent if i == 0 else False,
                slide=False,
                mpx=orig.mpx if i == 0 else False,
                measure_end=orig.measure_end if last else False,
            )
        )
    events[pos : pos + 1] = subs
    return True


def copy_measures(channel: Channel, copy_state: CopyState) -> int:
    """Copy a measure range to the cursor, overwriting or inserting.

    Returns the number of events written.
    """
    source = channel.events_in_measure_range(copy_state.start_measure, copy_state.end_measure)
    if not source:
        return 0
    if copy_state.transpose != 0:
        for event in source:
            event.pitch = _clamp(event.pitch + copy_state.transpose, 0, 127)

    events = channel.events
    pos = channel.cursor_pos
    if copy_state.insert_mode:
        for _ in range(copy_state.repetitions):
            events[pos:pos] = [replace(e) for e in source]
    else:
        for rep in range(copy_state.repetitions):
            dest = pos + rep * len(source)
            for offset, event in enumerate(source):
                idx = dest + offset
                if idx < len(events):
                    events[idx] = replace(event)
                else:
                    events.append(replace(event))
    return len(source) * copy_state.repetitions


def add_repeat_mark(channel: Channel, count: int) -> RepeatMark | None:
    """Close the pending repeat at the cursor, played `count` (2..99) times."""
    count = _clamp(count, 2, MAX_REPEAT_COUNT)
    pending = channel.pending_repeat_start
    if pending < 0 or channel.cursor_pos < pending:
        return None
    mark = RepeatMark(start_event=pending, end_event=channel.cursor_pos, count=count)
    channel.repeat_marks.append(mark)
    channel.pending_repeat_start = -1
    return mark


def toggle_repeat_start(channel: Channel) -> None:
    """Set the pending repeat start at the cursor, or cancel it if already there."""
    if channel.pending_repeat_start == channel.cursor_pos:
        channel.pending_repeat_start = -1
    else:
        channel.pending_repeat_start = channel.cursor_pos


def clear_repeat_marks_at_cursor(channel: Channel) -> bool:
    """Remove repeat marks starting or ending at the cursor; True if any went."""
    pos = channel.cursor_pos
    marks = channel.repeat_marks
    kept = [m for m in marks if m.start_event != pos and m.end_event != pos]
    removed = len(kept) != len(marks)
    marks[:] = kept
    return removed


@dataclass
class _NoteData:
    pitch: int
    velocity: int
    accent: bool
    slide: bool


def _rotate_notes(channel: Channel, start: int, end: int, rotate_ticks: int, total: int) -> bool:
    events = channel.events
    positions = [
        i for i in range(start, end) if events[i].pitch >= 0 and events[i].gate_time > 0
    ]
    if len(positions) < 2:
        return False
    notes = [
        _NoteData(events[i].pitch, events[i].velocity, events[i].accent, events[i].slide)
        for i in positions
    ]
    count = len(notes)
    avg = total // count
    rotation = rotate_ticks // avg if avg > 0 else 1
    rotation = max(rotation, 1) % count
    rotated = notes[rotation:] + notes[:rotation]
    for idx, note in zip(positions, rotated):
        event = events[idx]
        event.pitch = note.pitch
        event.velocity = note.velocity
        event.accent = note.accent
        event.slide = note.slide
    return True


def _rotate_full(channel: Channel, start: int, end: int, rotate_ticks: int) -> bool:
    events = channel.events
    accumulated = 0
    split = start
    for i in range(start, end):
        accumulated += events[i].step_time
        if accumulated >= rotate_ticks:
            if accumulated > rotate_ticks:
                overshoot = accumulated - rotate_ticks
                events[i].step_time -= overshoot
                second = replace(events[i], step_time=overshoot, pitch=-1, gate_time=0)
                events.insert(i + 1, second)
                end += 1
            split = i + 1
            break

    if not start < split < end:
        return False
    had_measure_end = events[end - 1].measure_end
    head = [replace(e, measure_end=False) for e in events[start:split]]
    tail = [replace(e, measure_end=False) for e in events[split:end]]
    events[start:end] = tail + head
    events[end - 1].measure_end = had_measure_end
    return True


def rotate_measure(channel: Channel, ticks: int, notes_only: bool) -> bool:
    """Rotate the cursor's measure by `ticks` (negative rotates backwards).

    With `notes_only` the rhythm stays and only pitch, velocity, accent and
    slide move between the sounding steps. Returns True if anything changed.
    """
    measure, _ = channel.measure_info(channel.cursor_pos)
    start = channel.find_measure_start(measure)
    end = channel.find_measure_end(measure)
    if end - start < 2:
        return False
    total = channel.measure_total_ticks(start, end)
    if total <= 0:
        return False
    rotate_ticks = ticks % total
    if rotate_ticks == 0:
        return False
    if notes_only:
        return _rotate_notes(channel, start, end, rotate_ticks, total)
    return _rotate_full(channel, start, end, rotate_ticks)


def insert_event(channel: Channel, timebase: int, before: bool) -> None:
    """Insert a legato rest of a quarter timebase before or after the cursor."""
    quarter = _quarter(timebase)
    new = Event(pitch=-1, step_time=quarter, gate_time=quarter)
    if before:
        pos = channel.cursor_pos
        channel.adjust_repeat_marks_for_insert(pos)
        channel.events.insert(pos, new)
    else:
        pos = channel.cursor_pos + 1
        channel.adjust_repeat_marks_for_insert(pos)
        channel.events.insert(pos, new)
        channel.cursor_pos = pos


def delete_event(channel: Channel, timebase: int) -> None:
    """Delete the event at the cursor, leaving a rest if the list would empty."""
    events = channel.events
    if not events:
        return
    channel.adjust_repeat_marks_for_delete(channel.cursor_pos)
    del events[channel.cursor_pos]
    if not events:
        events.append(Event(pitch=-1, gate_time=_quarter(timebase)))
    channel.clamp_cursor()


def join_events(channel: Channel) -> bool:
    """Merge the event after the cursor into the cursor's event."""
    events = channel.events
    pos = channel.cursor_pos
    if pos >= len(events) - 1:
        return False
    a, b = events[pos], events[pos + 1]
    if a.gate_time >= a.step_time:
        a.gate_time += b.gate_time
    a.step_time += b.step_time
    a.measure_end = a.measure_end or b.measure_end
    del events[pos + 1]
    return True


def clear_event(channel: Channel, timebase: int) -> None:
    """Reset the cursor's event to a rest, keeping its step time and measure end."""
    events = channel.events
    if not events:
        return
    old = events[channel.cursor_pos]
    events[channel.cursor_pos] = Event(
        pitch=-1,
        step_time=old.step_time,
        gate_time=_quarter(timebase),
        measure_end=old.measure_end,
    )


def shift_boundary(channel: Channel, later: bool, step: int) -> bool:
    """Move the boundary with the previous event without changing total length."""
    events = channel.events
    pos = channel.cursor_pos
    if not events or pos == 0:
        return False
    curr, prev = events[pos], events[pos - 1]
    if later:
        delta = min(step, prev.step_time - 1)
        if delta <= 0:
            return False
        curr.step_time += delta
        prev.step_time -= delta
    else:
        delta = min(step, curr.step_time - 1)
        if delta <= 0:
            return False
        curr.step_time -= delta
        prev.step_time += delta
    return True


def double_pattern(channel: Channel) -> None:
    """Append a copy of all events, joining the halves into one flow."""
    events = channel.events
    if not events:
        return
    duplicate = [replace(e) for e in events]
    events[-1].measure_end = False
    events.extend(duplicate)


def commit_pattern(channel: Channel) -> None:
    """Duplicate the active pattern as a new pattern and switch to it."""
    channel.patterns.append(copy.deepcopy(channel.patterns[channel.active_pattern]))
    channel.active_pattern = len(channel.patterns) - 1
    channel.cursor_pos = 0


def new_pattern(channel: Channel) -> None:
    """Add a blank pattern and switch to it."""
    channel.patterns.append(Pattern())
    channel.active_pattern = len(channel.patterns) - 1
    channel.cursor_pos = 0


def delete_pattern(channel: Channel) -> bool:
    """Delete the active pattern unless it is the only one."""
    if len(channel.patterns) <= 1:
        return False
    del channel.patterns[channel.active_pattern]
    channel.active_pattern = min(channel.active_pattern, len(channel.patterns) - 1)
    channel.clamp_cursor()
    return True


def previous_pattern(channel: Channel) -> bool:
    if channel.active_pattern <= 0:
        return False
    channel.active_pattern -= 1
    channel.clamp_cursor()
    return True


def next_pattern(channel: Channel) -> bool:
    if channel.active_pattern >= len(channel.patterns) - 1:
        return False
    channel.active_pattern += 1
    channel.clamp_cursor()
    return True


def step_record(channel: Channel, pitch: int, velocity: int) -> None:
    """Write a played note at the cursor and move on, growing the list at its end."""
    events = channel.events
    if not events:
        return
    event = events[channel.cursor_pos]
    event.pitch = pitch
    event.velocity = velocity
    if event.gate_time == 0:
        event.gate_time = event.step_time
    if channel.cursor_pos < len(events) - 1:
        channel.cursor_pos += 1
    else:
        blank = Event(pitch=-1)
        blank.gate_time = blank.step_time
        events.append(blank)
        channel.cursor_pos = len(events) - 1


def take_snapshot(channel: Channel) -> ChannelSnapshot:
    """An independent copy of the channel's patterns and cursors."""
    return ChannelSnapshot(
        patterns=copy.deepcopy(channel.patterns),
        active_pattern=channel.active_pattern,
        cursor_pos=channel.cursor_pos,
        field_cursor=channel.field_cursor,
        active_layer=channel.active_layer,
    )


def restore_snapshot(channel: Channel, snapshot: ChannelSnapshot) -> None:
    """Put the channel back to a snapshot; the snapshot stays reusable."""
    channel.patterns = copy.deepcopy(snapshot.patterns)
    channel.active_pattern = snapshot.active_pattern
    channel.cursor_pos = snapshot.cursor_pos
    channel.field_cursor = snapshot.field_cursor
    channel.active_layer = snapshot.active_layer
    channel.clamp_cursor()