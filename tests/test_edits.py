import pytest

from seqmc4.edits import (
    MAX_TICKS,
    add_repeat_mark,
    apply_field_value,
    clear_event,
    clear_repeat_marks_at_cursor,
    commit_pattern,
    copy_measures,
    delete_event,
    delete_events,
    delete_pattern,
    divide_event,
    double_pattern,
    insert_event,
    insert_events,
    join_events,
    layer_to_field,
    new_pattern,
    next_pattern,
    nudge,
    preview_event,
    previous_pattern,
    restore_snapshot,
    rotate_measure,
    shift_boundary,
    step_record,
    take_snapshot,
    toggle_repeat_start,
)
from seqmc4.model import Channel, Config, CopyState, Event, Field, Layer, Pattern, RepeatMark


def make_channel(pitches, step=30, gate=30, measure_ends=()):
    events = [
        Event(pitch=p, step_time=step, gate_time=gate, measure_end=i in measure_ends)
        for i, p in enumerate(pitches)
    ]
    return Channel(patterns=[Pattern(events=events)])


def total_ticks(channel):
    return sum(e.step_time for e in channel.events)


def test_layer_to_field_mapping():
    assert [layer_to_field(i) for i in range(5)] == list(range(5))
    assert layer_to_field(Layer.MPX) == Field.MPX
    assert layer_to_field(42) == Field.PITCH


def test_apply_field_value_clamps():
    event = Event()
    apply_field_value(event, Field.PITCH, 500)
    apply_field_value(event, Field.STEP_TIME, 0)
    apply_field_value(event, Field.GATE_TIME, 10**6)
    apply_field_value(event, Field.VELOCITY, 0)
    apply_field_value(event, Field.ACCENT, 5)
    assert event.pitch == 127
    assert event.step_time == 1
    assert event.gate_time == MAX_TICKS
    assert event.velocity == 1
    assert event.accent is True


def test_preview_event_leaves_original():
    event = Event(cv2=10)
    preview = preview_event(event, Field.CV2, 100)
    assert preview.cv2 == 100
    assert event.cv2 == 10


def test_nudge_pitch_octave_from_default_note():
    config = Config(default_note=60)
    event = Event(pitch=-1)
    nudge(event, Field.PITCH, 10, config)
    assert event.pitch == config.default_note + 12


def test_nudge_velocity_promotes_base_and_clamps():
    config = Config()
    event = Event(velocity=-1)
    nudge(event, Field.VELOCITY, -1, config)
    assert event.velocity == config.base_velocity - 1
    event.velocity = 127
    nudge(event, Field.VELOCITY, 10, config)
    assert event.velocity == 127


def test_nudge_toggles_flag():
    event = Event()
    nudge(event, Field.SLIDE, 1, Config())
    assert event.slide is True
    nudge(event, Field.SLIDE, -1, Config())
    assert event.slide is False


def test_insert_events_shifts_marks():
    channel = make_channel([60, 62, 64])
    channel.repeat_marks.append(RepeatMark(start_event=1, end_event=2, count=2))
    channel.cursor_pos = 1
    assert insert_events(channel, 2) == 2
    assert len(channel.events) == 5
    assert channel.repeat_marks[0].start_event == 3
    assert channel.repeat_marks[0].end_event == 4


def test_delete_events_clamped_to_remaining():
    channel = make_channel([60, 62, 64, 65])
    channel.cursor_pos = 2
    assert delete_events(channel, 10) == 2
    assert [e.pitch for e in channel.events] == [60, 62]
    assert channel.cursor_pos == 1


def test_divide_event_preserves_length():
    channel = make_channel([60], step=100, gate=100, measure_ends=(0,))
    assert divide_event(channel, 3)
    events = channel.events
    assert len(events) == 3
    assert sum(e.step_time for e in events) == 100
    assert sum(e.gate_time for e in events) <= 100
    assert [e.measure_end for e in events] == [False, False, True]
    assert all(e.pitch == 60 for e in events)


def test_divide_event_rejects_small_divisor():
    channel = make_channel([60])
    assert not divide_event(channel, 1)
    assert len(channel.events) == 1


def test_copy_measures_insert_with_transpose():
    channel = make_channel([60, 62, 64], measure_ends=(1,))
    channel.cursor_pos = 2
    state = CopyState(start_measure=1, end_measure=1, repetitions=2, transpose=1, insert_mode=True)
    assert copy_measures(channel, state) == 4
    pitches = [e.pitch for e in channel.events]
    assert pitches == [60, 62, 61, 63, 61, 63, 64]


def test_copy_measures_overwrite_extends():
    channel = make_channel([60, 62, 64], measure_ends=(1,))
    channel.cursor_pos = 2
    state = CopyState(start_measure=1, end_measure=1, repetitions=1)
    copy_measures(channel, state)
    assert [e.pitch for e in channel.events] == [60, 62, 60, 62]
    channel.events[2].pitch = 0
    assert channel.events[0].pitch == 60


def test_repeat_marks_lifecycle():
    channel = make_channel([60, 62, 64])
    toggle_repeat_start(channel)
    assert channel.pending_repeat_start == 0
    channel.cursor_pos = 2
    mark = add_repeat_mark(channel, 1)
    assert mark == RepeatMark(start_event=0, end_event=2, count=2)
    assert channel.pending_repeat_start == -1
    assert clear_repeat_marks_at_cursor(channel)
    assert channel.repeat_marks == []
    assert not clear_repeat_marks_at_cursor(channel)


def test_add_repeat_mark_without_pending():
    channel = make_channel([60, 62])
    assert add_repeat_mark(channel, 4) is None
    assert channel.repeat_marks == []


def test_toggle_repeat_start_cancels():
    channel = make_channel([60])
    toggle_repeat_start(channel)
    toggle_repeat_start(channel)
    assert channel.pending_repeat_start == -1


def test_rotate_full_clean_split():
    channel = make_channel([60, 62, 64, 65], measure_ends=(3,))
    assert rotate_measure(channel, 30, notes_only=False)
    assert [e.pitch for e in channel.events] == [62, 64, 65, 60]
    assert [e.measure_end for e in channel.events] == [False, False, False, True]


def test_rotate_full_negative_matches_forward():
    a = make_channel([60, 62, 64, 65], measure_ends=(3,))
    b = make_channel([60, 62, 64, 65], measure_ends=(3,))
    rotate_measure(a, -30, notes_only=False)
    rotate_measure(b, 90, notes_only=False)
    assert a.events == b.events


def test_rotate_full_mid_event_split():
    channel = make_channel([60, 62, 64, 65], measure_ends=(3,))
    rotate_measure(channel, 45, notes_only=False)
    assert len(channel.events) == 5
    assert total_ticks(channel) == 120
    assert channel.events[-1].measure_end
    assert sum(e.measure_end for e in channel.events) == 1


def test_rotate_zero_is_noop():
    channel = make_channel([60, 62], measure_ends=(1,))
    assert not rotate_measure(channel, 60, notes_only=False)
    assert [e.pitch for e in channel.events] == [60, 62]


def test_rotate_notes_only_keeps_rhythm():
    channel = make_channel([60, 62, 64, 65], measure_ends=(3,))
    channel.events[1].gate_time = 0
    before_rhythm = [(e.step_time, e.gate_time) for e in channel.events]
    assert rotate_measure(channel, 30, notes_only=True)
    assert [(e.step_time, e.gate_time) for e in channel.events] == before_rhythm
    assert [channel.events[i].pitch for i in (0, 2, 3)] == [64, 65, 60]
    assert channel.events[1].pitch == 62


def test_insert_event_after_and_before():
    channel = make_channel([60])
    insert_event(channel, 120, before=False)
    assert channel.cursor_pos == 1
    assert channel.events[1].pitch == -1
    assert channel.events[1].step_time == channel.events[1].gate_time == 30
    insert_event(channel, 120, before=True)
    assert channel.cursor_pos == 1
    assert len(channel.events) == 3


def test_delete_last_event_leaves_rest():
    channel = make_channel([60])
    delete_event(channel, 120)
    assert len(channel.events) == 1
    assert channel.events[0].pitch == -1
    assert channel.events[0].gate_time == 30


def test_join_events_tied():
    channel = make_channel([60, 62], measure_ends=(1,))
    assert join_events(channel)
    assert len(channel.events) == 1
    assert channel.events[0].step_time == 60
    assert channel.events[0].gate_time == 60
    assert channel.events[0].measure_end


def test_join_at_end_does_nothing():
    channel = make_channel([60, 62])
    channel.cursor_pos = 1
    assert not join_events(channel)
    assert len(channel.events) == 2


def test_clear_event_keeps_step_and_measure_end():
    channel = make_channel([60], step=45, measure_ends=(0,))
    channel.events[0].accent = True
    clear_event(channel, 120)
    event = channel.events[0]
    assert (event.pitch, event.step_time, event.measure_end, event.accent) == (-1, 45, True, False)


def test_shift_boundary_preserves_total():
    channel = make_channel([60, 62])
    channel.cursor_pos = 1
    assert shift_boundary(channel, later=True, step=10)
    assert total_ticks(channel) == 60
    assert channel.events[0].step_time == 20
    assert shift_boundary(channel, later=False, step=100)
    assert channel.events[1].step_time == 1
    assert total_ticks(channel) == 60


def test_shift_boundary_needs_previous():
    channel = make_channel([60, 62])
    assert not shift_boundary(channel, later=True, step=1)


def test_double_pattern():
    channel = make_channel([60, 62], measure_ends=(1,))
    double_pattern(channel)
    assert [e.pitch for e in channel.events] == [60, 62, 60, 62]
    assert [e.measure_end for e in channel.events] == [False, False, False, True]


def test_commit_pattern_is_independent_copy():
    channel = make_channel([60, 62])
    channel.cursor_pos = 1
    commit_pattern(channel)
    assert channel.active_pattern == 1
    assert channel.cursor_pos == 0
    channel.events[0].pitch = 70
    assert channel.patterns[0].events[0].pitch == 60


def test_pattern_navigation_and_deletion():
    channel = make_channel([60])
    assert not delete_pattern(channel)
    new_pattern(channel)
    assert len(channel.patterns) == 2
    assert not next_pattern(channel)
    assert previous_pattern(channel)
    assert channel.active_pattern == 0
    assert not previous_pattern(channel)
    assert delete_pattern(channel)
    assert len(channel.patterns) == 1
    assert channel.events[0].pitch == -1


def test_step_record_advances_and_appends():
    channel = make_channel([60, 62], gate=0)
    step_record(channel, 70, 100)
    assert channel.events[0].pitch == 70
    assert channel.events[0].velocity == 100
    assert channel.events[0].gate_time == channel.events[0].step_time
    assert channel.cursor_pos == 1
    step_record(channel, 72, 80)
    assert len(channel.events) == 3
    assert channel.cursor_pos == 2
    assert channel.events[2].pitch == -1


def test_snapshot_round_trip():
    channel = make_channel([60, 62])
    channel.cursor_pos = 1
    snapshot = take_snapshot(channel)
    channel.events[0].pitch = 10
    channel.cursor_pos = 0
    restore_snapshot(channel, snapshot)
    assert [e.pitch for e in channel.events] == [60, 62]
    assert channel.cursor_pos == 1
    channel.events[0].pitch = 11
    assert snapshot.patterns[0].events[0].pitch == 60


@pytest.mark.parametrize("count", [1, 2, 5])
def test_insert_then_delete_restores_length(count):
    channel = make_channel([60, 62, 64])
    insert_events(channel, count)
    delete_events(channel, count)
    assert [e.pitch for e in channel.events] == [60, 62, 64]