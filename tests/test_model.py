import pytest

from seqmc4.model import (
    Channel,
    Event,
    Pattern,
    RepeatMark,
    Sequence,
    midi_note_to_name,
    pad_left,
    pad_right,
)


def make_channel(step_times, ends):
    channel = Channel()
    channel.patterns[0].events = [
        Event(step_time=st, measure_end=i in ends) for i, st in enumerate(step_times)
    ]
    return channel


def test_new_pattern_holds_single_blank_event():
    pattern = Pattern()
    assert len(pattern.events) == 1
    event = pattern.events[0]
    assert event.pitch == -1
    assert event.step_time == 30
    assert event.gate_time == 30
    assert pattern.pending_repeat_start == -1


def test_new_channel_starts_with_one_blank_pattern():
    channel = Channel()
    assert len(channel.patterns) == 1
    assert channel.active_pattern == 0
    assert channel.cursor_pos == 0
    assert len(channel.events) == 1
    assert channel.events[0].pitch == -1
    assert channel.repeat_marks == []
    assert channel.pending_repeat_start == -1


def test_events_follow_active_pattern():
    channel = Channel()
    second = Pattern(events=[Event(pitch=60), Event(pitch=62)])
    channel.patterns.append(second)
    channel.active_pattern = 1
    assert channel.events is second.events
    channel.pending_repeat_start = 1
    assert second.pending_repeat_start == 1
    assert channel.patterns[0].pending_repeat_start == -1


def test_clamp_cursor_bounds():
    channel = make_channel([10, 10, 10], set())
    channel.cursor_pos = 10
    channel.clamp_cursor()
    assert channel.cursor_pos == len(channel.events) - 1
    channel.cursor_pos = -5
    channel.clamp_cursor()
    assert channel.cursor_pos == 0
    channel.patterns[0].events = []
    channel.cursor_pos = 4
    channel.clamp_cursor()
    assert channel.cursor_pos == 0


def test_measure_info_consistent_with_measure_start():
    ends = [1, 3]
    channel = make_channel([10] * 5, set(ends))
    previous = 0
    for idx in range(5):
        measure, step = channel.measure_info(idx)
        assert channel.find_measure_start(measure) + step - 1 == idx
        assert measure >= previous
        previous = measure
    assert channel.measure_info(4)[0] == len(ends) + 1


def test_find_measure_start_and_end():
    ends = [1, 3]
    channel = make_channel([10] * 5, set(ends))
    assert channel.find_measure_start(1) == 0
    assert channel.find_measure_start(2) == ends[0] + 1
    assert channel.find_measure_end(1) == ends[0] + 1
    assert channel.find_measure_end(2) == ends[1] + 1
    assert channel.find_measure_end(3) == len(channel.events)
    assert channel.find_measure_end(9) == len(channel.events)
    assert channel.find_measure_start(9) == len(channel.events) - 1


def test_events_in_measure_range_returns_copies():
    channel = make_channel([5, 6, 7, 8, 9], {1, 3})
    picked = channel.events_in_measure_range(2, 2)
    assert [e.step_time for e in picked] == [7, 8]
    picked[0].step_time = 999
    assert channel.events[2].step_time == 7


def test_events_in_measure_range_spanning_all():
    channel = make_channel([5, 6, 7, 8, 9], {1, 3})
    picked = channel.events_in_measure_range(1, 3)
    assert picked == channel.events
    assert channel.events_in_measure_range(3, 1) == []


def test_adjust_repeat_marks_for_insert():
    channel = make_channel([10] * 6, set())
    channel.repeat_marks.extend([RepeatMark(0, 1, 2), RepeatMark(2, 4, 3)])
    channel.pending_repeat_start = 5
    channel.adjust_repeat_marks_for_insert(2, 3)
    assert channel.repeat_marks == [RepeatMark(0, 1, 2), RepeatMark(2 + 3, 4 + 3, 3)]
    assert channel.pending_repeat_start == 5 + 3


def test_adjust_repeat_marks_for_delete():
    channel = make_channel([10] * 9, set())
    channel.repeat_marks.extend(
        [RepeatMark(0, 1, 2), RepeatMark(3, 4, 2), RepeatMark(6, 7, 3)]
    )
    channel.pending_repeat_start = 8
    channel.adjust_repeat_marks_for_delete(3, 2)
    assert channel.repeat_marks == [RepeatMark(0, 1, 2), RepeatMark(6 - 2, 7 - 2, 3)]
    assert channel.pending_repeat_start == 8 - 2


def test_delete_clears_pending_inside_range():
    channel = make_channel([10] * 4, set())
    channel.pending_repeat_start = 2
    channel.adjust_repeat_marks_for_delete(1, 2)
    assert channel.pending_repeat_start == -1


def test_measure_total_ticks_sums_step_times():
    steps = [5, 6, 7, 8]
    channel = make_channel(steps, set())
    assert channel.measure_total_ticks(1, 3) == steps[1] + steps[2]
    assert channel.measure_total_ticks(0, 100) == sum(steps)


def test_sequence_channel_follows_active_channel():
    seq = Sequence()
    assert len(seq.channels) == 4
    seq.active_channel = 2
    assert seq.channel is seq.channels[2]


@pytest.mark.parametrize("note", [-1, 128])
def test_note_name_out_of_range(note):
    assert midi_note_to_name(note) == "---"


def test_note_name_values():
    assert midi_note_to_name(48) == "C3"
    for note in range(0, 116):
        name = midi_note_to_name(note)
        above = midi_note_to_name(note + 12)
        assert name.rstrip("-0123456789") == above.rstrip("-0123456789")


def test_padding():
    assert pad_right("abc", 5) == "abc  "
    assert pad_left("abc", 5) == "  abc"
    assert pad_right("abcdef", 3) == "abc"
    assert pad_left("abcdef", 3) == "abc"
    assert len(pad_left("x", 7)) == 7