"""Sample-accurate playback of a sequence into MIDI note events."""

from __future__ import annotations

from dataclasses import dataclass, field

from .model import Channel, Config, Event, Pattern, Sequence

NUM_CHANNELS = 4


@dataclass(frozen=True)
class MidiEvent:
    """A note-on or note-off at a sample offset within a block. Channels are 1-based."""

    sample_offset: int
    channel: int
    note: int
    velocity: int
    note_on: bool


@dataclass
class RepeatPlayState:
    """How many times a repeat mark has been played through."""

    mark_index: int = -1
    iteration: int = 0


@dataclass
class ChannelPlayState:
    """Playback position of one channel."""

    tick_counter: float = 0.0
    event_index: int = 0
    note_is_on: bool = False
    current_note: int = -1
    gate_tick_count: float = 0.0
    finished: bool = False
    repeat_stack: list[RepeatPlayState] = field(default_factory=list)

    def reset(self) -> None:
        self.tick_counter = 0.0
        self.event_index = 0
        self.note_is_on = False
        self.current_note = -1
        self.gate_tick_count = 0.0
        self.finished = False
        self.repeat_stack.clear()


def _velocity(event: Event, config: Config) -> int:
    velocity = event.velocity if event.velocity >= 0 else config.base_velocity
    if event.accent:
        velocity = min(127, velocity + config.accent_boost)
    return velocity


class PlaybackEngine:
    """Turns the active pattern of each channel into note events, block by block."""

    def __init__(self, sample_rate: float = 44100.0) -> None:
        self.sample_rate = sample_rate
        self._play_state = [ChannelPlayState() for _ in range(NUM_CHANNELS)]

    def prepare(self, sample_rate: float) -> None:
        self.sample_rate = sample_rate

    def reset(self) -> None:
        """Return every channel to the start of its pattern."""
        for state in self._play_state:
            state.reset()

    def playback_position(self, channel_idx: int) -> int:
        return self._play_state[channel_idx].event_index

    def is_channel_playing(self, channel_idx: int) -> bool:
        return self._play_state[channel_idx].note_is_on

    def process_midi(
        self,
        num_samples: int,
        sequence: Sequence,
        config: Config,
        is_playing: bool,
        was_playing: bool,
    ) -> list[MidiEvent]:
        """Advance playback by `num_samples` and return the notes produced."""
        out: list[MidiEvent] = []
        if was_playing and not is_playing:
            self._all_notes_off(out, 0)
            self.reset()
            return out
        if not is_playing:
            return out
        if not was_playing:
            self.reset()

        for idx, channel in enumerate(sequence.channels[:NUM_CHANNELS]):
            pattern = channel.patterns[channel.active_pattern]
            self._process_channel(out, idx, num_samples, channel, pattern, sequence, config)
        return out

    def _process_channel(
        self,
        out: list[MidiEvent],
        channel_idx: int,
        num_samples: int,
        channel: Channel,
        pattern: Pattern,
        sequence: Sequence,
        config: Config,
    ) -> None:
        state = self._play_state[channel_idx]
        events = pattern.events
        if not events or state.finished:
            return

        midi_channel = channel_idx + 1
        ticks_per_sample = (sequence.tempo * sequence.timebase) / (60.0 * self.sample_rate)

        for sample in range(num_samples):
            if state.event_index >= len(events):
                # The pattern may have shrunk or been switched under us.
                state.event_index = 0
            event = events[state.event_index]

            if state.note_is_on and state.gate_tick_count >= event.gate_time:
                self._note_off(out, sample, midi_channel, state)

            if state.tick_counter >= event.step_time:
                state.tick_counter -= event.step_time
                if state.note_is_on:
                    self._note_off(out, sample, midi_channel, state)

                state.event_index += 1
                self._apply_repeat_marks(state, pattern)

                if state.event_index >= len(events):
                    if sequence.cycle_on:
                        state.event_index = 0
                        state.repeat_stack.clear()
                    else:
                        state.finished = True
                        return

                next_event = events[state.event_index]
                if next_event.gate_time > 0 and next_event.pitch >= 0:
                    self._note_on(out, sample, midi_channel, state, next_event, config)
                state.gate_tick_count = 0.0

            if (
                state.tick_counter < ticks_per_sample
                and not state.note_is_on
                and state.event_index == 0
                and state.gate_tick_count == 0.0
                and event.gate_time > 0
                and event.pitch >= 0
            ):
                self._note_on(out, sample, midi_channel, state, event, config)

            state.tick_counter += ticks_per_sample
            if state.note_is_on:
                state.gate_tick_count += ticks_per_sample

    @staticmethod
    def _apply_repeat_marks(state: ChannelPlayState, pattern: Pattern) -> None:
        for mark_index, mark in enumerate(pattern.repeat_marks):
            if not (
                state.event_index > mark.end_event
                and mark.start_event >= 0
                and mark.end_event >= 0
            ):
                continue
            repeat = next(
                (r for r in state.repeat_stack if r.mark_index == mark_index), None
            )
            if repeat is None:
                repeat = RepeatPlayState(mark_index=mark_index, iteration=1)
                state.repeat_stack.append(repeat)
            else:
                repeat.iteration += 1
            if repeat.iteration < mark.count:
                state.event_index = mark.start_event

    @staticmethod
    def _note_on(
        out: list[MidiEvent],
        sample: int,
        midi_channel: int,
        state: ChannelPlayState,
        event: Event,
        config: Config,
    ) -> None:
        out.append(MidiEvent(sample, midi_channel, event.pitch, _velocity(event, config), True))
        state.note_is_on = True
        state.current_note = event.pitch

    @staticmethod
    def _note_off(
        out: list[MidiEvent], sample: int, midi_channel: int, state: ChannelPlayState
    ) -> None:
        out.append(MidiEvent(sample, midi_channel, state.current_note, 0, False))
        state.note_is_on = False
        state.current_note = -1

    def _all_notes_off(self, out: list[MidiEvent], sample: int) -> None:
        for idx, state in enumerate(self._play_state):
            if state.note_is_on and state.current_note >= 0:
                self._note_off(out, sample, idx + 1, state)