"""The sequencer processor: transport handling, step-record input and state."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Iterable

from .model import Config, Sequence
from .playback import MidiEvent, PlaybackEngine
from .state import dump_state, load_state


class Processor:
    """Owns the sequence, configuration and playback engine shared with the editor."""

    NAME = "SEQ-MC-4"
    MIDI_RING_SIZE = 64

    def __init__(self, standalone: bool = False) -> None:
        self.standalone = standalone
        self.sequence = Sequence()
        self.config = Config()
        self.lock = threading.Lock()
        self.engine = PlaybackEngine()

        self.is_currently_playing = False
        self.host_tempo = 120.0
        self.standalone_play_request = False
        self.step_record_enabled = False

        self._midi_ring: deque[tuple[int, int]] = deque()
        self._was_playing = False

    def prepare_to_play(self, sample_rate: float) -> None:
        self.engine.prepare(sample_rate)
        self.engine.reset()
        self._was_playing = False

    def release_resources(self) -> None:
        self.engine.reset()

    def process_block(
        self,
        num_samples: int,
        midi_in: Iterable[MidiEvent] = (),
        host_playing: bool | None = None,
        host_bpm: float | None = None,
    ) -> list[MidiEvent]:
        """Run one block and return the MIDI it produced.

        `host_playing` and `host_bpm` are None when there is no host transport.
        In standalone mode the editor's play request decides instead.
        """
        playing = bool(host_playing) if host_playing is not None else False
        if host_playing is not None and host_bpm is not None:
            self.host_tempo = float(host_bpm)
        if self.standalone:
            playing = self.standalone_play_request

        self.is_currently_playing = playing

        if self.step_record_enabled:
            for message in midi_in:
                if message.note_on and message.velocity > 0:
                    self.push_midi_note(message.note, message.velocity)

        out: list[MidiEvent] = []
        if self.lock.acquire(blocking=False):
            try:
                out = self.engine.process_midi(
                    num_samples, self.sequence, self.config, playing, self._was_playing
                )
            finally:
                self.lock.release()

        self._was_playing = playing
        return out

    def push_midi_note(self, pitch: int, velocity: int) -> None:
        """Queue an incoming note for step recording; dropped when the queue is full."""
        if len(self._midi_ring) < self.MIDI_RING_SIZE - 1:
            self._midi_ring.append((pitch, velocity))

    def pop_midi_note(self) -> tuple[int, int] | None:
        """Take the oldest queued (pitch, velocity), or None if there is none."""
        try:
            return self._midi_ring.popleft()
        except IndexError:
            return None

    def get_state(self) -> bytes:
        with self.lock:
            return dump_state(self.sequence, self.config)

    def set_state(self, data: bytes | str) -> None:
        """Restore saved state; data that is not a known state is ignored."""
        with self.lock:
            try:
                load_state(data, self.sequence, self.config)
            except ValueError:
                return
            self.engine.reset()