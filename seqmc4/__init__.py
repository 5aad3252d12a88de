"""Four-channel keyboard-driven MIDI step sequencer: data model, playback, editing, JSON state and text display."""

__version__ = "0.1.0"