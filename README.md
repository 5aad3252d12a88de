# seqmc4

`seqmc4` is a four-channel MIDI step sequencer in the style of the classic
numeric-keypad microcomposers. Music is entered as a list of events, each with
a pitch, a step time (ticks until the next event), a gate time (how long the
note sounds), a velocity, a secondary CV2 value and accent, slide, MPX and
measure-end flags. Sections can be repeated with repeat marks, and each
channel holds any number of patterns.

The package uses only the standard library.

## Modules

- `seqmc4.model` – the data model: `Event`, `RepeatMark`, `Pattern`,
  `Channel`, `Sequence`, `Config`, `CopyState`, `ChannelSnapshot`, the
  `Layer`, `Field`, `Mode` and `InputMode` enums, and the helpers
  `midi_note_to_name`, `pad_left` and `pad_right`. `Channel` has measure
  helpers (`measure_info`, `find_measure_start`, `find_measure_end`,
  `events_in_measure_range`, `measure_total_ticks`) and keeps repeat marks in
  step with inserts and deletes.
- `seqmc4.playback` – `PlaybackEngine`, which advances sample by sample and
  returns `MidiEvent` note-ons and note-offs with their sample offsets,
  honouring gate times, per-event or base velocity, accent boost, repeat marks
  and cycle mode. Channels 1–4 of the sequence are sent on MIDI channels 1–4.
- `seqmc4.state` – the session as JSON: `dump_state` and `load_state`, plus
  per-object converters (`event_to_dict`, `pattern_from_dict`,
  `load_channel`, …). Older channel data with events stored directly on the
  channel is still read. `load_state` raises `ValueError` for data that is
  not JSON or has no `version` of at least 1.
- `seqmc4.processor` – `Processor`, which owns the sequence, the config, a
  lock and the engine. `process_block` runs the engine for one block, follows
  the host transport (or, with `standalone=True`, the editor's play request)
  and queues incoming note-ons while step recording is on.
  `get_state`/`set_state` save and restore the session; `set_state` ignores
  data that is not a known state.
- `seqmc4.edits` – editing operations on a channel: inserting, deleting,
  dividing and joining events, copying measures, rotating a measure, repeat
  marks, pattern management, value nudging, step recording and undo
  snapshots.
- `seqmc4.editor` – `Editor`, the keyboard front end. Keys are described by
  `KeyPress` (a character or a `SpecialKey`, with `shift`, `command`, `ctrl`
  and `numpad` flags); `Editor.key_pressed` handles one and returns whether
  it was used. Undo and redo keep up to 50 steps per channel.
- `seqmc4.display` – text rendering of the editor screen: `render` and its
  parts (`status_line`, `current_event_lines`, `context_rows`,
  `input_line`, `shift_map`).

## Example

```python
from seqmc4.model import Config, Sequence, midi_note_to_name
from seqmc4.playback import PlaybackEngine

sequence = Sequence()
config = Config()

event = sequence.channel.events[0]
event.pitch = 48
event.gate_time = 15
print(midi_note_to_name(event.pitch))   # C3

engine = PlaybackEngine()
engine.prepare(44100.0)
for message in engine.process_midi(512, sequence, config, True, False):
    print(message)
```

Editing through keys and showing the screen:

```python
from seqmc4.display import render
from seqmc4.editor import Editor, KeyPress, SpecialKey
from seqmc4.processor import Processor

processor = Processor(standalone=True)
editor = Editor(processor)

for key in ("6", "0"):
    editor.key_pressed(KeyPress(key))
editor.key_pressed(KeyPress(SpecialKey.RETURN))   # pitch of event 1 becomes 60
editor.key_pressed(KeyPress("i"))                 # insert a rest after it

print(render(editor))
```

## Keys

| Key | Action |
| --- | --- |
| digits, Enter | type a value and store it in the active field |
| Cmd+Enter | store the value and move to the next event |
| Enter with nothing typed | move to the next event |
| Escape / Backspace | clear the input / drop the last digit |
| Up, Down / Left, Right | move between events / fields |
| Shift+Up, Shift+Down, Page Up, Page Down | previous / next measure |
| Home, End | first / last event |
| Cmd+arrows | nudge the active field (±1, ±10; an octave for pitch) |
| Shift+1 … Shift+6 | select layer CV1, ST, GT, VEL, CV2, MPX |
| F1 … F4 | select channel (clears undo history) |
| I / Shift+I | insert a rest after / before the cursor |
| D / Shift+D | delete the event / delete a typed number of events |
| V | divide the event into a typed number of steps |
| J | join the event with the next one |
| A, S, X | toggle accent, slide, MPX |
| Shift+X | reset the event to a rest |
| M / Shift+M | set measure end and advance (or clear it) / toggle measure end |
| [ and ] | move the boundary with the previous event (Shift: by 10) |
| . / T | make the event a rest / a tie, and advance |
| C / Shift+C | copy measures over / into the pattern at the cursor |
| R / Shift+R | toggle repeat start / close the repeat with a count (or remove marks at the cursor) |
| O / Shift+O | rotate the measure by ticks / rotate only its notes |
| P / Shift+P | duplicate the pattern as a new one / double the pattern |
| Cmd+P / Cmd+Backspace | new blank pattern / delete the pattern |
| < and > | previous / next pattern |
| Cmd+Z / Cmd+Shift+Z | undo / redo |
| Tab | toggle cycle |
| Space | play / stop (standalone only) |
| N | toggle step record |
| Shift+T, Shift+B, Shift+N, Shift+V | edit tempo, timebase, default note, base velocity |
| Shift+S or Ctrl+S | take the tempo from the host |

## Timing

Step and gate times are counted in ticks. The timebase (ticks per beat,
default 120) and the tempo (BPM, default 120) live on the `Sequence`; at the
defaults a sixteenth note is 30 ticks. Values stored in a field are clamped to
its range: pitch 0–127, step time 1–61690, gate time 0–61690, velocity 1–127,
CV2 0–127. Typed tempo is clamped to 20–300 and timebase to 1–960.

## What the package does not do

- It does not open MIDI ports or audio devices; `PlaybackEngine` and
  `Processor.process_block` return `MidiEvent` lists for the caller to send.
- It has no window and no command to run; `seqmc4.display` renders the
  screen as text, and key presses must be passed to `Editor.key_pressed` by
  the caller.
- Playback produces note-ons and note-offs only. The `Config` settings for
  CV2 output, MPX CC, portamento and pitch-bend range are stored and saved
  but not turned into MIDI.