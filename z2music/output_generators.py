"""
Output generation for decoded songs.

Generates text dumps and MIDI files from Song objects.
"""

from pathlib import Path
from typing import List

from midiutil import MIDIFile

from notes import TICKS_PER_QUARTER
from pattern import CHANNELS, Channel
from song import Song


CHANNEL_NAMES = {
    Channel.Pulse1: "Pulse 1",
    Channel.Pulse2: "Pulse 2",
    Channel.Triangle: "Triangle",
    Channel.Noise: "Noise",
}

# MIDI channel per sound channel; noise goes to the GM percussion channel
MIDI_CHANNELS = {
    Channel.Pulse1: 0,
    Channel.Pulse2: 1,
    Channel.Triangle: 2,
    Channel.Noise: 9,
}

# GM programs: square lead, square lead, synth bass
MIDI_PROGRAMS = {
    Channel.Pulse1: 80,
    Channel.Pulse2: 80,
    Channel.Triangle: 38,
}


def dump_song_text(title: str, song: Song) -> str:
    """Generate a readable listing of a song's sequence and patterns.

    Args:
        title: Heading for the listing
        song: Decoded song

    Returns:
        Formatted text
    """
    output = []
    output.append(f"Song: {title}")
    output.append(f"  Sequence: {' '.join(f'{n:02d}' for n in song.sequence())}")
    output.append("")

    for idx, pattern in enumerate(song.patterns()):
        if pattern.voiced():
            output.append(f"  Pattern {idx:02d}: voiced {pattern.voice1:02X} {pattern.voice2:02X}"
                          f"  length {pattern.length()}")
        else:
            output.append(f"  Pattern {idx:02d}: tempo {pattern.tempo:02X}  length {pattern.length()}")

        for channel in CHANNELS:
            notes = pattern.notes(channel)
            if not notes:
                continue
            output.append(f"    {CHANNEL_NAMES[channel]:8s} ({pattern.length(channel)} ticks)")
            # 8 notes per line
            for i in range(0, len(notes), 8):
                chunk = notes[i:i + 8]
                output.append("      " + ' '.join(
                    f"{n.pitch_string()}{n.length():3d}" for n in chunk
                ))

        output.append("")

    return '\n'.join(output)


class MidiGenerator:
    """Generates MIDI files from decoded songs."""

    def __init__(self, tempo_bpm: float = 150.0):
        """Initialize MIDI generator.

        Args:
            tempo_bpm: Playback tempo; the engine's tempo byte selects a
                note length table, not a BPM, so it is not converted
        """
        self.tempo_bpm = tempo_bpm

    def build(self, title: str, song: Song) -> MIDIFile:
        """Build a format 1 MIDIFile with one track per sound channel."""
        midi = MIDIFile(len(CHANNELS), file_format=1, ticks_per_quarternote=TICKS_PER_QUARTER)
        midi.addTempo(0, 0, self.tempo_bpm)

        for track, channel in enumerate(CHANNELS):
            midi.addTrackName(track, 0, f"{title} - {CHANNEL_NAMES[channel]}")
            if channel in MIDI_PROGRAMS:
                midi.addProgramChange(track, MIDI_CHANNELS[channel], 0, MIDI_PROGRAMS[channel])

        time = 0
        for i in range(song.sequence_length()):
            pattern = song.at(i)
            for track, channel in enumerate(CHANNELS):
                self._write_notes(midi, track, channel, pattern.notes(channel), time)
            time += pattern.length()

        # Disable deinterleaving to avoid "pop from empty list" errors in MIDIUtil
        for midi_track in midi.tracks:
            midi_track.deinterleave = False

        return midi

    def _write_notes(self, midi: MIDIFile, track: int, channel: Channel,
                     notes: List, start: int):
        time = start
        for note in notes:
            pitch = note.midi_pitch()
            if pitch is not None:
                midi.addNote(track, MIDI_CHANNELS[channel], pitch,
                             time / TICKS_PER_QUARTER, note.length() / TICKS_PER_QUARTER, 100)
            time += note.length()

    def generate(self, title: str, song: Song, output_path: Path):
        """Write a song to a MIDI file."""
        midi = self.build(title, song)
        with open(output_path, 'wb') as f:
            midi.writeFile(f)
