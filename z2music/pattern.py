"""
Pattern records: one tempo/voicing byte plus four channels of note data.

Metadata layout (6 bytes, 8 when voiced):
    +0  tempo (0x00 = voiced, voice bytes at +6/+7)
    +1  note data address, low byte
    +2  note data address, high byte (bank offset added on read)
    +3  triangle offset from note data start (0 = absent)
    +4  pulse 2 offset (0 = absent)
    +5  noise offset (0 = absent)
"""

import sys
from enum import IntEnum
from typing import Iterable, List, Optional, Tuple

from notes import Duration, Note


DEFAULT_TEMPO = 0x18
BANK_OFFSET = 0x10000

# Pulse 1 may run for at most 64 quarter notes
MAX_PATTERN_TICKS = 64 * 96

# Tempo flag selecting how a triplet group is counted
TRIPLET_FLAG = 0x08


class Channel(IntEnum):
    """Sound channels, in note data order."""
    Pulse1 = 0
    Pulse2 = 1
    Triangle = 2
    Noise = 3


CHANNELS = (Channel.Pulse1, Channel.Pulse2, Channel.Triangle, Channel.Noise)


class Pattern:
    """One reusable block of per-channel notes."""

    def __init__(self, tempo: int = DEFAULT_TEMPO,
                 pulse1: Iterable[Note] = (),
                 pulse2: Iterable[Note] = (),
                 triangle: Iterable[Note] = (),
                 noise: Iterable[Note] = ()):
        self._tempo = tempo
        self._voice1 = 0
        self._voice2 = 0
        self._notes: List[List[Note]] = [[], [], [], []]
        self.add_notes(Channel.Pulse1, pulse1)
        self.add_notes(Channel.Pulse2, pulse2)
        self.add_notes(Channel.Triangle, triangle)
        self.add_notes(Channel.Noise, noise)

    @classmethod
    def with_voicing(cls, voice1: int, voice2: int,
                     pulse1: Iterable[Note] = (),
                     pulse2: Iterable[Note] = (),
                     triangle: Iterable[Note] = (),
                     noise: Iterable[Note] = ()) -> "Pattern":
        """Build a voiced pattern (tempo byte 0 plus two voice bytes)."""
        pattern = cls(0x00, pulse1, pulse2, triangle, noise)
        pattern.set_voicing(voice1, voice2)
        return pattern

    @classmethod
    def decode(cls, rom, address: int, bank_offset: int = BANK_OFFSET) -> "Pattern":
        """Read a pattern whose metadata starts at address.

        Args:
            rom: Anything with getc()/read() (normally a Rom)
            address: Buffer address of the metadata
            bank_offset: Added to the 16-bit note data pointer

        Returns:
            Decoded Pattern
        """
        header = rom.read(address, 6)

        pattern = cls(header[0])
        if pattern.voiced():
            pattern._voice1 = rom.getc(address + 6)
            pattern._voice2 = rom.getc(address + 7)

        note_base = (header[2] << 8) + header[1] + bank_offset

        # Pulse 1 first, since its length bounds the other channels
        pattern._read_notes(Channel.Pulse1, rom, note_base)

        if header[3] > 0:
            pattern._read_notes(Channel.Triangle, rom, note_base + header[3])
        if header[4] > 0:
            pattern._read_notes(Channel.Pulse2, rom, note_base + header[4])
        if header[5] > 0:
            pattern._read_notes(Channel.Noise, rom, note_base + header[5])

        return pattern

    def _read_notes(self, channel: Channel, rom, address: int):
        max_length = MAX_PATTERN_TICKS if channel == Channel.Pulse1 else self.length()
        notes = self._notes[channel]
        length = 0

        while length < max_length:
            byte = rom.getc(address)
            address += 1

            # Note data can end early on a 00 byte
            if byte == 0x00:
                break

            note = Note.decode(byte)
            length += note.length()
            notes.append(note)

            if note.duration == Duration.QuarterTriplet and len(notes) >= 3:
                self._reinterpret_triplet(notes)

    def _reinterpret_triplet(self, notes: List[Note]):
        # A QuarterTriplet after two EighthTriplets is part of a triplet
        # group, and the tempo flag decides how the group is counted
        first, second, last = notes[-3], notes[-2], notes[-1]
        if first.duration != Duration.EighthTriplet or second.duration != Duration.EighthTriplet:
            return

        if self._tempo & TRIPLET_FLAG:
            notes[-1] = last.with_duration(Duration.EighthTriplet)
        else:
            notes[-3] = first.with_duration(Duration.DottedEighth)
            notes[-2] = second.with_duration(Duration.DottedEighth)
            notes[-1] = last.with_duration(Duration.Eighth)

    @property
    def tempo(self) -> int:
        return self._tempo

    @tempo.setter
    def tempo(self, tempo: int):
        self._tempo = tempo

    @property
    def voice1(self) -> int:
        return self._voice1

    @property
    def voice2(self) -> int:
        return self._voice2

    def voiced(self) -> bool:
        return self._tempo == 0x00

    def set_voicing(self, voice1: int, voice2: int):
        self._tempo = 0x00
        self._voice1 = voice1
        self._voice2 = voice2

    def notes(self, channel: Channel) -> List[Note]:
        return list(self._notes[channel])

    def add_notes(self, channel: Channel, notes: Iterable[Note]):
        self._notes[channel].extend(notes)

    def clear(self):
        for channel_notes in self._notes:
            channel_notes.clear()

    def length(self, channel: Channel = Channel.Pulse1) -> int:
        """Total ticks in a channel.  Pulse 1 defines the pattern length."""
        return sum(note.length() for note in self._notes[channel])

    def validate(self) -> bool:
        """Check channel lengths against Pulse 1.

        Pulse 1 may not exceed 64 quarter notes, and no other channel may
        run longer than Pulse 1.
        """
        total = self.length()
        if total > MAX_PATTERN_TICKS:
            return False
        return all(self.length(channel) <= total for channel in CHANNELS[1:])

    def metadata_length(self) -> int:
        return 8 if self.voiced() else 6

    def _pad_note_data(self, channel: Channel) -> bool:
        # Channels shorter than Pulse 1 need an explicit terminator
        if channel == Channel.Pulse1:
            return True
        length = self.length(channel)
        return 0 < length < self.length()

    def note_data_length(self, channel: Channel) -> int:
        return len(self._notes[channel]) + (1 if self._pad_note_data(channel) else 0)

    def note_data(self, channel: Optional[Channel] = None) -> bytes:
        """Encoded note bytes for one channel, or all four in data order."""
        if channel is None:
            return b''.join(self.note_data(ch) for ch in CHANNELS)

        data = bytearray(int(note) for note in self._notes[channel])
        if self._pad_note_data(channel):
            data.append(0x00)
        return bytes(data)

    def meta_data(self, note_address: int) -> bytes:
        """Encode metadata pointing at note data stored at note_address.

        Raises:
            ValueError: a channel starts more than 255 bytes into the note data
        """
        pw1 = self.note_data_length(Channel.Pulse1)
        pw2 = self.note_data_length(Channel.Pulse2)
        tri = self.note_data_length(Channel.Triangle)
        noi = self.note_data_length(Channel.Noise)

        offsets = [
            0 if tri == 0 else pw1 + pw2,
            0 if pw2 == 0 else pw1,
            0 if noi == 0 else pw1 + pw2 + tri,
        ]
        for offset in offsets:
            if offset > 0xFF:
                raise ValueError(f"Channel offset {offset:#x} does not fit in one byte")

        data = bytearray([self._tempo, note_address & 0xFF, (note_address >> 8) & 0xFF])
        data.extend(offsets)

        if self.voiced():
            data.extend([self._voice1, self._voice2])

        return bytes(data)

    def encode(self, note_address: int) -> Tuple[bytes, bytes]:
        """Return (note_data, meta_data) for note data placed at note_address."""
        return self.note_data(), self.meta_data(note_address)


# Semitone index of each letter within an octave (C = 1)
_LETTER_PITCHES = {'c': 1, 'd': 3, 'e': 5, 'f': 6, 'g': 8, 'a': 10}


def parse_notes(data: str, transpose: int = 0) -> List[Note]:
    """Parse the compact note text used to build patterns by hand.

    Each space separated token is a letter (pitch), optional flat/sharp
    (b, #, s), an octave digit and a duration digit in sixteenths.  The
    duration carries over to later tokens that leave it out.  'x' is the
    snare (G#3), 'r' or '-' a rest, '.' is ignored.

    Raises:
        UnsupportedPitch, UnsupportedDuration: token maps to no note byte
    """
    notes: List[Note] = []

    duration = 0
    pitch = 0
    octave = 0

    def flush():
        number = pitch + 12 * octave + 11 + transpose if pitch > 0 else 0
        notes.append(Note.from_midi(number, 6 * duration))

    for c in data:
        if c.lower() in _LETTER_PITCHES:
            pitch = _LETTER_PITCHES[c.lower()]
        elif c == 'B':
            pitch = 12
        elif c == 'b':
            # B note when nothing is pending, otherwise a flat
            if pitch == 0:
                pitch = 12
            else:
                pitch -= 1
        elif c in '#s':
            pitch += 1
        elif c in '12345678':
            if octave == 0:
                octave = int(c)
            else:
                duration = int(c)
        elif c == '.':
            pass
        elif c == 'x':
            # snare drum
            pitch = 9
            octave = 3
        elif c in 'r-':
            pitch = -1
            octave = -1
        elif c == ' ':
            if pitch and octave and duration:
                flush()
                # Duration sticks, pitch and octave do not
                pitch = 0
                octave = 0
        else:
            print(f"WARNING: Unknown char '{c}' when parsing notes", file=sys.stderr)

    if pitch and octave and duration:
        flush()

    return notes
