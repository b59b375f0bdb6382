"""
Note encoding for the Zelda II sound engine.

Each note is a single byte holding two independent bitfields:

    7 6 5 4 3 2 1 0
    D D P P P P P D     D = duration (mask 0xC1), P = pitch (mask 0x3E)

A literal 0x00 byte terminates a channel's note data, so it is never
produced by a real note.  Any other byte decodes to some (duration, pitch)
pair, even when that pair was never authored.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional


DURATION_MASK = 0xC1
PITCH_MASK = 0x3E

# MIDI resolution used for tick lengths
TICKS_PER_QUARTER = 96


class Duration(IntEnum):
    """Duration bitfield values."""
    Sixteenth = 0x00
    DottedQuarter = 0x01
    DottedEighth = 0x40
    Half = 0x41
    Eighth = 0x80
    EighthTriplet = 0x81
    Quarter = 0xC0
    QuarterTriplet = 0xC1


class Pitch(IntEnum):
    """Pitch bitfield values.

    NONE is the all-zero pattern, which no authored note uses.
    """
    NONE = 0x00
    Rest = 0x02
    E3 = 0x04
    G3 = 0x06
    Gs3 = 0x08
    A3 = 0x0A
    As3 = 0x0C
    B3 = 0x0E
    C4 = 0x10
    Cs4 = 0x12
    D4 = 0x14
    Ds4 = 0x16
    E4 = 0x18
    F4 = 0x1A
    Fs4 = 0x1C
    G4 = 0x1E
    Gs4 = 0x20
    A4 = 0x22
    As4 = 0x24
    B4 = 0x26
    C5 = 0x28
    Cs5 = 0x2A
    D5 = 0x2C
    Ds5 = 0x2E
    E5 = 0x30
    F5 = 0x32
    Fs5 = 0x34
    G5 = 0x36
    A5 = 0x38
    As5 = 0x3A
    B5 = 0x3C
    Cs3 = 0x3E


DURATION_TICKS: Dict[Duration, int] = {
    Duration.Sixteenth: TICKS_PER_QUARTER // 4,
    Duration.DottedQuarter: TICKS_PER_QUARTER * 3 // 2,
    Duration.DottedEighth: TICKS_PER_QUARTER // 2 * 3 // 2,
    Duration.Half: TICKS_PER_QUARTER * 2,
    Duration.Eighth: TICKS_PER_QUARTER // 2,
    Duration.EighthTriplet: TICKS_PER_QUARTER // 2 * 2 // 3,
    Duration.Quarter: TICKS_PER_QUARTER,
    Duration.QuarterTriplet: TICKS_PER_QUARTER * 2 // 3,
}

# External pitch numbers are MIDI note numbers; 0 is reserved for rest
MIDI_PITCH_MAP: Dict[int, Pitch] = {
    0: Pitch.Rest,
    49: Pitch.Cs3, 52: Pitch.E3, 55: Pitch.G3, 56: Pitch.Gs3, 57: Pitch.A3,
    58: Pitch.As3, 59: Pitch.B3, 60: Pitch.C4, 61: Pitch.Cs4, 62: Pitch.D4,
    63: Pitch.Ds4, 64: Pitch.E4, 65: Pitch.F4, 66: Pitch.Fs4, 67: Pitch.G4,
    68: Pitch.Gs4, 69: Pitch.A4, 70: Pitch.As4, 71: Pitch.B4, 72: Pitch.C5,
    73: Pitch.Cs5, 74: Pitch.D5, 75: Pitch.Ds5, 76: Pitch.E5, 77: Pitch.F5,
    78: Pitch.Fs5, 79: Pitch.G5, 81: Pitch.A5, 82: Pitch.As5, 83: Pitch.B5,
}

# External tick counts are at 24 ticks per quarter note (6 per sixteenth)
MIDI_DURATION_MAP: Dict[int, Duration] = {
    6: Duration.Sixteenth,
    36: Duration.DottedQuarter,
    18: Duration.DottedEighth,
    48: Duration.Half,
    12: Duration.Eighth,
    8: Duration.EighthTriplet,
    24: Duration.Quarter,
    16: Duration.QuarterTriplet,
}

PITCH_MIDI_MAP: Dict[Pitch, int] = {
    pitch: number for number, pitch in MIDI_PITCH_MAP.items() if pitch != Pitch.Rest
}


def _mnemonic(pitch: Pitch) -> str:
    if pitch == Pitch.NONE:
        return "???."
    if pitch == Pitch.Rest:
        return "---."
    name = pitch.name.replace('s', '#')
    return name.ljust(4, '.')


PITCH_MNEMONICS: Dict[Pitch, str] = {pitch: _mnemonic(pitch) for pitch in Pitch}


class UnsupportedPitch(ValueError):
    """External pitch number with no entry in MIDI_PITCH_MAP."""

    def __init__(self, pitch_number: int):
        super().__init__(f"Note {pitch_number} is not usable")
        self.pitch_number = pitch_number


class UnsupportedDuration(ValueError):
    """External tick count with no entry in MIDI_DURATION_MAP."""

    def __init__(self, ticks: int):
        super().__init__(f"Duration {ticks} is not usable")
        self.ticks = ticks


@dataclass(frozen=True)
class Note:
    """A single packed note byte."""
    value: int

    @classmethod
    def decode(cls, byte: int) -> "Note":
        """Wrap a raw byte.  Never fails; every bit pattern is a valid pair."""
        return cls(byte & 0xFF)

    @classmethod
    def of(cls, duration: Duration, pitch: Pitch) -> "Note":
        return cls(int(duration) | int(pitch))

    @classmethod
    def from_midi(cls, pitch_number: int, ticks: int) -> "Note":
        """Translate a MIDI note number and a tick count (24 per quarter).

        Raises:
            UnsupportedPitch: pitch_number has no table entry
            UnsupportedDuration: ticks has no table entry
        """
        if pitch_number not in MIDI_PITCH_MAP:
            raise UnsupportedPitch(pitch_number)
        if ticks not in MIDI_DURATION_MAP:
            raise UnsupportedDuration(ticks)
        return cls.of(MIDI_DURATION_MAP[ticks], MIDI_PITCH_MAP[pitch_number])

    @property
    def duration(self) -> Duration:
        return Duration(self.value & DURATION_MASK)

    @property
    def pitch(self) -> Pitch:
        return Pitch(self.value & PITCH_MASK)

    def with_duration(self, duration: Duration) -> "Note":
        return Note.of(duration, self.pitch)

    def with_pitch(self, pitch: Pitch) -> "Note":
        return Note.of(self.duration, pitch)

    def is_rest(self) -> bool:
        return self.pitch == Pitch.Rest

    def length(self) -> int:
        """Tick length at 96 ticks per quarter note."""
        return DURATION_TICKS[self.duration]

    def pitch_string(self) -> str:
        """Four character mnemonic used in text dumps."""
        return PITCH_MNEMONICS[self.pitch]

    def midi_pitch(self) -> Optional[int]:
        """MIDI note number, or None for rests and the unused pitch pattern."""
        return PITCH_MIDI_MAP.get(self.pitch)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"Note({self.duration.name}, {self.pitch_string()})"
