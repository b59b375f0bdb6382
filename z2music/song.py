"""
Songs: a playback sequence over a deduplicated pool of patterns.
"""

import sys
from typing import Dict, List, Optional

from pattern import BANK_OFFSET, Pattern


TABLE_ENTRIES = 8
MAX_SEQUENCE_BYTES = 0x100


class Song:
    """Pattern pool plus the order the patterns are played in."""

    def __init__(self):
        self._patterns: List[Pattern] = []
        self._sequence: List[int] = []

    @classmethod
    def decode(cls, rom, address: int, entry: int, bank_offset: int = BANK_OFFSET) -> "Song":
        """Decode the song in slot `entry` of the table at `address`.

        The slot byte is an offset from the table to a zero terminated
        list of pattern offsets, also relative to the table.  A pattern
        referenced more than once is decoded only the first time.
        """
        if not 0 <= entry < TABLE_ENTRIES:
            raise ValueError(f"Song table entry {entry} out of range (0-{TABLE_ENTRIES - 1})")

        song = cls()
        start = address + rom.getc(address + entry)
        offset_map: Dict[int, int] = {}

        # Offsets are one byte, so a real sequence ends within 256 bytes
        for i in range(MAX_SEQUENCE_BYTES):
            offset = rom.getc(start + i)
            if offset == 0:
                break

            if offset not in offset_map:
                offset_map[offset] = len(song._patterns)
                song.add_pattern(Pattern.decode(rom, address + offset, bank_offset))
            song.append_sequence(offset_map[offset])
        else:
            print(f"WARNING: Sequence at {start:06x} has no terminator, "
                  f"stopped after {MAX_SEQUENCE_BYTES} entries", file=sys.stderr)

        return song

    def add_pattern(self, pattern: Pattern):
        self._patterns.append(pattern)

    def set_sequence(self, sequence: List[int]):
        for n in sequence:
            if not 0 <= n < len(self._patterns):
                raise ValueError(f"Sequence entry {n} does not name a pattern")
        self._sequence = list(sequence)

    def append_sequence(self, n: int):
        if not 0 <= n < len(self._patterns):
            raise ValueError(f"Sequence entry {n} does not name a pattern")
        self._sequence.append(n)

    def sequence(self) -> List[int]:
        return list(self._sequence)

    def patterns(self) -> List[Pattern]:
        return list(self._patterns)

    def sequence_length(self) -> int:
        return len(self._sequence)

    def pattern_count(self) -> int:
        return len(self._patterns)

    def at(self, i: int) -> Optional[Pattern]:
        """Pattern played at sequence position i, or None past the end."""
        if i < 0 or i >= len(self._sequence):
            return None
        return self._patterns[self._sequence[i]]

    def clear(self):
        self._patterns.clear()
        self._sequence.clear()

    def pattern_offsets(self, first: int) -> List[int]:
        """Offsets the patterns get when their metadata starts at `first`."""
        offsets = []
        for pattern in self._patterns:
            offsets.append(first)
            first += pattern.metadata_length()
        return offsets

    def sequence_data(self, first: int) -> bytes:
        """Encode the sequence, with pattern metadata laid out from `first`.

        Raises:
            ValueError: a referenced pattern lands past the one byte range
        """
        offsets = self.pattern_offsets(first)

        data = bytearray()
        for n in self._sequence:
            if offsets[n] > 0xFF:
                raise ValueError(f"Pattern offset {offsets[n]:#x} does not fit in one byte")
            data.append(offsets[n])
        data.append(0x00)

        return bytes(data)

    def metadata_length(self) -> int:
        """Sequence bytes (with terminator) plus all pattern metadata."""
        return self.sequence_length() + 1 + sum(p.metadata_length() for p in self._patterns)
