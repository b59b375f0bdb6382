"""
Song table layout and loader relocation.

A table group is laid out as one contiguous block:

    table   8 one-byte song offsets (relative to the table)
    seqs    each song's sequence, zero terminated, then one empty sequence
    meta    pattern metadata for every song, in catalog order
    notes   note data for every pattern (absolute addresses in metadata)

Each region's start depends on the total size of the ones before it, so a
group is always rewritten as a whole.
"""

import sys
from dataclasses import dataclass, field
from typing import List

from song import Song


OP_LDA_ABS_Y = 0xB9
OP_JMP = 0x4C


@dataclass
class TableLayout:
    """Where commit_table put things, for diagnostics."""
    address: int
    song_offsets: List[int] = field(default_factory=list)  # Last entry is the empty song
    first_pattern: int = 0
    note_start: int = 0
    note_end: int = 0

    @property
    def size(self) -> int:
        """Total bytes used by the group, from the table to the last note."""
        return self.note_end - self.address


def commit_table(rom, address: int, songs: List[Song], slots: List[int],
                 verbose: bool = False) -> TableLayout:
    """Write a full table group at address.

    Args:
        rom: Rom to write into
        address: Buffer address of the 8-byte song table
        songs: Songs of this group, in catalog order
        slots: For each table entry, an index into songs; len(songs)
            selects the reserved empty song
        verbose: Print offsets to stderr

    Returns:
        TableLayout describing the written block
    """
    if len(slots) != 8:
        raise ValueError(f"Song table needs 8 slots, got {len(slots)}")

    layout = TableLayout(address=address)

    # Song table
    offset = 8
    for song in songs:
        layout.song_offsets.append(offset)
        if verbose:
            print(f"Offset for next song: {offset:02x}", file=sys.stderr)
        offset += song.sequence_length() + 1

    # One extra offset for the empty song at the end
    layout.song_offsets.append(offset)

    for i, slot in enumerate(slots):
        if not 0 <= slot < len(layout.song_offsets):
            raise ValueError(f"Slot {i} refers to song {slot}, only {len(songs)} songs in group")
        song_offset = layout.song_offsets[slot]
        if song_offset > 0xFF:
            raise ValueError(f"Song offset {song_offset:#x} does not fit in one byte")
        rom.putc(address + i, song_offset)

    # Sequences
    first_pattern = offset + 1
    seq_offset = 8
    pat_offset = first_pattern

    for song in songs:
        seq = song.sequence_data(pat_offset)
        rom.write(address + seq_offset, seq)
        if verbose:
            print(f"Writing seq at {seq_offset:02x} with pat at {pat_offset:02x}: "
                  f"{' '.join(f'{b:02x}' for b in seq)}", file=sys.stderr)

        pat_offset += sum(p.metadata_length() for p in song.patterns())
        seq_offset += len(seq)

    # Empty sequence for the empty song
    rom.putc(address + seq_offset, 0x00)

    # Pattern metadata and note data
    note_address = address + pat_offset
    layout.first_pattern = first_pattern
    layout.note_start = note_address
    pat_offset = first_pattern

    if verbose:
        print(f"Note data to start at {note_address:06x}", file=sys.stderr)

    for song in songs:
        for pattern in song.patterns():
            note_data, meta_data = pattern.encode(note_address)

            if verbose:
                print(f"Pattern at {address + pat_offset:06x}, notes at {note_address:06x}",
                      file=sys.stderr)
                print(f"Pattern metadata: {meta_data.hex(' ')}", file=sys.stderr)

            rom.write(address + pat_offset, meta_data)
            rom.write(note_address, note_data)

            pat_offset += len(meta_data)
            note_address += len(note_data)

    layout.note_end = note_address
    return layout


def relocate_loader(rom, loader_address: int, old_base: int, new_base: int,
                    rewind: int = 11, stop_address: int = 0x19C74,
                    verbose: bool = False) -> List[int]:
    """Shift every LDA $addr,Y operand in a loader routine by new_base - old_base.

    Only the known loader shape is handled: scanning starts `rewind` bytes
    before the loader and ends at the first JMP or at stop_address.  No
    other opcodes are interpreted.

    Returns:
        Addresses of the patched LDA instructions
    """
    patched = []
    address = loader_address - rewind

    while True:
        byte = rom.getc(address)
        if byte == OP_LDA_ABS_Y:
            operand = rom.getw(address + 1)
            new_operand = (new_base + operand - old_base) & 0xFFFF
            if verbose:
                print(f"Found LDA, replacing {operand:04X} with {new_operand:04X}", file=sys.stderr)
            rom.putw(address + 1, new_operand)
            patched.append(address)
            address += 3
        elif byte == OP_JMP:
            if verbose:
                print("Found JMP, done moving table", file=sys.stderr)
            break
        elif address >= stop_address:
            if verbose:
                print("Got to music reset code, done moving table", file=sys.stderr)
            break
        else:
            address += 1

    return patched
