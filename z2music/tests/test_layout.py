#!/usr/bin/env python3
"""Tests for table group layout and loader relocation."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from layout import commit_table, relocate_loader
from notes import Duration, Note, Pitch
from pattern import Channel, Pattern
from rom_fixtures import plain_rom
from song import Song


TABLE = 0x1A000


def q(pitch):
    return Note.of(Duration.Quarter, pitch)


def three_songs():
    """A: one plain pattern; B: two patterns played A-B-A; C: one voiced pattern."""
    a = Song()
    a.add_pattern(Pattern(0x18, pulse1=[q(Pitch.C4), q(Pitch.D4)]))
    a.set_sequence([0])

    b = Song()
    b.add_pattern(Pattern(0x18, pulse1=[q(Pitch.E4)], pulse2=[q(Pitch.G4)]))
    b.add_pattern(Pattern(0x10, pulse1=[q(Pitch.F4), q(Pitch.A4)],
                          triangle=[q(Pitch.E3)], noise=[q(Pitch.Gs3)] * 2))
    b.set_sequence([0, 1, 0])

    c = Song()
    c.add_pattern(Pattern.with_voicing(0x90, 0x38, pulse1=[q(Pitch.B4)]))
    c.set_sequence([0])

    return [a, b, c]


# Slot 7 reuses song A, slots 3-6 play the empty song
SLOTS = [0, 1, 2, 3, 3, 3, 3, 0]


def test_commit_places_everything_back_to_back():
    rom = plain_rom()
    songs = three_songs()

    layout = commit_table(rom, TABLE, songs, SLOTS)

    # A = 8 (2 bytes), B = 10 (4 bytes), C = 14 (2 bytes), empty = 16
    assert layout.song_offsets == [8, 10, 14, 16]
    assert rom.read(TABLE, 8) == bytes([8, 10, 14, 16, 16, 16, 16, 8])

    # Metadata starts right after the empty sequence's terminator
    assert layout.first_pattern == 17
    assert rom.read(TABLE + 8, 9) == bytes([
        17, 0x00,            # A
        23, 29, 23, 0x00,    # B
        35, 0x00,            # C (voiced, 8 bytes of metadata)
        0x00,                # empty song
    ])

    # Note data follows the last pattern's metadata
    assert layout.note_start == TABLE + 43
    pa = songs[0].patterns()[0]
    assert rom.read(TABLE + 17, 6) == pa.meta_data(TABLE + 43)
    assert rom.read(TABLE + 43, 3) == pa.note_data()

    total_notes = sum(len(p.note_data()) for s in songs for p in s.patterns())
    assert layout.note_end == TABLE + 43 + total_notes
    assert layout.size == 43 + total_notes


def test_committed_group_decodes_back():
    rom = plain_rom()
    songs = three_songs()
    commit_table(rom, TABLE, songs, SLOTS)

    for slot, original in [(0, songs[0]), (1, songs[1]), (2, songs[2]), (7, songs[0])]:
        decoded = Song.decode(rom, TABLE, slot)
        assert decoded.sequence() == original.sequence()
        assert decoded.pattern_count() == original.pattern_count()
        for got, want in zip(decoded.patterns(), original.patterns()):
            assert got.tempo == want.tempo
            assert (got.voice1, got.voice2) == (want.voice1, want.voice2)
            for channel in Channel:
                assert got.notes(channel) == want.notes(channel)

    assert Song.decode(rom, TABLE, 4).sequence_length() == 0


def test_commit_is_idempotent():
    rom = plain_rom()
    songs = three_songs()

    commit_table(rom, TABLE, songs, SLOTS)
    first = bytes(rom.data)
    commit_table(rom, TABLE, songs, SLOTS)
    assert bytes(rom.data) == first


def test_commit_rejects_bad_slots():
    rom = plain_rom()
    with pytest.raises(ValueError):
        commit_table(rom, TABLE, three_songs(), [0, 1, 2, 4, 3, 3, 3, 3])
    with pytest.raises(ValueError):
        commit_table(rom, TABLE, three_songs(), [0, 1, 2])


LOADER = 0x19A40

# LDA $A000,Y / STA $E0 / LDA $A001,Y / STA $E1 / JMP $9C00 / LDA $1234,Y
LOADER_CODE = bytes([
    0xB9, 0x00, 0xA0,
    0x85, 0xE0,
    0xEA, 0xEA, 0xEA, 0xEA, 0xEA, 0xEA,
    0xB9, 0x01, 0xA0,
    0x85, 0xE1,
    0x4C, 0x00, 0x9C,
    0xB9, 0x34, 0x12,
])


def loader_rom():
    rom = plain_rom()
    rom.write(LOADER - 11, LOADER_CODE)
    return rom


def test_relocate_shifts_operands_up_to_jmp():
    rom = loader_rom()

    patched = relocate_loader(rom, LOADER, 0xA000, 0xA400)

    assert patched == [LOADER - 11, LOADER]
    assert rom.getw(LOADER - 10) == 0xA400
    assert rom.getw(LOADER + 1) == 0xA401
    # Nothing after the JMP changes
    assert rom.read(LOADER + 5, 6) == LOADER_CODE[16:]


def test_relocate_negative_delta():
    rom = loader_rom()
    relocate_loader(rom, LOADER, 0xA000, 0x9F00)
    assert rom.getw(LOADER - 10) == 0x9F00
    assert rom.getw(LOADER + 1) == 0x9F01


def test_relocate_stops_at_boundary():
    rom = plain_rom()
    # No JMP: the scan must give up at the stop address
    rom.write(LOADER, bytes([0xB9, 0x00, 0xA0]))
    rom.write(LOADER + 0x40, bytes([0xB9, 0x00, 0xA0]))

    patched = relocate_loader(rom, LOADER, 0xA000, 0xA100, stop_address=LOADER + 0x20)

    assert patched == [LOADER]
    assert rom.getw(LOADER + 0x41) == 0xA000
