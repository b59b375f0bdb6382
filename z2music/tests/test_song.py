#!/usr/bin/env python3
"""Tests for song sequence decode and encode."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from notes import Duration, Note, Pitch
from pattern import Channel, Pattern
from rom_fixtures import SMALL_ROM_SIZE, plain_rom, write_pattern
from song import Song


TABLE = 0x1A000


def q(pitch):
    return Note.of(Duration.Quarter, pitch)


def song_rom():
    """Table whose slot 2 plays patterns at offsets 0x10, 0x16, 0x10, 0x16, 0x1C."""
    body = bytearray(SMALL_ROM_SIZE)
    body[TABLE:TABLE + 8] = bytes([0x08, 0x08, 0x09, 0x08, 0x08, 0x08, 0x08, 0x08])
    body[TABLE + 0x08] = 0x00
    body[TABLE + 0x09:TABLE + 0x0F] = bytes([0x10, 0x16, 0x10, 0x16, 0x1C, 0x00])

    write_pattern(body, TABLE + 0x10, 0x18, 0x1A100, ([int(q(Pitch.C4)), 0], b'', b'', b''))
    write_pattern(body, TABLE + 0x16, 0x18, 0x1A110, ([int(q(Pitch.D4)), 0], b'', b'', b''))
    write_pattern(body, TABLE + 0x1C, 0x18, 0x1A120, ([int(q(Pitch.E4)), 0], b'', b'', b''))
    return plain_rom(data=bytes(body))


def test_decode_deduplicates_repeated_offsets():
    song = Song.decode(song_rom(), TABLE, 2)

    assert song.pattern_count() == 3
    assert song.sequence() == [0, 1, 0, 1, 2]
    assert [p.notes(Channel.Pulse1)[0].pitch for p in song.patterns()] == [
        Pitch.C4, Pitch.D4, Pitch.E4,
    ]
    # Repeats share the pattern object
    assert song.at(0) is song.at(2)
    assert song.at(5) is None


def test_decode_empty_slot():
    song = Song.decode(song_rom(), TABLE, 0)
    assert song.pattern_count() == 0
    assert song.sequence_length() == 0


def test_decode_rejects_slot_out_of_range():
    with pytest.raises(ValueError):
        Song.decode(song_rom(), TABLE, 8)


def test_sequence_data_uses_metadata_lengths():
    song = Song()
    song.add_pattern(Pattern(0x18, pulse1=[q(Pitch.C4)]))
    song.add_pattern(Pattern.with_voicing(1, 2, pulse1=[q(Pitch.D4)]))
    song.add_pattern(Pattern(0x18, pulse1=[q(Pitch.E4)]))
    song.set_sequence([0, 1, 2, 1, 0])

    assert song.sequence_data(0x20) == bytes([0x20, 0x26, 0x2E, 0x26, 0x20, 0x00])
    assert song.metadata_length() == 5 + 1 + 6 + 8 + 6


def test_sequence_data_rejects_offset_past_one_byte():
    song = Song()
    song.add_pattern(Pattern(0x18, pulse1=[q(Pitch.C4)]))
    song.add_pattern(Pattern(0x18, pulse1=[q(Pitch.D4)]))
    song.set_sequence([1])

    with pytest.raises(ValueError):
        song.sequence_data(0xFC)


def test_sequence_entries_must_name_patterns():
    song = Song()
    song.add_pattern(Pattern(0x18))
    with pytest.raises(ValueError):
        song.append_sequence(1)
    with pytest.raises(ValueError):
        song.set_sequence([0, 3])


def test_clear():
    song = Song()
    song.add_pattern(Pattern(0x18))
    song.append_sequence(0)
    song.clear()
    assert song.pattern_count() == 0
    assert song.sequence_length() == 0


def test_unterminated_sequence_at_buffer_end(capsys):
    body = bytearray(0x100)
    body[0xF0] = 0x08
    body[0xF8:0x100] = bytes([0x10] * 8)
    rom = plain_rom(rom_size=0x100, data=bytes(body))

    # Reads past the end return 0xFF, never a terminator
    song = Song.decode(rom, 0xF0, 0, bank_offset=0)

    assert song.sequence_length() == 0x100
    assert song.pattern_count() == 2
    assert song.sequence()[:9] == [0] * 8 + [1]
    assert 'WARNING' in capsys.readouterr().err
