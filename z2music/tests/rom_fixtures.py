"""Synthetic ROM images for tests; no real game image is needed."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config import config_from_dict
from rom import Rom


HEADER = b'NES\x1a' + bytes(12)

# Small image that still covers bank 6 (0x18000-0x1BFFF)
SMALL_ROM_SIZE = 0x20000


def plain_config(rom_size: int = SMALL_ROM_SIZE, **extra):
    """Config with no tables, songs or credits: just a byte buffer."""
    data = {'header_size': len(HEADER), 'rom_size': rom_size, 'bank_offset': 0x10000}
    data.update(extra)
    return config_from_dict(data)


def plain_rom(rom_size: int = SMALL_ROM_SIZE, data: bytes = b'') -> Rom:
    body = bytearray(rom_size)
    body[:len(data)] = data
    return Rom(plain_config(rom_size), HEADER + bytes(body))


def install_loader(body: bytearray, loader: int, table_address: int, bank_offset: int = 0x10000):
    """LDA $table,Y at loader followed by a JMP, so relocation stops there."""
    operand = table_address - bank_offset
    body[loader:loader + 3] = bytes([0xB9, operand & 0xFF, operand >> 8])
    body[loader + 3:loader + 6] = bytes([0x4C, 0x00, 0x9C])


def install_empty_table(body: bytearray, table_address: int):
    """Song table whose 8 slots all point at one empty sequence."""
    body[table_address:table_address + 8] = bytes([8] * 8)
    body[table_address + 8] = 0x00


def write_pattern(body: bytearray, address: int, tempo: int, note_address: int,
                  channels, voices=None):
    """Write pattern metadata at address and note data at note_address.

    channels is (pulse1, pulse2, triangle, noise) raw note bytes, each
    already including any terminator.
    """
    pw1, pw2, tri, noi = channels
    meta = [
        tempo,
        note_address & 0xFF,
        (note_address >> 8) & 0xFF,
        len(pw1) + len(pw2) if tri else 0,
        len(pw1) if pw2 else 0,
        len(pw1) + len(pw2) + len(tri) if noi else 0,
    ]
    if voices:
        meta.extend(voices)
    body[address:address + len(meta)] = bytes(meta)
    notes = bytes(pw1) + bytes(pw2) + bytes(tri) + bytes(noi)
    body[note_address:note_address + len(notes)] = notes
