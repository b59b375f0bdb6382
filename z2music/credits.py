"""
Ending credits text.

Each page has a 4-byte table entry: a pointer to the title block and a
pointer to the names block (both relative to the credits bank).  A string
record is 0x22, a screen position byte, a length byte and the encoded
characters.  Blocks end with 0xFF.
"""

import sys
from dataclasses import dataclass
from typing import List, Tuple

from config import CreditsLayout


STRING_FLAG = 0x22
BLOCK_END = 0xFF

TITLE_POSITION = 0x47
NAME1_POSITION = 0x8B
NAME2_POSITION = 0xCB

_ENCODE_SPECIAL = {' ': 0xF4, '.': 0xCF, '/': 0xCE, '!': 0x07}
_DECODE_SPECIAL = {0x07: '!', 0xCE: '/', 0xCF: '.', 0xF4: ' ', 0xF5: ' '}


class CreditsEncodeError(ValueError):
    """Character with no credits font tile."""


def encode_char(c: str) -> int:
    if c in _ENCODE_SPECIAL:
        return _ENCODE_SPECIAL[c]
    if '0' <= c <= '9':
        return ord(c) + 0xA0
    if 'A' <= c <= 'Z':
        return ord(c) + 0x99
    # Lower case shares the upper case tiles
    if 'a' <= c <= 'z':
        return ord(c) + 0x79
    raise CreditsEncodeError(f"Cannot encode character {c!r}")


def decode_byte(data: int) -> str:
    """Decode one tile byte.  Unknown bytes warn and decode to ''."""
    if data in _DECODE_SPECIAL:
        return _DECODE_SPECIAL[data]
    if 0xD0 <= data <= 0xD9:
        return chr(data - 0xA0)
    if 0xDA <= data <= 0xF3:
        return chr(data - 0x99)
    print(f"WARNING: Cannot decode credits byte {data:02x}", file=sys.stderr)
    return ''


def encode_text(text: str) -> bytes:
    return bytes(encode_char(c) for c in text)


def read_string(rom, address: int) -> Tuple[str, int]:
    """Read a string record at address.

    Returns:
        (text, length byte); ('', 0) if there is no record at address.
        The length counts encoded bytes, so it stays correct when an
        undecodable byte is dropped from the text.
    """
    if rom.getc(address) != STRING_FLAG:
        return '', 0
    length = rom.getc(address + 2)
    return ''.join(decode_byte(b) for b in rom.read(address + 3, length)), length


def write_string(rom, address: int, position: int, text: str) -> int:
    """Write a string record and return the address just past it."""
    encoded = encode_text(text)
    if len(encoded) > 0xFF:
        raise ValueError(f"Credits string too long ({len(encoded)} characters)")
    rom.write(address, bytes([STRING_FLAG, position, len(encoded)]) + encoded)
    return address + 3 + len(encoded)


@dataclass
class CreditsText:
    title: str = ''
    name1: str = ''
    name2: str = ''


class Credits:
    """Fixed number of credits pages, each with a title and up to two names."""

    def __init__(self, pages: int = 0):
        self._pages: List[CreditsText] = [CreditsText() for _ in range(pages)]

    @classmethod
    def decode(cls, rom, layout: CreditsLayout, verbose: bool = False) -> "Credits":
        credits = cls(layout.pages)

        for i in range(layout.pages):
            entry = layout.table_address + 4 * i
            title = rom.getw(entry) + layout.bank_offset
            names = rom.getw(entry + 2) + layout.bank_offset

            text = CreditsText()
            text.title, _ = read_string(rom, title)
            text.name1, name1_length = read_string(rom, names)
            text.name2, _ = read_string(rom, names + 3 + name1_length)
            credits._pages[i] = text

            if verbose:
                print(f"Credits page {i} at {title:06x}/{names:06x} - "
                      f"[{text.title}] [{text.name1}] [{text.name2}]", file=sys.stderr)

        return credits

    def __len__(self) -> int:
        return len(self._pages)

    def _check_page(self, page: int):
        if not 0 <= page < len(self._pages):
            raise IndexError(f"Credits page {page} out of range (0-{len(self._pages) - 1})")

    def get(self, page: int) -> CreditsText:
        self._check_page(page)
        text = self._pages[page]
        return CreditsText(text.title, text.name1, text.name2)

    def set(self, page: int, text: CreditsText):
        self._check_page(page)
        # Fail now rather than halfway through a commit
        encode_text(text.title + text.name1 + text.name2)
        self._pages[page] = CreditsText(text.title, text.name1, text.name2)

    def commit(self, rom, layout: CreditsLayout) -> int:
        """Write the pointer table and strings.  Returns the end address."""
        table = layout.table_address
        data = layout.table_address + 4 * len(self._pages)

        for i, text in enumerate(self._pages):
            if text.title or i == 0:
                rom.putw(table, data - layout.bank_offset)
                data = write_string(rom, data, TITLE_POSITION, text.title)
                rom.putc(data, BLOCK_END)
                data += 1
            else:
                # Empty title shares the previous page's title pointer
                rom.putw(table, rom.getw(table - 4))

            rom.putw(table + 2, data - layout.bank_offset)
            data = write_string(rom, data, NAME1_POSITION, text.name1)
            if text.name2:
                data = write_string(rom, data, NAME2_POSITION, text.name2)
            rom.putc(data, BLOCK_END)
            data += 1

            table += 4

        return data
