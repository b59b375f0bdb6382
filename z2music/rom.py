"""
ROM image: byte buffer, song table discovery, catalog decode and save.
"""

import sys
from typing import Dict, List

from config import MusicConfig
from credits import Credits
from layout import OP_LDA_ABS_Y, TableLayout, commit_table, relocate_loader
from song import Song


# Returned for reads outside the buffer
FILL_BYTE = 0xFF


class Rom:
    """In-memory copy of the game image with decoded music and credits."""

    def __init__(self, config: MusicConfig, raw: bytes, verbose: bool = False):
        """Decode tables, songs and credits from a full image.

        Args:
            config: Image layout and song catalog
            raw: iNES header followed by ROM data
            verbose: Print layout diagnostics to stderr
        """
        expected = config.header_size + config.rom_size
        if len(raw) < expected:
            raise ValueError(f"file too short ({len(raw)} bytes, need {expected})")

        self.config = config
        self.verbose = verbose
        self.header = bytes(raw[:config.header_size])
        self.data = bytearray(raw[config.header_size:expected])
        # Anything after the ROM data is kept as is and written back on save
        self.trailer = bytes(raw[expected:])

        self._tables: Dict[str, int] = {}
        for group in config.table_groups:
            self._tables[group.name] = self._get_song_table_address(group.loader)

        self._songs: Dict[str, Song] = {}
        for entry in config.songs:
            self._songs[entry.name] = Song.decode(
                self, self._tables[entry.group], entry.slot, config.bank_offset
            )

        if config.credits is not None:
            self._credits = Credits.decode(self, config.credits, verbose=verbose)
        else:
            self._credits = Credits()

    @classmethod
    def load(cls, path: str, config: MusicConfig, verbose: bool = False) -> "Rom":
        with open(path, 'rb') as f:
            raw = f.read()
        return cls(config, raw, verbose=verbose)

    def _get_song_table_address(self, loader_address: int) -> int:
        # Loader must be an LDA $addr,Y instruction
        opcode = self.getc(loader_address)
        if opcode != OP_LDA_ABS_Y:
            raise ValueError(
                f"Expected LDA $addr,Y (B9) at {loader_address:06x}, found {opcode:02X}"
            )

        address = self.getw(loader_address + 1) + self.config.bank_offset
        if self.verbose:
            print(f"Got address {address:06x}, from LDA ${address & 0xFFFF:04X},y "
                  f"at {loader_address:06x}", file=sys.stderr)
        return address

    # Byte access

    def getc(self, address: int) -> int:
        if address < 0 or address >= len(self.data):
            return FILL_BYTE
        return self.data[address]

    def getw(self, address: int) -> int:
        return self.getc(address) | (self.getc(address + 1) << 8)

    def read(self, address: int, length: int) -> bytes:
        """Read bytes, filling anything out of range with 0xFF."""
        return bytes(self.getc(address + i) for i in range(length))

    def putc(self, address: int, value: int):
        if address < 0 or address >= len(self.data):
            return
        self.data[address] = value & 0xFF

    def putw(self, address: int, value: int):
        self.putc(address, value & 0xFF)
        self.putc(address + 1, (value >> 8) & 0xFF)

    def write(self, address: int, data: bytes):
        for i, value in enumerate(data):
            self.putc(address + i, value)

    # Music and credits

    def song(self, name: str) -> Song:
        if name not in self._songs:
            raise ValueError(f"Unknown song: {name}")
        return self._songs[name]

    def songs(self) -> Dict[str, Song]:
        return dict(self._songs)

    def credits(self) -> Credits:
        return self._credits

    def table_address(self, group: str) -> int:
        if group not in self._tables:
            raise ValueError(f"Unknown table group: {group}")
        return self._tables[group]

    def commit_group(self, group: str) -> TableLayout:
        """Lay out and write every song in one table group."""
        table = self.config.group(group)
        songs: List[Song] = [self._songs[e.name] for e in self.config.songs_in_group(group)]
        return commit_table(self, self._tables[group], songs, table.slots, verbose=self.verbose)

    def commit(self) -> Dict[str, TableLayout]:
        layouts = {}
        for group in self.config.table_groups:
            layouts[group.name] = self.commit_group(group.name)
        if self.config.credits is not None:
            self._credits.commit(self, self.config.credits)
        return layouts

    def to_bytes(self) -> bytes:
        return self.header + bytes(self.data) + self.trailer

    def save(self, path: str):
        self.commit()
        with open(path, 'wb') as f:
            f.write(self.to_bytes())

    def move_song_table(self, group: str, base_address: int) -> List[int]:
        """Move a group's song table to base_address (16-bit, as the CPU sees it).

        Only the table address and the loader code are updated; the table
        itself is written at the new location on the next commit.

        Returns:
            Addresses of the patched loader instructions
        """
        table = self.config.group(group)
        self._tables[group] = base_address + self.config.bank_offset

        old_base = self.getw(table.loader + 1)
        return relocate_loader(
            self, table.loader, old_base, base_address,
            rewind=self.config.loader_rewind,
            stop_address=self.config.move_stop_address,
            verbose=self.verbose,
        )
