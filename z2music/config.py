"""
Image configuration: fixed addresses, table groups and the song catalog.

Everything here is a property of one known ROM layout, so it is read from
a YAML file (see zelda2.yaml) rather than discovered.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import yaml


@dataclass
class TableGroup:
    """One 8-slot song table and the loader instruction that indexes it."""
    name: str
    loader: int  # Address of the LDA $table,Y (0xB9) instruction
    slots: List[int]  # Slot -> index into this group's songs; len(songs) = empty song


@dataclass
class SongEntry:
    """Binding of a named song to a (group, slot) pair."""
    name: str
    group: str
    slot: int
    title: Optional[str] = None


@dataclass
class CreditsLayout:
    table_address: int
    bank_offset: int
    pages: int


@dataclass
class MusicConfig:
    header_size: int = 0x10
    rom_size: int = 0x40000
    bank_offset: int = 0x10000
    loader_rewind: int = 11  # Loaders have an extra load just before the table load
    move_stop_address: int = 0x19C74  # Start of the music reset code
    table_groups: List[TableGroup] = field(default_factory=list)
    songs: List[SongEntry] = field(default_factory=list)
    credits: Optional[CreditsLayout] = None

    def group(self, name: str) -> TableGroup:
        for group in self.table_groups:
            if group.name == name:
                return group
        raise ValueError(f"Unknown table group: {name}")

    def song_entry(self, name: str) -> SongEntry:
        for entry in self.songs:
            if entry.name == name:
                return entry
        raise ValueError(f"Unknown song: {name}")

    def songs_in_group(self, name: str) -> List[SongEntry]:
        """Songs bound to a group, in catalog order."""
        return [entry for entry in self.songs if entry.group == name]


def _parse_int(value) -> int:
    """Convert a config value to int (handles '0x1A', '26', 26)."""
    return int(value, 0) if isinstance(value, str) else value


def config_from_dict(data: Dict) -> MusicConfig:
    """Build and check a MusicConfig from parsed YAML."""
    config = MusicConfig(
        header_size=_parse_int(data.get('header_size', 0x10)),
        rom_size=_parse_int(data.get('rom_size', 0x40000)),
        bank_offset=_parse_int(data.get('bank_offset', 0x10000)),
        loader_rewind=_parse_int(data.get('loader_rewind', 11)),
        move_stop_address=_parse_int(data.get('move_stop_address', 0x19C74)),
    )

    for g in data.get('table_groups', []):
        slots = [_parse_int(s) for s in g['slots']]
        if len(slots) != 8:
            raise ValueError(f"Table group {g['name']} needs 8 slots, got {len(slots)}")
        config.table_groups.append(TableGroup(
            name=g['name'],
            loader=_parse_int(g['loader']),
            slots=slots,
        ))

    group_names = {g.name for g in config.table_groups}
    for s in data.get('songs', []):
        entry = SongEntry(
            name=s['name'],
            group=s['group'],
            slot=_parse_int(s['slot']),
            title=s.get('title'),
        )
        if entry.group not in group_names:
            raise ValueError(f"Song {entry.name} refers to unknown table group {entry.group}")
        if not 0 <= entry.slot <= 7:
            raise ValueError(f"Song {entry.name} slot {entry.slot} out of range (0-7)")
        config.songs.append(entry)

    # Every slot must name a song in the group or the empty song after them
    for group in config.table_groups:
        count = len(config.songs_in_group(group.name))
        for slot in group.slots:
            if not 0 <= slot <= count:
                raise ValueError(
                    f"Table group {group.name} slot value {slot} out of range (0-{count})"
                )

    credits = data.get('credits')
    if credits:
        config.credits = CreditsLayout(
            table_address=_parse_int(credits['table_address']),
            bank_offset=_parse_int(credits.get('bank_offset', 0xC000)),
            pages=_parse_int(credits.get('pages', 10)),
        )

    return config


def load_config(config_path: str) -> MusicConfig:
    """Load a YAML image configuration file."""
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f)
    return config_from_dict(data or {})
