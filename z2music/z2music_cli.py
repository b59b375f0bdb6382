#!/usr/bin/env python3
"""
Command line entry point: dump, export and rewrite Zelda II music.
"""

import sys
import traceback
from pathlib import Path
from typing import List, Optional, Tuple

from config import load_config
from output_generators import MidiGenerator, dump_song_text
from rom import Rom


def process_rom(rom: Rom, song_filter: Optional[str] = None, write_midi: bool = False,
                out_dir: Path = Path('.')) -> int:
    """Write text dumps (and MIDI) for every catalog song.  Returns error count."""
    entries = rom.config.songs
    if song_filter is not None:
        entries = [e for e in entries if e.name == song_filter]
        if not entries:
            print(f"WARNING: Song {song_filter} not found in config")
            return 0

    text_dir = out_dir / 'txt'
    midi_dir = out_dir / 'mid'
    text_dir.mkdir(parents=True, exist_ok=True)
    if write_midi:
        midi_dir.mkdir(parents=True, exist_ok=True)

    midi_generator = MidiGenerator()
    errors = 0

    for entry in entries:
        title = entry.title or entry.name
        print(f"Processing: {entry.name}")

        try:
            song = rom.song(entry.name)
            text_file = text_dir / f"{entry.name}.txt"
            text_file.write_text(dump_song_text(title, song))
            outputs = [text_file.name]

            if write_midi:
                if song.sequence_length() == 0:
                    print(f"  SKIP MIDI: {entry.name} (empty sequence)")
                else:
                    midi_file = midi_dir / f"{entry.name}.mid"
                    midi_generator.generate(title, song, midi_file)
                    outputs.append(midi_file.name)

            print(f"  OK: Generated {', '.join(outputs)}")
        except Exception as e:
            errors += 1
            print(f"  ERROR: {e} {traceback.format_exc()}")

    return errors


def _parse_move(value: str) -> Tuple[str, int]:
    group, _, address = value.partition('=')
    if not group or not address:
        raise ValueError(f"--move expects GROUP=ADDRESS, got {value!r}")
    return group, int(address, 0)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]

    song_filter = None
    write_midi = False
    verbose = False
    output_file = None
    moves = []
    args = []

    try:
        i = 0
        while i < len(argv):
            arg = argv[i]
            if arg == '--midi':
                write_midi = True
            elif arg == '--verbose':
                verbose = True
            elif arg == '--song' and i + 1 < len(argv):
                song_filter = argv[i + 1]
                i += 1
            elif arg == '--output' and i + 1 < len(argv):
                output_file = argv[i + 1]
                i += 1
            elif arg == '--move' and i + 1 < len(argv):
                moves.append(_parse_move(argv[i + 1]))
                i += 1
            else:
                args.append(arg)
            i += 1
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if len(args) < 2:
        print("Usage: z2music <config.yaml> <rom_file> [options]")
        print()
        print("Arguments:")
        print("  config.yaml             - Image layout configuration file (e.g. zelda2.yaml)")
        print("  rom_file                - Zelda II ROM image")
        print()
        print("Options:")
        print("  --song <name>           - Only dump the named song (e.g. TownTheme)")
        print("  --midi                  - Also export MIDI files")
        print("  --move <group>=<addr>   - Move a song table to a new CPU address")
        print("  --output <file>         - Commit all music and write a new ROM")
        print("  --verbose               - Print layout diagnostics")
        print()
        print("Examples:")
        print("  z2music zelda2.yaml zelda2.nes --midi")
        print("  z2music zelda2.yaml zelda2.nes --move town=0xa400 --output out.nes")
        return 1

    config_file = args[0]
    rom_file = args[1]

    try:
        config = load_config(config_file)
        rom = Rom.load(rom_file, config, verbose=verbose)

        errors = process_rom(rom, song_filter=song_filter, write_midi=write_midi)

        for group, address in moves:
            patched = rom.move_song_table(group, address)
            print(f"Moved {group} table to {address:04X} ({len(patched)} loader operands patched)")

        if output_file:
            rom.save(output_file)
            print(f"Wrote {output_file}")
    except Exception as e:
        print(f"\nError: {e}")
        print("\nFull traceback:")
        traceback.print_exc()
        return 1

    return 1 if errors else 0


if __name__ == '__main__':
    sys.exit(main())
