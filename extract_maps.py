"""
extract_maps.py - Extract Diablo II map areas and their monster rosters.

Reads from the data directory:
    string.tbl, patchstring.tbl, expansionstring.tbl
    MonStats.txt, MonLvl.txt, Misc.txt, Levels.txt

and writes maps.json: one object per map with its tier and the monsters that
spawn there (Hell resistances, HP ranges for closed and open Battle.net).

Usage:
    python3 extract_maps.py
    python3 extract_maps.py --data /path/to/excel --out /path/to/maps.json
    python3 extract_maps.py --xlsx maps.xlsx
"""

import argparse
import json
import os
import sys
import tempfile
from collections import Counter
from pathlib import Path
from typing import List, Union

# ---------------------------------------------------------------------------
# Path setup — import sibling modules from same directory
# ---------------------------------------------------------------------------
sys.path.insert(0, str(Path(__file__).parent))

from tbl_utils import TblFormatError, load_tbl
from txt_utils import DataFileError, read_data_file
from map_data import (
    MapLevel,
    StringTables,
    build_map_levels,
    group_monster_levels,
)

BASE_TBL_FILE = 'string.tbl'
PATCH_TBL_FILE = 'patchstring.tbl'
EXPANSION_TBL_FILE = 'expansionstring.tbl'

MONSTATS_FILE = 'MonStats.txt'
MONLVL_FILE = 'MonLvl.txt'
MISC_FILE = 'Misc.txt'
LEVELS_FILE = 'Levels.txt'

DEFAULT_OUT = 'maps.json'


class OutputError(Exception):
    """Raised when the result cannot be encoded or written."""


# ===========================================================================
# Phase 1: Load inputs
# ===========================================================================

def load_string_tables(data_dir: Path) -> StringTables:
    tables = StringTables(
        base=load_tbl(data_dir / BASE_TBL_FILE),
        patch=load_tbl(data_dir / PATCH_TBL_FILE),
        expansion=load_tbl(data_dir / EXPANSION_TBL_FILE),
    )
    print(f"  {BASE_TBL_FILE}: {len(tables.base)} strings")
    print(f"  {PATCH_TBL_FILE}: {len(tables.patch)} strings")
    print(f"  {EXPANSION_TBL_FILE}: {len(tables.expansion)} strings")
    return tables


def load_table(data_dir: Path, name: str) -> list:
    records = read_data_file(data_dir / name)
    print(f"  {name}: {len(records)} rows")
    return records


def extract_maps(data_dir: Union[str, Path]) -> List[MapLevel]:
    """Run the whole extraction against one data directory.

    Parameters
    ----------
    data_dir : str or Path
        Directory holding the three .tbl files and the four .txt tables.

    Returns
    -------
    list[MapLevel]
        Maps in Levels.txt order.
    """
    data_dir = Path(data_dir)

    print("\n--- Phase 1: Loading string tables ---", flush=True)
    tables = load_string_tables(data_dir)

    print("\n--- Phase 2: Loading data tables ---", flush=True)
    monsters = load_table(data_dir, MONSTATS_FILE)
    monster_levels = group_monster_levels(load_table(data_dir, MONLVL_FILE))
    misc = load_table(data_dir, MISC_FILE)
    levels = load_table(data_dir, LEVELS_FILE)

    print("\n--- Phase 3: Cross-referencing maps ---", flush=True)
    return build_map_levels(levels, monsters, misc, monster_levels, tables)


# ===========================================================================
# Phase 4: Save output
# ===========================================================================

def save_json(obj, path: Path) -> None:
    with open(path, 'w', encoding='utf-8') as fh:
        json.dump(obj, fh, ensure_ascii=False, indent=2)


def write_maps_json(map_levels: List[MapLevel], path: Union[str, Path]) -> None:
    """Encode and write maps.json; on failure no file is left behind.

    Raises
    ------
    OutputError
        If the data cannot be encoded or the file cannot be written.
    """
    path = Path(path)
    try:
        text = json.dumps([m.to_dict() for m in map_levels],
                          ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as exc:
        raise OutputError(f"Could not encode maps: {exc}") from exc

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix='.tmp',
                                        dir=str(path.parent))
        with os.fdopen(fd, 'w', encoding='utf-8') as fh:
            fh.write(text)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise OutputError(f"Could not write {path}: {exc}") from exc


def load_maps_json(path: Union[str, Path]) -> List[MapLevel]:
    """Read a maps.json file back into MapLevel objects."""
    with open(path, 'r', encoding='utf-8') as fh:
        return [MapLevel.from_dict(d) for d in json.load(fh)]


# ===========================================================================
# Phase 5: Print summary
# ===========================================================================

def print_summary(map_levels: List[MapLevel], path: Path) -> None:
    size = path.stat().st_size
    per_tier = Counter(int(m.tier) for m in map_levels)
    n_monsters = sum(len(m.monsters) for m in map_levels)
    print(f"\n{'='*60}")
    print(f"  {path.name}")
    print(f"  Maps: {len(map_levels)}  |  Monsters: {n_monsters}  |  "
          f"File size: {size:,} bytes  ({size/1024:.1f} KB)")
    print(f"  Path: {path}")
    for tier in sorted(per_tier):
        print(f"    tier {tier}: {per_tier[tier]} maps")
    for i, m in enumerate(map_levels[:3]):
        names = [mon.display_name for mon in m.monsters[:5]]
        print(f"    [{i}] {m.display_name} (tier {int(m.tier)}) {names}")


# ===========================================================================
# Main
# ===========================================================================

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Extract map areas and monster rosters to JSON')
    parser.add_argument('--data', default='.',
                        help='Directory with the .tbl and .txt files')
    parser.add_argument('--out', default=DEFAULT_OUT,
                        help='Output JSON path')
    parser.add_argument('--xlsx', default=None,
                        help='Also write the roster to this .xlsx workbook')
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> List[MapLevel]:
    out_path = Path(args.out)
    map_levels = extract_maps(args.data)

    print("\n--- Phase 4: Saving output ---", flush=True)
    write_maps_json(map_levels, out_path)
    print(f"  Saved: {out_path}")

    if args.xlsx:
        from export_maps_xlsx import write_maps_workbook
        write_maps_workbook(map_levels, Path(args.xlsx))
        print(f"  Saved: {args.xlsx}")

    print_summary(map_levels, out_path)
    return map_levels


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        run(args)
    except (OSError, TblFormatError, DataFileError, OutputError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    print("\nDone.")
    return 0


if __name__ == '__main__':
    sys.exit(main())
