"""
Write the map roster to an .xlsx workbook.
Source: maps.json (output of extract_maps.py)
Output: maps.xlsx with two sheets, "Maps" and "Monsters"
"""

import argparse
import sys
from pathlib import Path
from typing import List

import openpyxl
from openpyxl.styles import Font

from map_data import MapLevel

MAPS_SHEET = "Maps"
MONSTERS_SHEET = "Monsters"

MAP_COLUMNS = ["Map", "Tier", "Monsters"]
MONSTER_COLUMNS = [
    "Map", "Tier", "Monster",
    "Phys Res", "Magic Res", "Fire Res", "Lightning Res", "Cold Res", "Poison Res",
    "Min HP (closed)", "Max HP (closed)", "Min HP (open)", "Max HP (open)",
]


def _write_header(ws, columns: List[str]) -> None:
    ws.append(columns)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    ws.freeze_panes = "A2"


def write_maps_workbook(map_levels: List[MapLevel], path: Path) -> None:
    wb = openpyxl.Workbook()

    ws_maps = wb.active
    ws_maps.title = MAPS_SHEET
    _write_header(ws_maps, MAP_COLUMNS)

    ws_mons = wb.create_sheet(MONSTERS_SHEET)
    _write_header(ws_mons, MONSTER_COLUMNS)

    for m in map_levels:
        tier = int(m.tier)
        ws_maps.append([m.display_name, tier, len(m.monsters)])
        for mon in m.monsters:
            ws_mons.append([
                m.display_name, tier, mon.display_name,
                mon.phys_res, mon.magic_res, mon.fire_res,
                mon.lightning_res, mon.cold_res, mon.poison_res,
                mon.min_hp_closed_bnet, mon.max_hp_closed_bnet,
                mon.min_hp_open_bnet, mon.max_hp_open_bnet,
            ])

    wb.save(path)


def main(argv=None) -> int:
    from extract_maps import load_maps_json

    parser = argparse.ArgumentParser(description='Export maps.json to an .xlsx workbook')
    parser.add_argument('--maps', default='maps.json', help='Input maps.json')
    parser.add_argument('--out', default='maps.xlsx', help='Output workbook')
    args = parser.parse_args(argv)

    try:
        map_levels = load_maps_json(args.maps)
        write_maps_workbook(map_levels, Path(args.out))
    except (OSError, ValueError, KeyError, TypeError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    n_monsters = sum(len(m.monsters) for m in map_levels)
    print(f"Saved: {args.out}")
    print(f"  maps: {len(map_levels)}")
    print(f"  monsters: {n_monsters}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
