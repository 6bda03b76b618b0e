"""
map_data.py - Map/monster data model and the cross-reference join.

Inputs (already parsed):
    Misc.txt      : map items; `type` is the tier code, `len` the level id
    Levels.txt    : areas; `Id`, `Name`, mon1..mon15 spawn slots, MonLvl3
    MonStats.txt  : monsters; `Id`, `NameStr`, minHP/maxHP, Res**(H)
    MonLvl.txt    : per-level HP multipliers; `Level`, HP(H), L-HP(H)
    string tables : base, patch and expansion .tbl files

Output: one MapLevel per qualifying Levels.txt row, in Levels.txt order,
each holding the monsters of its spawn slots in MonStats.txt order.
"""

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Set, Tuple

from tbl_utils import StringTable, resolve_string
from txt_utils import parse_int_or_zero

NUM_MONSTER_SLOTS = 15

_DECIMAL_RE = re.compile(r"[+-]?[0-9]+")

#: Levels.txt column holding the Hell difficulty monster level.
MONSTER_LEVEL_COLUMN = 'MonLvl3'

#: JSON field -> MonStats.txt column for the Hell difficulty resistances.
RESISTANCE_COLUMNS = {
    'physRes':      'ResDm(H)',
    'magicRes':     'ResMa(H)',
    'fireRes':      'ResFi(H)',
    'lightningRes': 'ResLi(H)',
    'coldRes':      'ResCo(H)',
    'poisonRes':    'ResPo(H)',
}


# ---------------------------------------------------------------------------
# Map tiers
# ---------------------------------------------------------------------------

class MapTier(IntEnum):
    TIER_1 = 1
    TIER_2 = 2
    TIER_3 = 3
    TIER_4 = 4
    UNIQUE = 5


@dataclass(frozen=True)
class TierRule:
    """How a Misc.txt `type` code becomes a map tier."""
    code: str
    tier: MapTier
    requires_spawnable: bool

    def qualifies(self, spawnable: str) -> bool:
        if not self.requires_spawnable:
            return True
        return spawnable == '1'


# Unique maps ship with spawnable=0 and are still real maps.
TIER_RULES: Dict[str, TierRule] = {
    rule.code: rule for rule in (
        TierRule('t1m', MapTier.TIER_1, requires_spawnable=True),
        TierRule('t2m', MapTier.TIER_2, requires_spawnable=True),
        TierRule('t3m', MapTier.TIER_3, requires_spawnable=True),
        TierRule('t4m', MapTier.TIER_4, requires_spawnable=True),
        TierRule('t5m', MapTier.UNIQUE, requires_spawnable=False),
    )
}


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Monster:
    display_name: str
    phys_res: int = 0
    magic_res: int = 0
    fire_res: int = 0
    lightning_res: int = 0
    cold_res: int = 0
    poison_res: int = 0
    min_hp_closed_bnet: int = 0
    max_hp_closed_bnet: int = 0
    min_hp_open_bnet: int = 0
    max_hp_open_bnet: int = 0

    def to_dict(self) -> dict:
        return {
            'displayName': self.display_name,
            'physRes': self.phys_res,
            'magicRes': self.magic_res,
            'fireRes': self.fire_res,
            'lightningRes': self.lightning_res,
            'coldRes': self.cold_res,
            'poisonRes': self.poison_res,
            'minHpClosedBnet': self.min_hp_closed_bnet,
            'maxHpClosedBnet': self.max_hp_closed_bnet,
            'minHpOpenBnet': self.min_hp_open_bnet,
            'maxHpOpenBnet': self.max_hp_open_bnet,
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'Monster':
        return cls(
            display_name=d['displayName'],
            phys_res=d['physRes'],
            magic_res=d['magicRes'],
            fire_res=d['fireRes'],
            lightning_res=d['lightningRes'],
            cold_res=d['coldRes'],
            poison_res=d['poisonRes'],
            min_hp_closed_bnet=d['minHpClosedBnet'],
            max_hp_closed_bnet=d['maxHpClosedBnet'],
            min_hp_open_bnet=d['minHpOpenBnet'],
            max_hp_open_bnet=d['maxHpOpenBnet'],
        )


@dataclass
class MapLevel:
    display_name: str
    tier: int
    monsters: List[Monster] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'displayName': self.display_name,
            'tier': int(self.tier),
            'monsters': [m.to_dict() for m in self.monsters],
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'MapLevel':
        return cls(
            display_name=d['displayName'],
            tier=d['tier'],
            monsters=[Monster.from_dict(m) for m in d.get('monsters') or []],
        )


@dataclass
class StringTables:
    """The three string tables of the game install."""
    base: StringTable
    patch: StringTable
    expansion: StringTable

    def by_precedence(self) -> Tuple[StringTable, ...]:
        """Highest precedence first: expansion overrides patch overrides base."""
        # Later tables win; a base-first lookup would differ only on keys
        # that more than one table defines.
        return (self.expansion, self.patch, self.base)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def group_monster_levels(records: list) -> Dict[str, Dict[str, str]]:
    """MonLvl.txt `Level` -> raw Hell HP multipliers for both rulesets."""
    by_level = {}
    for rec in records:
        by_level[rec.get('Level', '')] = {
            'hpClosedBnet': rec.get('HP(H)', ''),
            'hpOpenBnet': rec.get('L-HP(H)', ''),
        }
    return by_level


def get_maps_from_misc(records: list) -> Dict[str, MapLevel]:
    """Build `len` level id -> empty MapLevel for every qualifying map item."""
    maps = {}
    for item in records:
        rule = TIER_RULES.get(item.get('type', ''))
        if rule is None or not rule.qualifies(item.get('spawnable', '')):
            continue
        maps[item.get('len', '')] = MapLevel(
            display_name=item.get('*name', ''),
            tier=rule.tier,
        )
    return maps


def monster_slots(level: dict) -> Set[str]:
    """Monster ids listed in mon1..mon15 of a Levels.txt row."""
    slots = set()
    for n in range(1, NUM_MONSTER_SLOTS + 1):
        mon_id = level.get(f'mon{n}', '')
        if mon_id:
            slots.add(mon_id)
    return slots


def resolve_monster_name(name_str: str, tables: StringTables) -> str:
    """Display name for a NameStr key, or the raw key if no table has it."""
    name = resolve_string(name_str, tables.by_precedence())
    if name is None:
        print('Could not match display name monster', name_str)
        return name_str
    return name


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

def compute_hp(multiplier: int, base_hp: int) -> int:
    """Scale a MonStats HP value by a MonLvl percentage, rounding down."""
    return (multiplier * base_hp) // 100


def _atoi(value: Optional[str]) -> int:
    # HP fields: a failed parse is ignored and the value stays 0.
    number = 0
    if value and _DECIMAL_RE.fullmatch(value):
        number = int(value)
    return number


def build_monster(record: dict, multipliers: Optional[Dict[str, str]],
                  tables: StringTables) -> Monster:
    """Build a Monster from a MonStats.txt row.

    Parameters
    ----------
    record : dict
        MonStats.txt row.
    multipliers : dict or None
        Entry of group_monster_levels() for the area's monster level;
        None when the level is unknown (all HP bounds become 0).
    tables : StringTables
        Used to resolve `NameStr` into a display name.
    """
    res = {key: parse_int_or_zero(record.get(column, ''))
           for key, column in RESISTANCE_COLUMNS.items()}

    multipliers = multipliers or {}
    hp_closed = _atoi(multipliers.get('hpClosedBnet'))
    hp_open = _atoi(multipliers.get('hpOpenBnet'))
    min_hp = _atoi(record.get('minHP'))
    max_hp = _atoi(record.get('maxHP'))

    return Monster(
        display_name=resolve_monster_name(record.get('NameStr', ''), tables),
        phys_res=res['physRes'],
        magic_res=res['magicRes'],
        fire_res=res['fireRes'],
        lightning_res=res['lightningRes'],
        cold_res=res['coldRes'],
        poison_res=res['poisonRes'],
        min_hp_closed_bnet=compute_hp(hp_closed, min_hp),
        max_hp_closed_bnet=compute_hp(hp_closed, max_hp),
        min_hp_open_bnet=compute_hp(hp_open, min_hp),
        max_hp_open_bnet=compute_hp(hp_open, max_hp),
    )


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------

def build_map_levels(levels: list, monsters: list, misc: list,
                     monster_levels: Dict[str, Dict[str, str]],
                     tables: StringTables) -> List[MapLevel]:
    """Cross-reference Levels/MonStats/Misc into the list of maps.

    Levels.txt rows without a qualifying map item are skipped. Every map is
    emitted, even when none of its spawn slots match a monster.
    """
    maps = get_maps_from_misc(misc)
    output = []

    for level in levels:
        map_level = maps.get(level.get('Id', ''))
        if map_level is None:
            continue
        print('Found map', level.get('Name', ''), map_level.display_name)

        slots = monster_slots(level)
        multipliers = monster_levels.get(level.get(MONSTER_LEVEL_COLUMN, ''))
        for mon in monsters:
            if not mon.get('NameStr'):
                continue
            if mon.get('Id', '') not in slots:
                continue
            map_level.monsters.append(build_monster(mon, multipliers, tables))

        output.append(map_level)

    return output
