import struct
from pathlib import Path

import pytest


def build_tbl(entries, slots=None, hash_table_size=None, crc=0xBEEF):
    """Build .tbl bytes for a list of (key, value) pairs.

    `slots` places element i in hash-node slot slots[i]; by default the
    elements fill the first N slots in order.
    """
    n = len(entries)
    if slots is None:
        slots = list(range(n))
    if hash_table_size is None:
        hash_table_size = max(slots, default=-1) + 1

    header_size = 21
    node_start = header_size + n * 2
    string_start = node_start + hash_table_size * 17

    strings = bytearray()
    nodes = bytearray(hash_table_size * 17)
    for i, (key, value) in enumerate(entries):
        key_b = key.encode('utf-8') + b'\x00'
        value_b = value.encode('utf-8') + b'\x00'
        key_off = string_start + len(strings)
        strings += key_b
        value_off = string_start + len(strings)
        strings += value_b
        struct.pack_into('<BHIIIH', nodes, slots[i] * 17,
                         1, i, 0x1234 + i, key_off, value_off, len(value_b))

    index_end = string_start + len(strings)
    header = struct.pack('<HHIBIII', crc, n, hash_table_size, 1,
                         string_start, 4, index_end)
    index = struct.pack(f'<{n}H', *slots)
    return header + index + bytes(nodes) + bytes(strings)


def write_tsv(path: Path, header, rows):
    lines = ['\t'.join(header)]
    for row in rows:
        lines.append('\t'.join(row.get(col, '') for col in header))
    path.write_text('\n'.join(lines) + '\n', encoding='utf-8')


MONSTATS_HEADER = ['Id', 'NameStr', 'minHP', 'maxHP',
                   'ResDm(H)', 'ResMa(H)', 'ResFi(H)', 'ResLi(H)', 'ResCo(H)', 'ResPo(H)']
MONLVL_HEADER = ['Level', 'HP(H)', 'L-HP(H)']
MISC_HEADER = ['name', '*name', 'type', 'spawnable', 'len']
LEVELS_HEADER = ['Name', 'Id', 'MonLvl3'] + [f'mon{n}' for n in range(1, 16)]


@pytest.fixture
def data_dir(tmp_path):
    """A data directory holding the Blood Moor scenario."""
    (tmp_path / 'string.tbl').write_bytes(build_tbl([('42', 'Skeleton')]))
    (tmp_path / 'patchstring.tbl').write_bytes(build_tbl([]))
    (tmp_path / 'expansionstring.tbl').write_bytes(build_tbl([]))

    write_tsv(tmp_path / 'MonStats.txt', MONSTATS_HEADER, [
        {'Id': '99', 'NameStr': '42', 'minHP': '10', 'maxHP': '20', 'ResFi(H)': '50'},
    ])
    write_tsv(tmp_path / 'MonLvl.txt', MONLVL_HEADER, [
        {'Level': '3', 'HP(H)': '120', 'L-HP(H)': '100'},
    ])
    write_tsv(tmp_path / 'Misc.txt', MISC_HEADER, [
        {'name': 'Map', '*name': 'Blood Moor', 'type': 't1m', 'spawnable': '1', 'len': '5'},
    ])
    write_tsv(tmp_path / 'Levels.txt', LEVELS_HEADER, [
        {'Name': 'lvl5', 'Id': '5', 'MonLvl3': '3', 'mon1': '99'},
    ])
    return tmp_path
