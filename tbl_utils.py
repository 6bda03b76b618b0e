"""
tbl_utils.py - Parsing utilities for the Diablo II .tbl string-table format.

Binary files: string.tbl, patchstring.tbl, expansionstring.tbl

Header layout (21 bytes, little-endian):
    +0   2-byte uint16 CRC            (not validated)
    +2   2-byte uint16 num_elements   (N)
    +4   4-byte uint32 hash_table_size
    +8   1-byte        version        (meaning unknown)
    +9   4-byte uint32 index_start    (first byte of the string region)
    +13  4-byte uint32 max_tries      (hash miss tolerance)
    +17  4-byte uint32 index_end      (one past the last string byte)

Element index (follows the header):
    [N * 2-byte uint16 node slot]

Each value is a slot number into the hash-node array, NOT a byte offset.
The hash-node array starts immediately after the element index.

Hash node (17 bytes):
    +0   1-byte        used
    +1   2-byte uint16 index
    +3   4-byte uint32 hash_value
    +7   4-byte uint32 key_offset     (absolute, from start of file)
    +11  4-byte uint32 value_offset   (absolute, from start of file)
    +15  2-byte uint16 value_length   (ignored, strings are NUL-terminated)

Hashing is ignored entirely: every used element is reachable through the
element index, so a linear pass over it yields the whole table.
"""

import struct
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import BinaryIO, Iterable, List, Mapping, Optional, Union


# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

HEADER_FORMAT = '<HHIBIII'
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)  # 21

HASH_NODE_FORMAT = '<BHIIIH'
HASH_NODE_SIZE = struct.calcsize(HASH_NODE_FORMAT)  # 17

#: Upper bound for a single NUL-terminated string. Real tables stay far
#: below this; hitting it means the data is unterminated or corrupt.
MAX_STRING_LENGTH = 64 * 1024

STRING_ENCODING = 'utf-8'

#: A fully materialized, read-only key -> value table.
StringTable = Mapping[str, str]


class TblFormatError(ValueError):
    """Raised when a .tbl file is truncated or its layout is inconsistent."""


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class TblHeader:
    """Fixed header at the start of a .tbl file."""
    crc: int
    num_elements: int
    hash_table_size: int
    version: int
    index_start: int
    max_tries: int
    index_end: int


@dataclass
class HashNode:
    """One 17-byte entry of the hash-node array."""
    used: int
    index: int
    hash_value: int
    key_offset: int
    value_offset: int
    value_length: int


# ---------------------------------------------------------------------------
# Low-level readers
# ---------------------------------------------------------------------------

def _read_exact(fh: BinaryIO, size: int, what: str) -> bytes:
    pos = fh.tell()
    raw = fh.read(size)
    if len(raw) != size:
        raise TblFormatError(
            f"Short read of {what} at offset {pos}: "
            f"expected {size} bytes, got {len(raw)}")
    return raw


def read_until_null(fh: BinaryIO, limit: int = MAX_STRING_LENGTH,
                    chunk_size: int = 256) -> bytes:
    """Read bytes from the current position up to a NUL terminator.

    The terminator is consumed but not returned.

    Parameters
    ----------
    fh : BinaryIO
        Seekable binary file object positioned at the first string byte.
    limit : int
        Maximum number of bytes accepted before the terminator.
    chunk_size : int
        How many bytes to pull from the file per read call.

    Returns
    -------
    bytes
        The string bytes without the terminator.

    Raises
    ------
    TblFormatError
        If end of file is reached first, or no terminator is found within
        `limit` bytes.
    """
    start = fh.tell()
    buf = bytearray()
    while True:
        chunk = fh.read(chunk_size)
        if not chunk:
            raise TblFormatError(f"Unterminated string at offset {start}")
        nul = chunk.find(b'\x00')
        if nul != -1:
            buf += chunk[:nul]
            if len(buf) > limit:
                break
            fh.seek(start + len(buf) + 1)
            return bytes(buf)
        buf += chunk
        if len(buf) > limit:
            break
    raise TblFormatError(
        f"String at offset {start} exceeds {limit} bytes without a terminator")


def read_tbl_header(fh: BinaryIO) -> TblHeader:
    """Read the fixed 21-byte header from the current position."""
    raw = _read_exact(fh, HEADER_SIZE, 'header')
    return TblHeader(*struct.unpack(HEADER_FORMAT, raw))


def read_element_index(fh: BinaryIO, num_elements: int) -> List[int]:
    """Read `num_elements` uint16 node slots from the current position."""
    raw = _read_exact(fh, num_elements * 2, 'element index')
    return list(struct.unpack(f'<{num_elements}H', raw))


def read_hash_node(fh: BinaryIO, node_start: int, slot: int) -> HashNode:
    """Read the hash node stored in `slot` of the node array.

    Parameters
    ----------
    fh : BinaryIO
        Seekable binary file object.
    node_start : int
        Absolute offset of the first hash node.
    slot : int
        Slot number taken from the element index.
    """
    fh.seek(node_start + slot * HASH_NODE_SIZE)
    raw = _read_exact(fh, HASH_NODE_SIZE, f'hash node {slot}')
    return HashNode(*struct.unpack(HASH_NODE_FORMAT, raw))


def _read_string_at(fh: BinaryIO, offset: int, size: int) -> str:
    if offset >= size:
        raise TblFormatError(
            f"String offset {offset} is past end of file ({size} bytes)")
    fh.seek(offset)
    return read_until_null(fh).decode(STRING_ENCODING, errors='replace')


# ---------------------------------------------------------------------------
# Table parser
# ---------------------------------------------------------------------------

def parse_tbl(fh: BinaryIO) -> StringTable:
    """Parse a complete .tbl string table from a seekable binary file.

    For each element i the hash node at
    ``node_start + element_index[i] * 17`` is read, then the key and value
    strings at their absolute offsets. Duplicate keys inside one file keep
    the last value seen.

    Parameters
    ----------
    fh : BinaryIO
        Seekable binary file object positioned at the start of the table.

    Returns
    -------
    StringTable
        Read-only mapping key -> value.

    Raises
    ------
    TblFormatError
        On any short read, out-of-range offset or unterminated string.
    """
    fh.seek(0, 2)
    size = fh.tell()
    fh.seek(0)

    header = read_tbl_header(fh)
    elements = read_element_index(fh, header.num_elements)
    node_start = fh.tell()

    table: dict = {}
    for slot in elements:
        node = read_hash_node(fh, node_start, slot)
        key = _read_string_at(fh, node.key_offset, size)
        value = _read_string_at(fh, node.value_offset, size)
        table[key] = value

    return MappingProxyType(table)


def load_tbl(path: Union[str, Path]) -> StringTable:
    """Open, parse and close a .tbl file.

    Parameters
    ----------
    path : str or Path
        Path to the .tbl file.

    Returns
    -------
    StringTable
        Read-only mapping key -> value.
    """
    with open(path, 'rb') as fh:
        return parse_tbl(fh)


# ---------------------------------------------------------------------------
# Lookups across several tables
# ---------------------------------------------------------------------------

def resolve_string(key: str, tables: Iterable[StringTable]) -> Optional[str]:
    """Return the first non-blank value for `key` in `tables`.

    `tables` must be ordered highest precedence first
    (expansion, patch, base). Returns None if no table has a usable value.
    """
    for table in tables:
        value = table.get(key)
        if value is not None and value.strip():
            return value
    return None


def merge_tables(*tables: StringTable) -> StringTable:
    """Flatten tables given lowest precedence first; later tables win."""
    merged: dict = {}
    for table in tables:
        merged.update(table)
    return MappingProxyType(merged)
