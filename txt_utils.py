"""
txt_utils.py - Reader for the tab-separated data tables (MonStats.txt etc.).

Layout:
    first line      : column names
    following lines : one record per line, same number of columns

Names and values are whitespace-trimmed. Quote characters carry no meaning
in these files and are kept literally.
"""

import csv
import re
from pathlib import Path
from typing import Dict, List, Union

_INT_RE = re.compile(r'[+-]?[0-9]+')


class DataFileError(ValueError):
    """Raised when a data table is empty or has a malformed row."""


def read_data_file(path: Union[str, Path]) -> List[Dict[str, str]]:
    """Read a tab-separated table into a list of {column: value} dicts.

    Parameters
    ----------
    path : str or Path
        Path to the .txt table.

    Returns
    -------
    list[dict[str, str]]
        One dict per data row, in file order. Blank lines are skipped.

    Raises
    ------
    DataFileError
        If the file has no header, a row's column count differs from it,
        or the csv reader rejects a line (e.g. an oversized field).
    """
    with open(path, 'r', encoding='utf-8', errors='replace', newline='') as fh:
        reader = csv.reader(fh, delimiter='\t', quoting=csv.QUOTE_NONE)
        try:
            header = [name.strip() for name in next(reader)]
        except StopIteration:
            raise DataFileError(f"{path}: missing header row") from None
        except csv.Error as exc:
            raise DataFileError(f"{path}:{reader.line_num}: {exc}") from exc

        records = []
        try:
            for row in reader:
                if not row:
                    continue
                if len(row) != len(header):
                    raise DataFileError(
                        f"{path}:{reader.line_num}: expected {len(header)} "
                        f"fields, got {len(row)}")
                records.append({name: value.strip()
                                for name, value in zip(header, row)})
        except csv.Error as exc:
            raise DataFileError(f"{path}:{reader.line_num}: {exc}") from exc
    return records


def parse_int_or_zero(value: str) -> int:
    """Parse a strict decimal integer; anything else becomes 0."""
    if value is None or not _INT_RE.fullmatch(value):
        return 0
    return int(value)
