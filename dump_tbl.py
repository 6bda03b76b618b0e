#!/usr/bin/env python3
"""
dump_tbl.py
Dump one or more .tbl string tables as a single JSON object.
Tables are merged in argument order; a key in a later file overrides an
earlier one (pass string.tbl patchstring.tbl expansionstring.tbl).
"""

import argparse
import sys

from extract_maps import save_json
from tbl_utils import TblFormatError, load_tbl, merge_tables


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Dump .tbl string tables to JSON')
    parser.add_argument('tbl', nargs='+', help='.tbl files, lowest precedence first')
    parser.add_argument('--out', default='strings.json', help='Output JSON path')
    args = parser.parse_args(argv)

    try:
        tables = []
        for path in args.tbl:
            table = load_tbl(path)
            print(f"  {path}: {len(table)} strings")
            tables.append(table)
        merged = merge_tables(*tables)
        save_json(dict(merged), args.out)
    except (OSError, TblFormatError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    print(f"Saved: {args.out} ({len(merged)} keys)")
    return 0


if __name__ == '__main__':
    sys.exit(main())
