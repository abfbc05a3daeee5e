"""Merge every ``_log.csv`` under a directory tree into a single CSV."""

import csv
import os

from .audit import LOG_HEADER
from .config import LOG_FILENAME, MERGED_LOG_FILENAME


def find_logs(root: str, filename: str = LOG_FILENAME) -> list:
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith('.') and d != 'node_modules')
        if filename in filenames:
            found.append(os.path.join(dirpath, filename))
    return found


def _is_header(row: list) -> bool:
    return [cell.strip().lower() for cell in row[:2]] == ['type', 'file']


def merge_logs(root: str, output: str = None) -> tuple[str, int]:
    """Write all log rows under one header.

    Returns ``(output_path, merged_file_count)``. Raises FileNotFoundError
    when there is nothing to merge.
    """
    root = os.path.abspath(root)
    output = os.path.abspath(output) if output else os.path.join(root, MERGED_LOG_FILENAME)
    paths = [p for p in find_logs(root) if os.path.abspath(p) != output]
    if not paths:
        raise FileNotFoundError(f'No {LOG_FILENAME} files found under: {root}')

    os.makedirs(os.path.dirname(output), exist_ok=True)
    merged = 0
    with open(output, 'w', newline='', encoding='utf-8') as out:
        writer = csv.writer(out, lineterminator='\n')
        writer.writerow(LOG_HEADER)
        for path in paths:
            try:
                with open(path, newline='', encoding='utf-8') as f:
                    rows = [row for row in csv.reader(f) if any(cell.strip() for cell in row)]
            except OSError as e:
                print(f"  ⚠ Failed reading {path}: {e}")
                continue
            if rows and _is_header(rows[0]):
                rows = rows[1:]
            if not rows:
                continue
            writer.writerows(rows)
            merged += 1
    return output, merged
