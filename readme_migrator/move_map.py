"""Filename -> destination directory overrides read from a CSV file."""

import csv
import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class MoveMap:
    destinations: dict = field(default_factory=dict)  # lowercased filename -> abs dir
    duplicates: set = field(default_factory=set)

    def __contains__(self, filename: str) -> bool:
        return filename.lower() in self.destinations

    def is_duplicate(self, filename: str) -> bool:
        return filename.lower() in self.duplicates

    def destination(self, filename: str) -> Optional[str]:
        return self.destinations.get(filename.lower())


def _column_order(header: list) -> Optional[tuple[int, int]]:
    """(file, destination) column indexes if ``header`` is a header row."""
    lowered = [cell.strip().lower() for cell in header]
    file_col = next((i for i, cell in enumerate(lowered) if 'file' in cell), None)
    dest_col = next((i for i, cell in enumerate(lowered) if 'dest' in cell), None)
    if file_col is None or dest_col is None or file_col == dest_col:
        return None
    return file_col, dest_col


def read_move_map(csv_path: str, dest_root: str) -> MoveMap:
    """Load a move map.

    Rows are ``destination,file`` unless a header names the columns.
    Destinations are used literally and resolved against ``dest_root`` when
    relative. A filename mapped to more than one destination is a duplicate.
    """
    move_map = MoveMap()
    try:
        with open(csv_path, newline='', encoding='utf-8-sig') as f:
            rows = [row for row in csv.reader(f) if any(cell.strip() for cell in row)]
    except OSError as e:
        print(f"  ⚠ Could not read move map at {csv_path}: {e}")
        return move_map
    if not rows:
        return move_map

    file_col, dest_col = 1, 0
    order = _column_order(rows[0])
    if order is not None:
        file_col, dest_col = order
        rows = rows[1:]

    for row in rows:
        if len(row) <= max(file_col, dest_col):
            continue
        dest = row[dest_col].strip()
        file = row[file_col].strip()
        if not dest or not file:
            continue

        filename = os.path.basename(file).lower()
        directory = os.path.abspath(dest if os.path.isabs(dest) else os.path.join(dest_root, dest))
        previous = move_map.destinations.get(filename)
        if previous is not None and previous != directory:
            move_map.duplicates.add(filename)
        move_map.destinations[filename] = directory
    return move_map
