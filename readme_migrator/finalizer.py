"""Directory-level files written once every document is converted.

Both passes are idempotent: a landing file is only created when missing, and
an order manifest is only rewritten where one already exists.
"""

import os

from .config import INDEX_FILENAME, ORDER_FILENAME, OUTPUT_EXTENSION, TOOL_FILES
from .frontmatter import build_frontmatter, render_frontmatter
from .utils import slugify


def _directories(root: str):
    """Yield ``root`` and every non-hidden directory below it."""
    for dirpath, dirnames, _ in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith('.') and d != 'node_modules')
        yield dirpath


def ensure_landing_files(root: str) -> list:
    """Create ``index.md`` in every directory lacking one; returns the created paths."""
    created = []
    for directory in _directories(root):
        index_path = os.path.join(directory, INDEX_FILENAME)
        if os.path.exists(index_path):
            continue
        title = os.path.basename(os.path.normpath(directory))
        with open(index_path, 'w', encoding='utf-8') as f:
            f.write(render_frontmatter(build_frontmatter(title)))
        created.append(index_path)
    return created


def order_entries(directory: str) -> list:
    """Sorted ``- slug`` lines for the subdirectories and documents of ``directory``."""
    entries = []
    for name in os.listdir(directory):
        path = os.path.join(directory, name)
        if name in TOOL_FILES or name.lower() == INDEX_FILENAME:
            continue
        if name.startswith(('.', '_')):
            continue
        if os.path.isdir(path):
            entries.append(slugify(name))
        elif os.path.isfile(path) and name.lower().endswith(OUTPUT_EXTENSION):
            entries.append(slugify(os.path.splitext(name)[0]))
    return sorted(f'- {entry}' for entry in entries)


def update_order_manifests(root: str) -> list:
    """Rewrite every existing ``_order.yaml`` under ``root``; returns the updated paths."""
    updated = []
    for directory in _directories(root):
        order_path = os.path.join(directory, ORDER_FILENAME)
        if not os.path.isfile(order_path):
            continue
        entries = order_entries(directory)
        with open(order_path, 'w', encoding='utf-8') as f:
            f.write('\n'.join(entries) + ('\n' if entries else ''))
        updated.append(order_path)
    return updated


def finalize_directories(*roots) -> tuple[list, list]:
    """Run both passes on each given root (``None`` roots are skipped)."""
    created, updated = [], []
    for root in roots:
        if root and os.path.isdir(root):
            created.extend(ensure_landing_files(root))
            updated.extend(update_order_manifests(root))
    return created, updated
