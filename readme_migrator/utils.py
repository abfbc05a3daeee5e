"""Shared utilities for the Docusaurus to ReadMe migrator."""

import os
import re


def ensure_dir(path: str):
    """Create the parent directory of ``path`` if it doesn't exist."""
    os.makedirs(os.path.dirname(path), exist_ok=True)


def slugify(text: str) -> str:
    """Lowercase ``text`` and collapse whitespace runs into single dashes."""
    return re.sub(r'\s+', '-', text.lower())


def strip_tags(text: str) -> str:
    """Remove anything that looks like a tag."""
    return re.sub(r'<[^>]+>', '', str(text))


def indent_block(text: str, pad: str = '  ') -> str:
    """Prefix every non-empty line with ``pad``; empty lines stay empty."""
    return '\n'.join(pad + line if line else '' for line in re.split(r'\r?\n', str(text)))


def escape_attr(text: str) -> str:
    """Escape a string for use inside a double-quoted attribute."""
    return (
        str(text)
        .replace('&', '&amp;')
        .replace('"', '&quot;')
        .replace('<', '&lt;')
        .replace('>', '&gt;')
    )


def truncate(text: str, length: int) -> str:
    text = str(text)
    return text if len(text) <= length else text[:length - 1] + '…'


def find_markdown_files(root: str, include_mdx: bool = False) -> list[str]:
    """Recursively list .md (and optionally .mdx) files, in discovery order.

    Hidden directories and node_modules are skipped.
    """
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if not d.startswith('.') and d != 'node_modules'
        )
        for name in sorted(filenames):
            lower = name.lower()
            if lower.endswith('.md') or (include_mdx and lower.endswith('.mdx')):
                found.append(os.path.join(dirpath, name))
    return found
