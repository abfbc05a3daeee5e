"""Convert Docusaurus admonitions (:::note / :::tip / :::info) to ReadMe callouts.

Runs on the raw file text before anything is parsed. Blocks must open and
close at the start of a line; anything that doesn't match is left alone.
``convert_callout_files`` applies the same conversion in place to a docs tree.
"""

import re

from .utils import find_markdown_files, indent_block


# Processed in this order.
ADMONITION_KINDS = ('info', 'tip', 'note')

CALLOUT_OPEN = {
    'note': '<Callout icon="📘" theme="info">',
    'tip': '<Callout icon="👍" theme="okay">',
    'info': '<Callout icon="ℹ️" theme="info">',
}

# Label line emitted before the body (info has none)
CALLOUT_LABEL = {
    'note': '**NOTE**',
    'tip': 'Tip',
}

BACKUP_SUFFIX = '.bak'


def _admonition_pattern(kind: str) -> re.Pattern:
    return re.compile(
        rf'^:::{kind}[^\n]*\n(.*?)\n:::[ \t]*$',
        re.IGNORECASE | re.MULTILINE | re.DOTALL,
    )


_PATTERNS = {kind: _admonition_pattern(kind) for kind in ADMONITION_KINDS}


def to_callout(inner: str, kind: str) -> str:
    """Wrap an admonition body in the callout for ``kind``."""
    body = indent_block(inner.strip(), '  ')
    lines = [CALLOUT_OPEN[kind]]
    label = CALLOUT_LABEL.get(kind)
    if label:
        lines.extend([f'  {label}', ''])
    lines.extend([body, '</Callout>'])
    return '\n'.join(lines)


def replace_admonitions(text: str) -> tuple[str, int]:
    """Replace every recognised admonition block; returns (text, blocks replaced)."""
    total = 0
    for kind in ADMONITION_KINDS:
        text, count = _PATTERNS[kind].subn(lambda m, k=kind: to_callout(m.group(1), k), text)
        total += count
    return text, total


def convert_admonitions(text: str) -> str:
    return replace_admonitions(text)[0]


def convert_callout_files(root: str, dry_run: bool = False, backup: bool = False) -> list[tuple[str, int]]:
    """Convert admonitions in place in every .md file under ``root``.

    Returns (path, blocks replaced) for each file that had any. With
    ``dry_run`` nothing is written; with ``backup`` the original text is kept
    next to the file as ``<name>.bak`` before it is overwritten.
    """
    changed = []
    for path in find_markdown_files(root):
        with open(path, 'r', encoding='utf-8') as f:
            original = f.read()
        text, count = replace_admonitions(original)
        if not count:
            continue
        changed.append((path, count))
        if dry_run:
            continue
        if backup:
            with open(path + BACKUP_SUFFIX, 'w', encoding='utf-8') as f:
                f.write(original)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
    return changed
