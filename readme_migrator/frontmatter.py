"""Read Docusaurus frontmatter and build the ReadMe replacement."""

import re

import yaml


FRONTMATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)', re.DOTALL)
H1_RE = re.compile(r'^\s*#\s+(.+?)\s*$', re.MULTILINE)

DEFAULT_TITLE = 'Untitled'


def split_frontmatter(content: str) -> tuple[dict, str]:
    """Split YAML frontmatter from body content.

    Frontmatter that isn't a mapping is treated as empty. Invalid YAML raises
    ``yaml.YAMLError``, which fails the document.
    """
    match = FRONTMATTER_RE.match(content)
    if not match:
        return {}, content
    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        data = {}
    return data, content[match.end():]


def derive_title(frontmatter: dict, body: str) -> str:
    """``sidebar_label``, then ``title``, then the first H1, then 'Untitled'."""
    for key in ('sidebar_label', 'title'):
        value = frontmatter.get(key)
        if value not in (None, ''):
            return str(value).strip()
    match = H1_RE.search(body)
    if match:
        return match.group(1).strip()
    return DEFAULT_TITLE


def build_frontmatter(title: str) -> dict:
    """ReadMe frontmatter. Source fields other than the title are dropped."""
    return {
        'title': title,
        'deprecated': False,
        'hidden': False,
        'metadata': {'robots': 'index'},
    }


def render_frontmatter(data: dict) -> str:
    dumped = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False, width=float('inf'))
    return f'---\n{dumped}---\n'
