"""Lower a safe subset of raw HTML to Markdown.

Tables and embedded components are kept verbatim. Everything else gets a
fixed, ordered set of tag substitutions; a node where none of them applies is
left as it is.
"""

import dataclasses
import re
from typing import Callable, Optional

from .nodes import Html, Root, Text, rewrite
from .utils import strip_tags


_TABLE_TAG_RE = re.compile(r'<\s*(table|thead|tbody|tr|th|td)\b', re.IGNORECASE)
_TARGET_COMPONENT_RE = re.compile(r'<\s*(Tabs|Tab|Callout)\b')
_CAPITALIZED_TAG_RE = re.compile(r'<\s*[A-Z][A-Za-z0-9]*')

_FLAGS = re.IGNORECASE | re.DOTALL
_HEADING_RE = re.compile(r'<\s*h([1-6])\s*>\s*(.*?)\s*<\s*/\s*h\1\s*>\s*', _FLAGS)
_PARAGRAPH_RE = re.compile(r'<\s*p\s*>\s*(.*?)\s*<\s*/\s*p\s*>\s*', _FLAGS)
_BREAK_RE = re.compile(r'<\s*br\s*/?\s*>\s*', _FLAGS)
_STRONG_RE = re.compile(r'<\s*(b|strong)\s*>\s*(.*?)\s*<\s*/\s*(b|strong)\s*>\s*', _FLAGS)
_EMPHASIS_RE = re.compile(r'<\s*(i|em)\s*>\s*(.*?)\s*<\s*/\s*(i|em)\s*>\s*', _FLAGS)
_UL_RE = re.compile(r'<\s*ul\s*>\s*(.*?)\s*<\s*/\s*ul\s*>\s*', _FLAGS)
_OL_RE = re.compile(r'<\s*ol\s*>\s*(.*?)\s*<\s*/\s*ol\s*>\s*', _FLAGS)
_LI_RE = re.compile(r'<\s*li\s*>\s*(.*?)\s*<\s*/\s*li\s*>', _FLAGS)


def keep_html(raw: str) -> bool:
    """Whether raw markup must pass through untouched."""
    return bool(
        _TABLE_TAG_RE.search(raw)
        or _TARGET_COMPONENT_RE.search(raw)
        or _CAPITALIZED_TAG_RE.search(raw)
    )


def _inner(text: str) -> str:
    return strip_tags(text).strip()


def html_to_markdown(html: str) -> Optional[str]:
    """Apply the substitutions in order; None when none of them fired."""
    html = re.sub(r'\r\n?', '\n', html)
    fired = []

    def sub(pattern, render, text):
        def replace(match):
            out = render(match)
            if out is None:
                return match.group(0)
            fired.append(pattern)
            return out
        return pattern.sub(replace, text)

    def list_items(match, ordered):
        items = _LI_RE.findall(match.group(1))
        if not items:
            return None
        if ordered:
            lines = [f'{n}. {_inner(item)}' for n, item in enumerate(items, 1)]
        else:
            lines = [f'- {_inner(item)}' for item in items]
        return '\n'.join(lines) + '\n\n'

    out = sub(_HEADING_RE, lambda m: f"{'#' * int(m.group(1))} {_inner(m.group(2))}\n\n", html)
    out = sub(_PARAGRAPH_RE, lambda m: f'{_inner(m.group(1))}\n\n', out)
    out = sub(_BREAK_RE, lambda m: '  \n', out)
    out = sub(_STRONG_RE, lambda m: f'**{_inner(m.group(2))}**', out)
    out = sub(_EMPHASIS_RE, lambda m: f'*{_inner(m.group(2))}*', out)
    out = sub(_UL_RE, lambda m: list_items(m, ordered=False), out)
    out = sub(_OL_RE, lambda m: list_items(m, ordered=True), out)
    return out if fired else None


def lower_html(
    tree: Root,
    keep_if: Callable[[str], bool] = keep_html,
    record: Optional[Callable[[str], None]] = None,
) -> Root:
    """Convert raw HTML nodes to Markdown text where possible.

    Nodes matching ``keep_if`` are flagged opaque and stay verbatim. Converted
    nodes become ``Text`` and their original markup is passed to ``record``.
    """
    def replace(node):
        if not isinstance(node, Html) or node.opaque:
            return node
        if keep_if(node.value):
            return dataclasses.replace(node, opaque=True)
        converted = html_to_markdown(node.value)
        if converted is None:
            return node
        if record is not None:
            record(node.value.strip())
        return Text(converted)

    return rewrite(tree, replace)
