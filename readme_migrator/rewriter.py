"""Tree rewrite stages applied to every parsed document.

Each stage takes a tree and returns a new one (or only collects from it).
Collected values are appended to caller-owned lists so a document's image
references, removed components and removed scripts can be logged later.
"""

import dataclasses
import re

from .nodes import Component, Expression, Html, Image, Paragraph, Root, Strong, Text, rewrite, walk
from .parser import parse_attributes, scan_expression, scan_tag
from .utils import truncate


IMAGE_ZOOM = 'ImageZoom'
PLACEHOLDER_PREFIX = 'IMAGE_PLACEHOLDER:'
MISSING_IMAGE_LABEL = 'MISSING IMAGE!'
SCRIPT_REMOVED_MARKER = '{/* ❗ Script removed: replace with an MDX component. */}'

USE_BASE_URL_RE = re.compile(r'useBaseUrl\(\s*([\'"])(.*?)\1\s*\)')

SCRIPT_RE = re.compile(r'<\s*script\b([^>]*)>(.*?)<\s*/\s*script\s*>', re.IGNORECASE | re.DOTALL)
SCRIPT_SRC_RE = re.compile(r'\bsrc\s*=\s*([\'"])(.*?)\1', re.IGNORECASE)
HANDLER_ATTR_RE = re.compile(r'\s+on[A-Z][A-Za-z]+\s*=\s*')
HANDLER_NAME_RE = re.compile(r'on[A-Z][A-Za-z]+$')
TAG_START_RE = re.compile(r'<[A-Za-z]')


# ---- 1. ImageZoom placeholders ----

def image_zoom_source(node: Component) -> str:
    """Image path of an ``<ImageZoom>``: ``src="..."`` or ``src={useBaseUrl('...')}``."""
    found = ''
    for attr in node.attributes:
        if attr.name != 'src' or attr.value is None:
            continue
        if not attr.expression:
            found = attr.value.strip()
        else:
            match = USE_BASE_URL_RE.search(attr.value)
            if match and match.group(2):
                found = match.group(2).strip()
    return found


def placeholder_marker(path: str) -> str:
    return f'<!--{PLACEHOLDER_PREFIX}{path}-->'


def replace_image_zoom(tree: Root, images: list, placeholder: bool = True) -> Root:
    """Swap every ``<ImageZoom>`` for a placeholder marker and record its path.

    With ``placeholder=False`` a ``**MISSING IMAGE!** path`` paragraph is
    used instead.
    """
    def replace(node):
        if not isinstance(node, Component) or node.name != IMAGE_ZOOM:
            return node
        path = image_zoom_source(node)
        if path:
            images.append(path)
        if placeholder:
            return Html(value=placeholder_marker(path), inline=node.inline)
        if node.inline:
            return Text(f'**{MISSING_IMAGE_LABEL}** {path}')
        return Paragraph(children=(Strong((Text(MISSING_IMAGE_LABEL),)), Text(f' {path}')))

    return rewrite(tree, replace)


# ---- 2. Markdown images ----

def collect_markdown_images(tree: Root, images: list):
    for node in walk(tree):
        if isinstance(node, Image) and node.url.strip():
            images.append(node.url.strip())


# ---- 3. Embedded components ----

def describe_component(node: Component) -> str:
    """Approximate opening tag, e.g. ``<Tabs groupId="os" values={[...]} …/>``."""
    attrs = ' '.join(attr.render() for attr in node.attributes if attr.name)
    more = ' …' if node.children else ''
    return f"<{node.name}{' ' + attrs if attrs else ''}{more}/>"


def collect_components(tree: Root, removed: list):
    for node in walk(tree):
        if isinstance(node, Component) and node.name[:1].isupper():
            removed.append(describe_component(node))


# ---- 4. Comments and declarations ----

def normalize_comments(tree: Root) -> Root:
    """Turn ``<!-- x -->`` into ``{/*x*/}`` and escape ``<!DOCTYPE``-style declarations."""
    def replace(node):
        if not isinstance(node, Html):
            return node
        value = node.value
        if re.match(r'\s*<!--', value) and re.search(r'-->\s*$', value):
            inner = re.sub(r'\s*-->\s*$', '', re.sub(r'^\s*<!--\s*', '', value))
            return Expression(value=f'{{/*{inner}*/}}', inline=node.inline)
        if re.match(r'\s*<![^-]', value):
            return dataclasses.replace(node, value=re.sub(r'^<', '&lt;', value))
        return node

    return rewrite(tree, replace)


# ---- 5. Scripts and inline event handlers ----

def strip_scripts(html: str, removed: list, warnings: list, inline: bool = False) -> str:
    """Replace each ``<script>`` with the removal marker, on its own line unless ``inline``."""
    def remove(match):
        attrs, code = match.group(1), match.group(2)
        src = SCRIPT_SRC_RE.search(attrs or '')
        if src and src.group(2):
            removed.append(f'SCRIPT SRC: {src.group(2)}')
            warnings.append({'type': 'script', 'message': f'Removed <script src="{src.group(2)}">'})
        elif code and code.strip():
            removed.append(f'SCRIPT INLINE CODE:\n{code.strip()}')
            warnings.append({'type': 'script', 'message': 'Removed inline <script>'})
        else:
            warnings.append({'type': 'script', 'message': 'Removed <script>'})
        return SCRIPT_REMOVED_MARKER if inline else f'\n{SCRIPT_REMOVED_MARKER}\n'

    return SCRIPT_RE.sub(remove, html)


def _handler_value_end(opening: str, start: int) -> int:
    """Index just past a handler value (quoted or ``{...}``) starting at ``start``, or -1."""
    quote = opening[start:start + 1]
    if quote in ('"', "'"):
        close = opening.find(quote, start + 1)
        return close + 1 if close != -1 else -1
    if quote == '{':
        return scan_expression(opening, start)
    return -1


def strip_tag_handlers(opening: str, removed: list, warnings: list) -> str:
    """Drop every ``onXxx=`` attribute from one opening tag.

    Quoted values and ``{...}`` expressions are skipped whole, so braces and
    ``>`` inside a handler body stay with the handler being removed.
    """
    i = 1
    while i < len(opening):
        ch = opening[i]
        if ch in '"\'':
            close = opening.find(ch, i + 1)
            if close == -1:
                break
            i = close + 1
            continue
        if ch == '{':
            end = scan_expression(opening, i)
            if end == -1:
                break
            i = end
            continue
        match = HANDLER_ATTR_RE.match(opening, i)
        if match:
            end = _handler_value_end(opening, match.end())
            if end != -1:
                removed.append(f'INLINE HANDLER removed in: {truncate(opening[:i], 80)}')
                warnings.append({'type': 'inline-handler', 'message': 'Removed inline event handler'})
                opening = opening[:i] + opening[end:]
                continue
        i += 1
    return opening


def strip_handlers(html: str, removed: list, warnings: list) -> str:
    """Drop every ``onXxx=`` attribute from each opening tag in an HTML fragment."""
    i = 0
    while True:
        tag = TAG_START_RE.search(html, i)
        if tag is None:
            return html
        found = scan_tag(html, tag.start())
        if found is None:
            i = tag.end()
            continue
        end = found[0]
        opening = strip_tag_handlers(html[tag.start():end], removed, warnings)
        html = html[:tag.start()] + opening + html[end:]
        i = tag.start() + len(opening)


def strip_scripts_and_handlers(tree: Root, removed: list, warnings: list) -> Root:
    def replace(node):
        if isinstance(node, Html):
            value = strip_scripts(node.value, removed, warnings, node.inline)
            value = strip_handlers(value, removed, warnings)
            return node if value == node.value else dataclasses.replace(node, value=value)
        if isinstance(node, Component):
            if not any(HANDLER_NAME_RE.match(attr.name) for attr in node.attributes):
                return node
            opening = strip_tag_handlers(node.opening, removed, warnings)
            if opening == node.opening:
                return node
            return dataclasses.replace(
                node, opening=opening, attributes=parse_attributes(opening), raw=None
            )
        return node

    return rewrite(tree, replace)
