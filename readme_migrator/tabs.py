"""Convert Docusaurus ``<Tabs>/<TabItem>`` blocks to ReadMe ``<Tabs>/<Tab title>``.

Works on serialized text. The ``values={[...]}`` attribute of ``<Tabs>`` is
an object literal that may contain nested braces and markup (including
``>``), so it is scanned by counting braces rather than matched by a regex.
"""

import re

from bs4 import BeautifulSoup

from .utils import escape_attr, indent_block


TABS_BLOCK_RE = re.compile(r'<Tabs\b.*?</Tabs>', re.DOTALL)
TAB_ITEM_RE = re.compile(r'<TabItem\b([^>]*)>(.*?)</TabItem>', re.DOTALL)

DEFAULT_TITLE = 'Tab'
TAB_INDENT = '   '

_FIELD_PATTERNS = {
    name: (
        re.compile(rf'[\s,{{]{name}\s*:\s*([\'"])(.*?)\1', re.DOTALL),
        re.compile(rf'[\s,{{]{name}\s*:\s*\{{(.*?)\}}', re.DOTALL),
    )
    for name in ('value', 'label')
}
_BARE_VALUE_RE = re.compile(r'[\s,{]value\s*:\s*([^\s,}]+)')
_BARE_LABEL_RE = re.compile(r'[\s,{]label\s*:\s*(.*?)(?:,|})', re.DOTALL)


def balanced_braces(text: str, start: int) -> tuple[str, int]:
    """Scan from the ``{`` at ``start`` to its matching ``}``.

    Returns the text strictly between the two braces and the index of the
    closing brace. An unbalanced scan runs to the end of ``text``.
    """
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                break
        i += 1
    return text[start + 1:i], i


def extract_values_array(block: str) -> tuple[str, int]:
    """Return ``(array_source, open_end)`` for a ``<Tabs ...>`` block.

    ``open_end`` is the index of the ``>`` that really ends the opening tag,
    i.e. the first one after the ``values`` expression.
    """
    open_end = block.find('>')
    start = block.find('<Tabs')
    if start == -1:
        return '', open_end
    values_at = block.find('values', start)
    if values_at == -1:
        return '', open_end
    brace = block.find('{', values_at)
    if brace == -1:
        return '', open_end

    inside, brace_end = balanced_braces(block, brace)
    open_end = block.find('>', brace_end)
    left, right = inside.find('['), inside.rfind(']')
    if left != -1 and right > left:
        return inside[left + 1:right], open_end
    return inside, open_end


def extract_top_level_objects(source: str) -> list[str]:
    """Split an array literal's source into its top-level ``{...}`` objects."""
    objects = []
    depth = 0
    start = -1
    for i, ch in enumerate(source):
        if ch == '{':
            if depth == 0:
                start = i
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0 and start >= 0:
                objects.append(source[start:i + 1])
                start = -1
    if not objects:
        objects = re.findall(r'\{.*?\}', source, re.DOTALL)
    return objects


def strip_markup(text: str) -> str:
    return BeautifulSoup(str(text or ''), 'html.parser').get_text()


def clean_label(raw: str, fallback: str = '') -> str:
    """Markup-stripped label, or ``fallback`` when nothing is left."""
    return strip_markup(raw).strip() or fallback


def strip_wrapping(text: str) -> str:
    """Remove one layer of surrounding quotes or braces."""
    text = (text or '').strip()
    if len(text) >= 2 and (text[0], text[-1]) in (('"', '"'), ("'", "'"), ('`', '`'), ('{', '}')):
        return text[1:-1].strip()
    return text


def _object_field(source: str, name: str) -> str:
    quoted, braced = _FIELD_PATTERNS[name]
    match = quoted.search(source)
    if match:
        return match.group(2)
    match = braced.search(source)
    if match:
        return match.group(1)
    bare = _BARE_VALUE_RE if name == 'value' else _BARE_LABEL_RE
    match = bare.search(source)
    return match.group(1) if match else ''


def build_label_map(array_source: str) -> dict:
    """Map each tab ``value`` to its cleaned ``label``."""
    labels = {}
    for obj in extract_top_level_objects(array_source):
        value = _object_field(obj, 'value')
        if not value:
            continue
        labels[value] = clean_label(strip_wrapping(_object_field(obj, 'label')), value)
    return labels


def get_attr(attrs: str, name: str) -> str:
    """Read ``name="v"``, ``name='v'`` or ``name={v}`` from an attribute string."""
    if not attrs:
        return ''
    for pattern in (
        rf'(?<![\w-]){name}\s*=\s*"([^"]*)"',
        rf"(?<![\w-]){name}\s*=\s*'([^']*)'",
        rf'(?<![\w-]){name}\s*=\s*\{{(.*?)\}}',
    ):
        match = re.search(pattern, attrs, re.DOTALL)
        if match:
            return match.group(1).strip()
    return ''


def _render_tab(title: str, body: str) -> str:
    return '\n'.join([
        f'  <Tab title="{escape_attr(title)}">',
        indent_block(body.strip(), TAB_INDENT),
        '  </Tab>',
    ])


def convert_tabs_block(block: str) -> str:
    array_source, open_end = extract_values_array(block)
    labels = build_label_map(array_source)

    inner_start = open_end + 1 if open_end > -1 else block.find('>') + 1
    inner_end = block.rfind('</Tabs>')
    inner = block[inner_start:inner_end] if inner_end > inner_start else ''

    tabs = []
    for attrs, body in TAB_ITEM_RE.findall(inner):
        value = get_attr(attrs, 'value')
        preferred = get_attr(attrs, 'label') or labels.get(value, '')
        title = clean_label(preferred, value or DEFAULT_TITLE)
        tabs.append(_render_tab(title, body))

    if not tabs:
        return block
    return '\n'.join(['<Tabs>', '\n\n'.join(tabs), '</Tabs>'])


def convert_tabs(markdown: str) -> str:
    """Rewrite every ``<Tabs>`` block that has ``<TabItem>`` children."""
    return TABS_BLOCK_RE.sub(lambda m: convert_tabs_block(m.group(0)), markdown)
