"""Render a document tree back to Markdown text.

Nodes that still carry their source are written verbatim. Anything a rewrite
stage rebuilt is rendered from structure with a fixed style.
"""

from .nodes import (
    Blockquote,
    Break,
    CodeBlock,
    Component,
    Emphasis,
    Expression,
    Heading,
    Html,
    Image,
    List,
    ListItem,
    Paragraph,
    RawBlock,
    Root,
    Strong,
    Text,
    ThematicBreak,
)
from .utils import indent_block


BULLET = '-'
FENCE = '```'
THEMATIC_BREAK = '---'
HARD_BREAK = '  \n'


def serialize(tree: Root) -> str:
    """Render ``tree`` as Markdown ending with a single newline."""
    body = _join_blocks(tree.children)
    return body + '\n' if body else ''


def _join_blocks(blocks, separator: str = '\n\n') -> str:
    parts = [render_block(block).strip('\n') for block in blocks]
    return separator.join(part for part in parts if part)


def render_block(node) -> str:
    """Render one block-level node."""
    raw = getattr(node, 'raw', None)
    if raw is not None:
        return raw

    if isinstance(node, Paragraph):
        return render_inline(node.children)
    if isinstance(node, Heading):
        return f"{'#' * node.level} {render_inline(node.children).strip()}"
    if isinstance(node, List):
        return _render_list(node)
    if isinstance(node, ListItem):
        return _render_list_item(node, f'{BULLET} ', spread=False)
    if isinstance(node, Blockquote):
        content = _join_blocks(node.children)
        return '\n'.join(f'> {line}' if line else '>' for line in content.split('\n'))
    if isinstance(node, CodeBlock):
        value = node.value if node.value.endswith('\n') or not node.value else node.value + '\n'
        return f'{FENCE}{node.info}\n{value}{FENCE}'
    if isinstance(node, ThematicBreak):
        return THEMATIC_BREAK
    if isinstance(node, Component):
        return _render_component(node)
    if isinstance(node, (Html, Expression, RawBlock, Text)):
        return node.value
    # Inline nodes that ended up at block level
    return render_inline((node,))


def _render_list(node: List) -> str:
    items = []
    for offset, item in enumerate(node.children):
        marker = f'{node.start + offset}. ' if node.ordered else f'{BULLET} '
        items.append(_render_list_item(item, marker, node.spread))
    return ('\n\n' if node.spread else '\n').join(items)


def _render_list_item(item: ListItem, marker: str, spread: bool) -> str:
    # Markers come from structure; item content keeps its source
    content = _join_blocks(item.children, '\n\n' if spread else '\n')
    lines = content.split('\n')
    pad = ' ' * len(marker)
    rest = [pad + line if line else '' for line in lines[1:]]
    return '\n'.join([marker + lines[0]] + rest)


def _render_component(node: Component) -> str:
    if node.self_closing or node.inline:
        return node.opening
    if not node.children:
        return f'{node.opening}\n{node.closing}'
    content = _join_blocks(node.children)
    return '\n'.join([node.opening, indent_block(content, node.indent), node.closing])


def render_inline(nodes) -> str:
    """Render a sequence of inline nodes."""
    parts = []
    for node in nodes:
        if isinstance(node, Text):
            parts.append(node.value)
        elif isinstance(node, Image):
            if node.raw is not None:
                parts.append(node.raw)
            elif node.title:
                parts.append(f'![{node.alt}]({node.url} "{node.title}")')
            else:
                parts.append(f'![{node.alt}]({node.url})')
        elif isinstance(node, Strong):
            parts.append(f'**{render_inline(node.children)}**')
        elif isinstance(node, Emphasis):
            parts.append(f'*{render_inline(node.children)}*')
        elif isinstance(node, Break):
            parts.append(node.raw if node.raw is not None else HARD_BREAK)
        elif isinstance(node, Component):
            parts.append(node.raw if node.raw is not None else node.opening)
        elif isinstance(node, (Html, Expression)):
            parts.append(node.value)
        else:
            parts.append(render_block(node))
    return ''.join(parts)
