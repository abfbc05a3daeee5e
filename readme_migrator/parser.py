"""Parse a Markdown/MDX document body into the structural document model.

Block structure comes from markdown-it-py, extended with two block rules so
that embedded components (``<Tabs ...>...</Tabs>``) and expressions
(``{/* ... */}``) parse as single blocks instead of raw HTML or paragraphs.
Container content (list items, blockquotes, component children) is dedented
and parsed again, so every node keeps its own verbatim source.

Inline content is segmented by a small scanner: images, raw HTML tags,
inline components and hard breaks become nodes, and everything else stays
verbatim inside ``Text`` nodes.
"""

import os
import re
import textwrap
from typing import NamedTuple, Optional

from markdown_it import MarkdownIt
from markdown_it.rules_block import StateBlock
from mdit_py_plugins.front_matter import front_matter_plugin

from .nodes import (
    Attribute,
    Blockquote,
    Break,
    CodeBlock,
    Component,
    Expression,
    Heading,
    Html,
    Image,
    List,
    ListItem,
    Paragraph,
    RawBlock,
    Root,
    Text,
    ThematicBreak,
)


class DocumentParseError(ValueError):
    """Embedded syntax the parser cannot recover from."""


_COMPONENT_NAME_RE = re.compile(r'[A-Z][\w.]*')
_ATTR_NAME_RE = re.compile(r'[A-Za-z_:$][\w:.\-]*')


def _line_of(src: str, pos: int) -> int:
    return src.count('\n', 0, pos) + 1


# ---- Embedded syntax scanning ----

def scan_expression(src: str, start: int) -> int:
    """Return the index just past the brace matching ``src[start]``, or -1."""
    depth = 0
    for i in range(start, len(src)):
        ch = src[i]
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return i + 1
    return -1


def scan_tag(src: str, start: int) -> Optional[tuple[int, bool]]:
    """Find the end of the opening tag starting at ``src[start] == '<'``.

    Quoted attribute values and ``{...}`` expressions are skipped, so a ``>``
    inside them doesn't end the tag. Returns ``(end, self_closing)`` or None
    when the tag never terminates.
    """
    i = start + 1
    while i < len(src):
        ch = src[i]
        if ch in '"\'':
            close = src.find(ch, i + 1)
            if close == -1:
                return None
            i = close + 1
            continue
        if ch == '{':
            end = scan_expression(src, i)
            if end == -1:
                return None
            i = end
            continue
        if ch == '<':
            return None
        if ch == '>':
            return i + 1, src[start:i].rstrip().endswith('/')
        i += 1
    return None


def parse_attributes(opening: str) -> tuple:
    """Parse the attributes of an opening tag such as ``<Tab value="a" label={x}>``."""
    attributes = []
    match = _COMPONENT_NAME_RE.match(opening, 1) or _ATTR_NAME_RE.match(opening, 1)
    i = match.end() if match else 1
    while i < len(opening):
        ch = opening[i]
        if ch.isspace():
            i += 1
            continue
        if ch in '/>':
            break
        if ch == '{':
            end = scan_expression(opening, i)
            if end == -1:
                break
            attributes.append(Attribute('', opening[i + 1:end - 1], expression=True))
            i = end
            continue

        name_match = _ATTR_NAME_RE.match(opening, i)
        if not name_match:
            i += 1
            continue
        name = name_match.group(0)
        i = name_match.end()
        while i < len(opening) and opening[i].isspace():
            i += 1
        if i >= len(opening) or opening[i] != '=':
            attributes.append(Attribute(name))
            continue

        i += 1
        while i < len(opening) and opening[i].isspace():
            i += 1
        if i >= len(opening):
            attributes.append(Attribute(name, ''))
            break
        ch = opening[i]
        if ch in '"\'':
            close = opening.find(ch, i + 1)
            close = len(opening) if close == -1 else close
            attributes.append(Attribute(name, opening[i + 1:close]))
            i = close + 1
        elif ch == '{':
            end = scan_expression(opening, i)
            end = len(opening) if end == -1 else end
            attributes.append(Attribute(name, opening[i + 1:end - 1], expression=True))
            i = end
        else:
            bare = re.match(r'[^\s/>]+', opening[i:])
            value = bare.group(0) if bare else ''
            attributes.append(Attribute(name, value))
            i += len(value) or 1
    return tuple(attributes)


class _Element(NamedTuple):
    name: str
    opening: str
    body: str
    closing: str
    end: int
    self_closing: bool


def scan_element(src: str, start: int) -> _Element:
    """Scan a whole component starting at ``src[start] == '<'``.

    Raises DocumentParseError if the opening tag never ends or the matching
    closing tag is missing.
    """
    name = _COMPONENT_NAME_RE.match(src, start + 1).group(0)
    tag = scan_tag(src, start)
    if tag is None:
        raise DocumentParseError(
            f'Unexpected end of file in opening tag <{name}> (line {_line_of(src, start)})'
        )
    open_end, self_closing = tag
    opening = src[start:open_end]
    if self_closing:
        return _Element(name, opening, '', '', open_end, True)

    pattern = re.compile(rf'<(/?){re.escape(name)}(?=[\s/>])')
    depth = 1
    i = open_end
    while True:
        match = pattern.search(src, i)
        if match is None:
            raise DocumentParseError(
                f'Expected a closing tag for <{name}> (line {_line_of(src, start)})'
            )
        if match.group(1):
            close = re.compile(r'\s*>').match(src, match.end())
            if close is None:
                i = match.end()
                continue
            depth -= 1
            if depth == 0:
                return _Element(
                    name,
                    opening,
                    src[open_end:match.start()],
                    src[match.start():close.end()],
                    close.end(),
                    False,
                )
            i = close.end()
        else:
            nested = scan_tag(src, match.start())
            if nested is None:
                raise DocumentParseError(
                    f'Unexpected end of file in opening tag <{name}> '
                    f'(line {_line_of(src, match.start())})'
                )
            if not nested[1]:
                depth += 1
            i = nested[0]


# ---- markdown-it block rules ----

def _rest_of_line_blank(src: str, pos: int) -> bool:
    newline = src.find('\n', pos)
    return not src[pos:newline if newline != -1 else len(src)].strip()


def _last_line(state: StateBlock, start_line: int, end_line: int, end: int) -> int:
    line = start_line
    while line + 1 < end_line and state.bMarks[line + 1] < end:
        line += 1
    return line


def _component_flow_rule(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False
    src = state.src
    pos = state.bMarks[startLine] + state.tShift[startLine]
    if not src.startswith('<', pos) or not _COMPONENT_NAME_RE.match(src, pos + 1):
        return False

    try:
        element = scan_element(src, pos)
    except DocumentParseError:
        if silent:
            return False
        raise
    if not _rest_of_line_blank(src, element.end):
        return False
    line = _last_line(state, startLine, endLine, element.end)
    if state.eMarks[line] < element.end:
        return False  # runs past the enclosing container
    if silent:
        return True

    token = state.push('mdx_component', '', 0)
    token.map = [startLine, line + 1]
    token.meta = element._asdict()
    state.line = line + 1
    return True


def _expression_flow_rule(state: StateBlock, startLine: int, endLine: int, silent: bool) -> bool:
    if state.sCount[startLine] - state.blkIndent >= 4:
        return False
    src = state.src
    pos = state.bMarks[startLine] + state.tShift[startLine]
    if not src.startswith('{', pos):
        return False

    end = scan_expression(src, pos)
    if end == -1:
        if silent:
            return False
        raise DocumentParseError(
            f'Could not find the end of the expression (line {_line_of(src, pos)})'
        )
    if not _rest_of_line_blank(src, end):
        return False
    line = _last_line(state, startLine, endLine, end)
    if state.eMarks[line] < end:
        return False
    if silent:
        return True

    token = state.push('mdx_expression', '', 0)
    token.map = [startLine, line + 1]
    state.line = line + 1
    return True


def _create_markdown() -> MarkdownIt:
    md = MarkdownIt('commonmark').enable('table')
    front_matter_plugin(md)
    terminates = {'alt': ['paragraph', 'reference', 'blockquote']}
    md.block.ruler.before('html_block', 'mdx_component', _component_flow_rule, terminates)
    md.block.ruler.before('html_block', 'mdx_expression', _expression_flow_rule, terminates)
    return md


_MARKDOWN = _create_markdown()


# ---- Block structure ----

_LIST_MARKER_RE = re.compile(r'^([ \t]*)([-+*]|\d{1,9}[.)])([ \t]*)')
_BLOCKQUOTE_PREFIX_RE = re.compile(r'^ {0,3}> ?')


def _slice(lines: list, start: int, end: int) -> str:
    return '\n'.join(lines[start:end]).strip('\n').rstrip()


def _list_item_content(source: str) -> str:
    """Strip the list marker and the continuation indent from an item."""
    lines = source.split('\n')
    match = _LIST_MARKER_RE.match(lines[0])
    if not match:
        return source
    lead, marker, spaces = match.groups()
    rest = lines[0][match.end():]
    if len(spaces) > 4 or not rest.strip():
        width = len(lead) + len(marker) + 1
        first = lines[0][width:]
    else:
        width = match.end()
        first = rest
    strip_indent = re.compile(rf'^ {{0,{width}}}')
    return '\n'.join([first] + [strip_indent.sub('', line) for line in lines[1:]])


def _blockquote_content(source: str) -> str:
    return '\n'.join(_BLOCKQUOTE_PREFIX_RE.sub('', line) for line in source.split('\n'))


def _closing_index(tokens: list, index: int) -> int:
    """Index of the token closing the container opened at ``tokens[index]``."""
    level = tokens[index].level
    for j in range(index + 1, len(tokens)):
        if tokens[j].nesting == -1 and tokens[j].level == level:
            return j
    return len(tokens) - 1


def _build_list(tokens: list, index: int, lines: list, source: str) -> List:
    opener = tokens[index]
    close = _closing_index(tokens, index)
    items = []
    tight = False
    for j in range(index + 1, close):
        token = tokens[j]
        if token.type == 'list_item_open' and token.level == opener.level + 1:
            item_source = _slice(lines, *token.map)
            children = _parse_blocks(_list_item_content(item_source))
            items.append(ListItem(children=children, raw=item_source))
        elif token.type == 'paragraph_open' and token.level == opener.level + 2 and token.hidden:
            tight = True

    return List(
        ordered=opener.type == 'ordered_list_open',
        start=int(opener.attrs.get('start', 1)) if opener.attrs else 1,
        spread=not tight,
        children=tuple(items),
        raw=source,
    )


def _build_component(meta: dict, source: str) -> Component:
    body = meta['body']
    children = ()
    indent = ''
    if body.strip():
        margins = [re.match(r'[ \t]*', line).group(0) for line in body.split('\n') if line.strip()]
        indent = os.path.commonprefix(margins)
        children = _parse_blocks(textwrap.dedent(body).strip('\n'))
    return Component(
        name=meta['name'],
        attributes=parse_attributes(meta['opening']),
        children=children,
        opening=meta['opening'],
        closing=meta['closing'],
        indent=indent,
        self_closing=meta['self_closing'],
        raw=source,
    )


def _build_block(tokens: list, index: int, lines: list):
    token = tokens[index]
    source = _slice(lines, *token.map)

    if token.type == 'paragraph_open':
        return Paragraph(children=parse_inline(source), raw=source)
    if token.type == 'heading_open':
        content = tokens[index + 1].content
        return Heading(level=int(token.tag[1]), children=parse_inline(content), raw=source)
    if token.type in ('bullet_list_open', 'ordered_list_open'):
        return _build_list(tokens, index, lines, source)
    if token.type == 'blockquote_open':
        return Blockquote(children=_parse_blocks(_blockquote_content(source)), raw=source)
    if token.type == 'fence':
        return CodeBlock(info=token.info.strip(), value=token.content, raw=source)
    if token.type == 'code_block':
        # Indented code is always re-emitted fenced
        return CodeBlock(info='', value=token.content)
    if token.type == 'hr':
        return ThematicBreak(raw=source)
    if token.type == 'html_block':
        return Html(value=source)
    if token.type == 'mdx_component':
        return _build_component(token.meta, source)
    if token.type == 'mdx_expression':
        return Expression(value=source)
    return RawBlock(value=source)


def _parse_blocks(text: str) -> tuple:
    lines = text.split('\n')
    tokens = _MARKDOWN.parse(text)
    blocks = []
    covered = 0
    for index, token in enumerate(tokens):
        if token.level != 0 or token.nesting == -1 or token.map is None:
            continue
        start, end = token.map
        if start > covered:
            # Lines no token claims, e.g. link reference definitions
            gap = _slice(lines, covered, start)
            if gap:
                blocks.append(RawBlock(value=gap))
        blocks.append(_build_block(tokens, index, lines))
        covered = max(covered, end)

    tail = _slice(lines, covered, len(lines))
    if tail:
        blocks.append(RawBlock(value=tail))
    return tuple(blocks)


def parse(text: str) -> Root:
    """Parse a document body (frontmatter already removed) into a tree."""
    return Root(children=_parse_blocks(re.sub(r'\r\n?', '\n', text)))


# ---- Inline content ----

_INLINE_RE = re.compile(
    r'''
      (?P<code>`+)
    | (?P<escape>\\[^\n])
    | (?P<image>!\[(?P<alt>[^\]]*)\]\(\s*<?(?P<url>[^\s)>]*)>?
        (?:\s+(?P<quote>["'])(?P<title>.*?)(?P=quote))?\s*\))
    | (?P<hardbreak>(?:[ ]{2,}|\\)\n)
    | (?P<comment><!--.*?-->)
    | (?P<close></[A-Za-z][\w.:\-]*\s*>)
    | (?P<open><[A-Za-z])
    ''',
    re.VERBOSE | re.DOTALL,
)

_INLINE_KINDS = ('code', 'escape', 'image', 'hardbreak', 'comment', 'close', 'open')

_HTML_OPEN_TAG_RE = re.compile(r'<[a-z][\w\-]*(?:\s+[^<>]*?)?\s*/?>', re.IGNORECASE)
_SCRIPT_OPEN_RE = re.compile(r'<script\b')
_SCRIPT_CLOSE_RE = re.compile(r'<\s*/\s*script\s*>', re.IGNORECASE)


def parse_inline(text: str) -> tuple:
    """Split inline Markdown into Text/Image/Html/Component/Break nodes."""
    nodes = []
    buffer = []

    def flush():
        if buffer:
            nodes.append(Text(''.join(buffer)))
            buffer.clear()

    i = 0
    while i < len(text):
        match = _INLINE_RE.search(text, i)
        if match is None:
            buffer.append(text[i:])
            break
        buffer.append(text[i:match.start()])
        kind = next(name for name in _INLINE_KINDS if match.group(name) is not None)

        if kind == 'code':
            ticks = match.group('code')
            closer = re.compile(rf'(?<!`){ticks}(?!`)').search(text, match.end())
            end = closer.end() if closer else match.end()
            buffer.append(text[match.start():end])
            i = end
        elif kind == 'escape':
            buffer.append(match.group(0))
            i = match.end()
        elif kind == 'image':
            flush()
            nodes.append(Image(
                url=match.group('url'),
                alt=match.group('alt'),
                title=match.group('title') or '',
                raw=match.group(0),
            ))
            i = match.end()
        elif kind == 'hardbreak':
            flush()
            nodes.append(Break(raw=match.group(0)))
            i = match.end()
        elif kind in ('comment', 'close'):
            flush()
            nodes.append(Html(value=match.group(0), inline=True))
            i = match.end()
        else:
            i = _inline_tag(text, match.start(), nodes, buffer, flush)
    flush()
    return tuple(nodes)


def _inline_tag(text: str, start: int, nodes: list, buffer: list, flush) -> int:
    """Handle a ``<`` followed by a letter; return the index to resume at."""
    if _SCRIPT_OPEN_RE.match(text, start):
        # Script bodies are not Markdown: the element is one node
        close = _SCRIPT_CLOSE_RE.search(text, start)
        if close is not None:
            flush()
            nodes.append(Html(value=text[start:close.end()], inline=True))
            return close.end()
    if _COMPONENT_NAME_RE.match(text, start + 1):
        tag = scan_tag(text, start)
        if tag is not None:
            end, self_closing = tag
            opening = text[start:end]
            flush()
            nodes.append(Component(
                name=_COMPONENT_NAME_RE.match(text, start + 1).group(0),
                attributes=parse_attributes(opening),
                opening=opening,
                inline=True,
                self_closing=self_closing,
                raw=opening,
            ))
            return end
    else:
        html = _HTML_OPEN_TAG_RE.match(text, start)
        if html is not None:
            flush()
            nodes.append(Html(value=html.group(0), inline=True))
            return html.end()
    buffer.append('<')
    return start + 1
