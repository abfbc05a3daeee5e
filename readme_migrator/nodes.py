"""Structural document model.

A document body is parsed once into a tree of immutable nodes. Every node the
parser produces carries ``raw``, its verbatim source. Rewrite stages never
mutate a node: they build replacements, and any ancestor of a replaced node is
rebuilt with ``raw=None`` so the serializer renders it from structure instead.

Inline parsing only splits out what the stages act on (images, components,
raw HTML, hard breaks). Emphasis and strong text stay inside ``Text``; the
``Emphasis`` and ``Strong`` nodes exist for stages that build new content.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional, Union


@dataclass(frozen=True)
class Attribute:
    """One attribute of an embedded component."""
    name: str
    value: Optional[str] = None  # None for bare attributes
    expression: bool = False  # value came from {...}

    def render(self) -> str:
        if not self.name:
            return f"{{{self.value}}}"  # spread
        if self.value is None:
            return self.name
        if self.expression:
            return f'{self.name}={{{self.value}}}'
        return f'{self.name}="{self.value}"'


# ---- Inline nodes ----

@dataclass(frozen=True)
class Text:
    """Markdown source kept verbatim (including code spans and escapes)."""
    value: str


@dataclass(frozen=True)
class Image:
    url: str
    alt: str = ''
    title: str = ''
    raw: Optional[str] = None


@dataclass(frozen=True)
class Emphasis:
    """Rendered as ``*x*``. Built by code only: parsed emphasis stays inside Text."""
    children: tuple = ()


@dataclass(frozen=True)
class Strong:
    """Only built by rewrite stages, e.g. the missing-image paragraph."""
    children: tuple = ()


@dataclass(frozen=True)
class Break:
    raw: Optional[str] = None


# ---- Markup nodes (block or inline) ----

@dataclass(frozen=True)
class Html:
    """Raw HTML. ``opaque`` marks markup deliberately kept verbatim."""
    value: str
    inline: bool = False
    opaque: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class Expression:
    """An embedded-language expression such as ``{/* comment */}``."""
    value: str
    inline: bool = False


@dataclass(frozen=True)
class Component:
    """A capitalized embedded component, e.g. ``<Tabs values={...}>``."""
    name: str
    attributes: tuple = ()
    children: tuple = ()
    opening: str = ''
    closing: str = ''
    indent: str = ''
    inline: bool = False
    self_closing: bool = False
    raw: Optional[str] = None


# ---- Block nodes ----

@dataclass(frozen=True)
class Paragraph:
    children: tuple = ()
    raw: Optional[str] = None


@dataclass(frozen=True)
class Heading:
    level: int
    children: tuple = ()
    raw: Optional[str] = None


@dataclass(frozen=True)
class ListItem:
    children: tuple = ()
    raw: Optional[str] = None


@dataclass(frozen=True)
class List:
    ordered: bool = False
    start: int = 1
    spread: bool = False
    children: tuple = ()
    raw: Optional[str] = None


@dataclass(frozen=True)
class Blockquote:
    children: tuple = ()
    raw: Optional[str] = None


@dataclass(frozen=True)
class CodeBlock:
    info: str = ''
    value: str = ''
    raw: Optional[str] = None


@dataclass(frozen=True)
class ThematicBreak:
    raw: Optional[str] = None


@dataclass(frozen=True)
class RawBlock:
    """Source the tree doesn't model (tables, definitions, front matter)."""
    value: str


@dataclass(frozen=True)
class Root:
    children: tuple = ()


Node = Union[
    Root, Paragraph, Heading, List, ListItem, Blockquote, CodeBlock, RawBlock,
    ThematicBreak, Html, Expression, Component, Image, Text, Emphasis, Strong, Break,
]


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants, depth first."""
    yield node
    for child in getattr(node, 'children', ()):
        yield from walk(child)


def rewrite(node: Node, replace: Callable[[Node], Node]) -> Node:
    """Return a copy of ``node`` with every descendant passed through ``replace``.

    Children are replaced before their own subtrees are visited. Untouched
    subtrees are returned as the same objects. A node whose children changed
    drops its ``raw`` source; one whose children were only swapped for equal
    nodes (a flag such as ``Html.opaque`` set) keeps it.
    """
    children = getattr(node, 'children', ())
    if not children:
        return node

    new_children = []
    swapped = changed = False
    for child in children:
        new_child = rewrite(replace(child), replace)
        if new_child is not child:
            swapped = True
            changed = changed or new_child != child
        new_children.append(new_child)

    if not swapped:
        return node
    updates = {'children': tuple(new_children)}
    if changed and hasattr(node, 'raw'):
        updates['raw'] = None
    return dataclasses.replace(node, **updates)
