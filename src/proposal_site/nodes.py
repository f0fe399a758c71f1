"""
Node tree for parsed bodies and rendered pages.

The body parser produces block and inline nodes; the page renderer swaps
reference markers for resolved links and wraps everything in a ``Page``. The
HTML templates dispatch on each node's ``kind``.

Architecture:
    ::

        Page
          ├── breadcrumbs: Crumb...
          ├── header:      HeaderRow(name, inlines)...
          ├── toc:         TocEntry(children=TocEntry...)...
          ├── body:        Block...
          │                 Heading | Paragraph | LiteralBlock | ListBlock
          │                 BlockQuote | Admonition | Table | Image | Placeholder
          │                      └── inlines: Text | Literal | Emphasis
          │                          Strong | Link | Role | ProposalRef
          │                          DocumentLink | DanglingRef
          └── sidebar:     SidebarSection(links=DocumentLink...)...

Tags:
    nodes, document-tree, rendering, proposal-site

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

# =============================================================================
# Inline nodes
# =============================================================================


@dataclass(frozen=True)
class Text:
    kind: ClassVar[str] = "text"
    text: str


@dataclass(frozen=True)
class Literal:
    kind: ClassVar[str] = "literal"
    text: str


@dataclass(frozen=True)
class Emphasis:
    kind: ClassVar[str] = "emphasis"
    text: str


@dataclass(frozen=True)
class Strong:
    kind: ClassVar[str] = "strong"
    text: str


@dataclass(frozen=True)
class Link:
    kind: ClassVar[str] = "link"
    text: str
    href: str


@dataclass(frozen=True)
class Role:
    """Interpreted text such as ``:func:`len```; shown as code."""

    kind: ClassVar[str] = "role"
    role: str
    text: str


@dataclass(frozen=True)
class ProposalRef:
    """Unresolved reference marker to another document."""

    kind: ClassVar[str] = "proposal_ref"
    number: int
    text: str
    anchor: str | None = None


@dataclass(frozen=True)
class DocumentLink:
    """Reference marker resolved to an existing document."""

    kind: ClassVar[str] = "document_link"
    number: int
    text: str
    href: str
    title: str = ""
    status: str = ""


@dataclass(frozen=True)
class DanglingRef:
    """Reference marker whose target does not exist."""

    kind: ClassVar[str] = "dangling_ref"
    number: int
    text: str


Inline = Union[Text, Literal, Emphasis, Strong, Link, Role, ProposalRef, DocumentLink, DanglingRef]


# =============================================================================
# Block nodes
# =============================================================================


@dataclass(frozen=True)
class Heading:
    kind: ClassVar[str] = "heading"
    level: int
    children: tuple[Inline, ...]
    anchor: str

    @property
    def text(self) -> str:
        return plain_text(self.children)


@dataclass(frozen=True)
class Paragraph:
    kind: ClassVar[str] = "paragraph"
    children: tuple[Inline, ...]


@dataclass(frozen=True)
class LiteralBlock:
    kind: ClassVar[str] = "literal_block"
    text: str
    language: str | None = None


@dataclass(frozen=True)
class ListBlock:
    kind: ClassVar[str] = "list"
    items: tuple[tuple[Block, ...], ...]
    ordered: bool = False


@dataclass(frozen=True)
class BlockQuote:
    kind: ClassVar[str] = "block_quote"
    children: tuple[Block, ...]


@dataclass(frozen=True)
class Admonition:
    kind: ClassVar[str] = "admonition"
    name: str
    children: tuple[Block, ...]

    @property
    def title(self) -> str:
        if self.name == "seealso":
            return "See also"
        return self.name.replace("-", " ").capitalize()


@dataclass(frozen=True)
class Table:
    """Grid or simple table; each cell holds inline content."""

    kind: ClassVar[str] = "table"
    rows: tuple[tuple[tuple[Inline, ...], ...], ...]
    header_rows: int = 0


@dataclass(frozen=True)
class Image:
    kind: ClassVar[str] = "image"
    src: str
    alt: str = ""
    caption: tuple[Inline, ...] = ()


@dataclass(frozen=True)
class Placeholder:
    """Stands in for content that could not be rendered (e.g. a missing asset)."""

    kind: ClassVar[str] = "placeholder"
    message: str
    target: str | None = None


Block = Union[
    Heading, Paragraph, LiteralBlock, ListBlock, BlockQuote, Admonition, Table, Image, Placeholder
]


# =============================================================================
# Page nodes
# =============================================================================


@dataclass(frozen=True)
class Crumb:
    title: str
    href: str | None = None


@dataclass(frozen=True)
class TocEntry:
    title: str
    anchor: str
    children: tuple[TocEntry, ...] = ()


@dataclass(frozen=True)
class HeaderRow:
    name: str
    values: tuple[Inline, ...]


@dataclass(frozen=True)
class SidebarSection:
    title: str
    links: tuple[DocumentLink, ...]


@dataclass(frozen=True)
class Page:
    """Everything the page template needs for one document."""

    slug: str
    title: str
    breadcrumbs: tuple[Crumb, ...]
    header: tuple[HeaderRow, ...]
    toc: tuple[TocEntry, ...]
    body: tuple[Block, ...]
    sidebar: tuple[SidebarSection, ...]
    color_scheme: str = "auto"
    assets: tuple[str, ...] = ()


def plain_text(nodes: tuple[Inline, ...] | list[Inline]) -> str:
    """Concatenate the visible text of inline nodes."""
    return "".join(node.text for node in nodes)


def walk_blocks(blocks: tuple[Block, ...] | list[Block]):
    """Yield every block, depth first, including nested list items and quotes."""
    for block in blocks:
        yield block
        if isinstance(block, ListBlock):
            for item in block.items:
                yield from walk_blocks(item)
        elif isinstance(block, (BlockQuote, Admonition)):
            yield from walk_blocks(block.children)


def block_inlines(block: Block) -> tuple[Inline, ...]:
    """Inline children of a block (empty for blocks without inline content)."""
    if isinstance(block, (Heading, Paragraph)):
        return block.children
    if isinstance(block, Image):
        return block.caption
    if isinstance(block, Table):
        return tuple(node for row in block.rows for cell in row for node in cell)
    return ()
