"""
Body parser.

Turns the reStructuredText-style body of a proposal into block and inline
nodes (see ``proposal_site.nodes``). Only the constructs proposals actually
use are recognized; anything else degrades to paragraphs or is skipped.

Example:
    >>> blocks = BodyParser().parse('''
    ... Abstract
    ... ========
    ...
    ... This builds on :pep:`8` and PEP 20.
    ... ''')
    >>> blocks[0].text
    'Abstract'
    >>> [ref.number for ref in find_references('See :pep:`8` and PEP 20.')]
    [8, 20]
"""

import re
import textwrap
from dataclasses import dataclass, field

from proposal_site.models import LABEL
from proposal_site.nodes import (
    Admonition,
    Block,
    BlockQuote,
    Emphasis,
    Heading,
    Image,
    Inline,
    Link,
    ListBlock,
    Literal,
    LiteralBlock,
    Paragraph,
    ProposalRef,
    Role,
    Strong,
    Table,
    Text,
    block_inlines,
    plain_text,
    walk_blocks,
)

# Punctuation repeated three or more times: section adornment or transition.
_ADORNMENT = re.compile(r"^([!-/:-@\[-`{-~])\1{2,}\s*$")
_BULLET = re.compile(r"^([-*+•])(\s+)(.*)$")
_ENUMERATED = re.compile(r"^(\d+|#)([.)])(\s+)(.*)$")
_DIRECTIVE = re.compile(r"^\.\.\s+([\w:-]+)::(?:\s+(.*))?$")
_OPTION = re.compile(r"^:([\w-]+):(?:\s+(.*))?$")
_SIMPLE_TABLE = re.compile(r"^=+( +=+)+\s*$")
_GRID_TABLE = re.compile(r"^\+[-=+]+\+\s*$")

_INLINE = re.compile(
    r"``(?P<literal>.+?)``"
    r"|:(?P<role>[A-Za-z][\w:.+-]*):`(?P<role_text>[^`]+)`"
    r"|`(?P<link_text>[^`<]*?)\s*<(?P<link_url>[^`>]+)>`__?"
    r"|`(?P<interpreted>[^`]+)`(?P<ref_suffix>__?)?"
    r"|\*\*(?P<strong>[^*]+?)\*\*"
    r"|(?<![\w*])\*(?P<emphasis>[^*\s](?:[^*]*[^*\s])?)\*(?![\w*])"
    r"|(?P<url>https?://[^\s<>`]*[^\s<>`.,;:!?)\]'\"])"
    r"|\b" + LABEL + r"\s+(?P<bare>\d+)\b"
)
_ROLE_TARGET = re.compile(r"^(?:(?P<title>.*?)\s*<(?P<target>[^<>]+)>|(?P<plain>.+))$", re.DOTALL)

ADMONITIONS = {
    "attention", "caution", "danger", "error", "hint", "important",
    "note", "seealso", "tip", "warning", "admonition",
}
CODE_DIRECTIVES = {"code-block", "code", "sourcecode"}
IMAGE_DIRECTIVES = {"image", "figure"}
# Directives with no content worth showing on a page.
SKIPPED_DIRECTIVES = {"contents", "sectnum", "raw", "include", "meta", "target-notes", "index"}


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def slugify(text: str) -> str:
    """Anchor-safe identifier for a heading."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "section"


@dataclass
class _State:
    """Per-document parse state shared by nested blocks."""

    styles: list[tuple[str, bool]] = field(default_factory=list)
    anchors: set[str] = field(default_factory=set)

    def level_for(self, style: tuple[str, bool]) -> int:
        if style not in self.styles:
            self.styles.append(style)
        return self.styles.index(style) + 1

    def anchor_for(self, text: str) -> str:
        base = slugify(text)
        anchor, n = base, 1
        while anchor in self.anchors:
            anchor = f"{base}-{n}"
            n += 1
        self.anchors.add(anchor)
        return anchor


class BodyParser:
    """Parse a proposal body into block nodes.

    Features:
        - Section headings with underline or overline adornments; levels
          follow the order in which adornment styles first appear
        - Paragraphs, bullet and enumerated lists, block quotes
        - Literal blocks introduced by ``::`` or ``code-block`` directives
        - Admonitions, images and figures; other directives with content
          become generic containers, comments and table-of-contents style
          directives are skipped
        - Grid and simple tables, with inline markup in every cell
    """

    def parse(self, text: str) -> tuple[Block, ...]:
        lines = [line.expandtabs(8).rstrip() for line in text.splitlines()]
        return tuple(self._parse_blocks(lines, _State()))

    def _parse_blocks(self, lines: list[str], state: _State) -> list[Block]:
        blocks: list[Block] = []
        i, n = 0, len(lines)

        while i < n:
            line = lines[i]
            if not line.strip():
                i += 1
                continue

            if _indent(line):
                quoted, i = self._collect_indented(lines, i)
                children = self._parse_blocks(quoted, state)
                if children:
                    blocks.append(BlockQuote(tuple(children)))
                continue

            heading = self._match_heading(lines, i)
            if heading:
                title, style, consumed = heading
                children = parse_inline(title)
                blocks.append(Heading(
                    level=state.level_for(style),
                    children=children,
                    anchor=state.anchor_for(plain_text(children)),
                ))
                i += consumed
                continue

            if _ADORNMENT.match(line):
                # Transition; nothing to render.
                i += 1
                continue

            if _GRID_TABLE.match(line) or _SIMPLE_TABLE.match(line):
                end = i
                while end < n and lines[end].strip():
                    end += 1
                table = lines[i:end]
                if _GRID_TABLE.match(line):
                    blocks.append(self._grid_table(table))
                else:
                    blocks.append(self._simple_table(table))
                i = end
                continue

            if line == ".." or line.startswith(".. "):
                block, i = self._directive(lines, i, state)
                if block is not None:
                    blocks.append(block)
                continue

            if _BULLET.match(line) or _ENUMERATED.match(line):
                block, i = self._list(lines, i, state)
                blocks.append(block)
                continue

            i = self._paragraph(lines, i, blocks)

        return blocks

    def _paragraph(self, lines: list[str], i: int, blocks: list[Block]) -> int:
        end = i
        while end < len(lines) and lines[end].strip():
            end += 1
        text = " ".join(line.strip() for line in lines[i:end])

        literal = text.endswith("::")
        if literal:
            if text == "::":
                text = ""
            elif text.endswith(" ::"):
                text = text[:-3].rstrip()
            else:
                text = text[:-1]
        if text:
            blocks.append(Paragraph(parse_inline(text)))

        if literal:
            start = end
            while start < len(lines) and not lines[start].strip():
                start += 1
            if start < len(lines) and _indent(lines[start]):
                code, end = self._collect_indented(lines, start)
                blocks.append(LiteralBlock("\n".join(code)))
        return end

    def _match_heading(self, lines: list[str], i: int) -> tuple[str, tuple[str, bool], int] | None:
        """Return ``(title, style, lines consumed)`` if a heading starts at ``i``."""
        line = lines[i]
        over = _ADORNMENT.match(line)
        if over:
            if (
                i + 2 < len(lines)
                and lines[i + 1].strip()
                and _ADORNMENT.match(lines[i + 2])
                and lines[i + 2][0] == over.group(1)
            ):
                return lines[i + 1].strip(), (over.group(1), True), 3
            return None

        if i + 1 < len(lines):
            under = _ADORNMENT.match(lines[i + 1])
            if under:
                return line.strip(), (under.group(1), False), 2
        return None

    def _collect_indented(
        self, lines: list[str], i: int, strip: int | None = None
    ) -> tuple[list[str], int]:
        """Collect the indented block starting at ``i``.

        Blank lines inside the block are kept; trailing ones are dropped. The
        block is dedented by ``strip`` columns, or by its common indentation.
        """
        end = i
        while end < len(lines) and (not lines[end].strip() or _indent(lines[end])):
            end += 1
        block = lines[i:end]
        while block and not block[-1].strip():
            block.pop()

        if strip is None:
            dedented = textwrap.dedent("\n".join(block)).splitlines()
        else:
            dedented = [line[min(strip, _indent(line)):] for line in block]
        return dedented, end

    def _split_options(self, content: list[str]) -> tuple[dict[str, str], list[str]]:
        options: dict[str, str] = {}
        index = 0
        while index < len(content):
            match = _OPTION.match(content[index].strip())
            if not match:
                break
            options[match.group(1)] = (match.group(2) or "").strip()
            index += 1
        return options, content[index:]

    def _directive(self, lines: list[str], i: int, state: _State) -> tuple[Block | None, int]:
        match = _DIRECTIVE.match(lines[i])
        content, end = self._collect_indented(lines, i + 1)
        if not match:
            # Comment or hyperlink target.
            return None, end

        name = match.group(1).lower()
        argument = (match.group(2) or "").strip()
        options, body = self._split_options(content)

        if name in IMAGE_DIRECTIVES:
            caption: tuple[Inline, ...] = ()
            paragraph = []
            for line in body:
                if not line.strip():
                    if paragraph:
                        break
                    continue
                paragraph.append(line.strip())
            if name == "figure" and paragraph:
                caption = parse_inline(" ".join(paragraph))
            return Image(src=argument, alt=options.get("alt", ""), caption=caption), end

        if name in CODE_DIRECTIVES:
            while body and not body[0].strip():
                body.pop(0)
            return LiteralBlock("\n".join(body), language=argument or None), end

        if name in SKIPPED_DIRECTIVES:
            return None, end

        # Admonitions and any other directive: a titled container.
        children = self._parse_blocks(body, state)
        if argument:
            children.insert(0, Paragraph(parse_inline(argument)))
        if not children and name not in ADMONITIONS:
            return None, end
        kind = "note" if name == "admonition" else name
        return Admonition(kind, tuple(children)), end

    def _grid_table(self, lines: list[str]) -> Table:
        """Cells are cut at the ``+`` positions of the top border."""
        cuts = [k for k, char in enumerate(lines[0]) if char == "+"]
        rows: list[list[list[str]]] = []
        header_rows = 0
        current: list[list[str]] | None = None

        for line in lines[1:]:
            if _GRID_TABLE.match(line):
                if current is not None:
                    rows.append(current)
                    current = None
                if "=" in line:
                    header_rows = len(rows)
                continue
            if current is None:
                current = [[] for _ in cuts[:-1]]
            for column, (start, stop) in enumerate(zip(cuts, cuts[1:])):
                # Spanning cells leave stray separators inside the slice.
                current[column].append(line[start + 1:stop].strip(" |"))
        if current is not None:
            rows.append(current)

        return _table(rows, header_rows)

    def _simple_table(self, lines: list[str]) -> Table:
        """Columns start where the ``=`` runs of the top border start."""
        starts = [match.start() for match in re.finditer(r"=+", lines[0])]
        rows: list[list[list[str]]] = []
        borders: list[int] = []

        for line in lines[1:]:
            if _SIMPLE_TABLE.match(line):
                borders.append(len(rows))
                continue
            if not line.strip(" -"):
                continue
            cells = [
                line[start:stop].strip()
                for start, stop in zip(starts, starts[1:] + [len(line)])
            ]
            if rows and not cells[0]:
                for column, text in enumerate(cells):
                    rows[-1][column].append(text)
            else:
                rows.append([[text] for text in cells])

        # Three borders: the middle one closes the header.
        header_rows = borders[0] if len(borders) > 1 else 0
        return _table(rows, header_rows)

    def _list(self, lines: list[str], i: int, state: _State) -> tuple[ListBlock, int]:
        first = _BULLET.match(lines[i])
        ordered = first is None
        marker = None if ordered else first.group(1)
        items: list[tuple[Block, ...]] = []

        while i < len(lines):
            if ordered:
                match = _ENUMERATED.match(lines[i])
                if not match:
                    break
                width = len(match.group(1)) + len(match.group(2)) + len(match.group(3))
                text = match.group(4)
            else:
                match = _BULLET.match(lines[i])
                if not match or match.group(1) != marker:
                    break
                width = 1 + len(match.group(2))
                text = match.group(3)

            continuation, i = self._collect_indented(lines, i + 1, strip=width)
            items.append(tuple(self._parse_blocks([text] + continuation, state)))

            while i < len(lines) and not lines[i].strip():
                i += 1

        return ListBlock(tuple(items), ordered=ordered), i


def _table(rows: list[list[list[str]]], header_rows: int) -> Table:
    return Table(
        rows=tuple(
            tuple(parse_inline(" ".join(part for part in cell if part)) for cell in row)
            for row in rows
        ),
        header_rows=header_rows,
    )


def _proposal_ref(text: str) -> ProposalRef | None:
    match = _ROLE_TARGET.match(text.strip())
    if not match:
        return None
    target = match.group("target") or match.group("plain")
    number, _, anchor = target.strip().partition("#")
    if not number.strip().isdecimal():
        return None
    value = int(number)
    title = (match.group("title") or "").strip()
    return ProposalRef(value, title or f"{LABEL} {value}", anchor or None)


def parse_inline(text: str) -> tuple[Inline, ...]:
    """Parse inline markup into inline nodes.

    Examples:
        >>> parse_inline("Use ``len()`` per :pep:`8`.")
        (Text(text='Use '), Literal(text='len()'), Text(text=' per '), ProposalRef(number=8, text='PEP 8', anchor=None), Text(text='.'))
    """
    nodes: list[Inline] = []
    position = 0

    def add_text(value: str) -> None:
        if not value:
            return
        if nodes and isinstance(nodes[-1], Text):
            nodes[-1] = Text(nodes[-1].text + value)
        else:
            nodes.append(Text(value))

    for match in _INLINE.finditer(text):
        add_text(text[position:match.start()])
        position = match.end()
        groups = match.groupdict()

        if groups["literal"] is not None:
            nodes.append(Literal(groups["literal"]))
        elif groups["role"] is not None:
            role = groups["role"]
            ref = _proposal_ref(groups["role_text"]) if role == LABEL.lower() else None
            if ref is not None:
                nodes.append(ref)
            else:
                nodes.append(Role(role, groups["role_text"]))
        elif groups["link_url"] is not None:
            url = groups["link_url"].strip()
            nodes.append(Link(groups["link_text"].strip() or url, url))
        elif groups["interpreted"] is not None:
            if groups["ref_suffix"]:
                add_text(groups["interpreted"])
            else:
                nodes.append(Literal(groups["interpreted"]))
        elif groups["strong"] is not None:
            nodes.append(Strong(groups["strong"]))
        elif groups["emphasis"] is not None:
            nodes.append(Emphasis(groups["emphasis"]))
        elif groups["url"] is not None:
            nodes.append(Link(groups["url"], groups["url"]))
        elif groups["bare"] is not None:
            value = int(groups["bare"])
            nodes.append(ProposalRef(value, match.group(0)))

    add_text(text[position:])
    return tuple(nodes)


def iter_markers(blocks: tuple[Block, ...]):
    """Yield every ``ProposalRef`` in document order."""
    for block in walk_blocks(blocks):
        for node in block_inlines(block):
            if isinstance(node, ProposalRef):
                yield node


def find_references(body: str) -> list[ProposalRef]:
    """Parse ``body`` and return its reference markers in order."""
    return list(iter_markers(BodyParser().parse(body)))


__all__ = [
    "BodyParser",
    "parse_inline",
    "iter_markers",
    "find_references",
    "slugify",
]
