"""
Page renderer.

Builds the ``Page`` node tree for one document: breadcrumb, header table,
table of contents, body with resolved reference links, and sidebar.
Problems confined to one page (missing images) become ``RenderWarning``
records and placeholders; they never stop the build.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path

from proposal_site.errors import AssetNotFound
from proposal_site.index import Index
from proposal_site.logging import get_logger
from proposal_site.models import LABEL, Document, Reference, RenderWarning, slug_for
from proposal_site.nodes import (
    Admonition,
    Block,
    BlockQuote,
    Crumb,
    DanglingRef,
    DocumentLink,
    Heading,
    HeaderRow,
    Image,
    Inline,
    Link,
    ListBlock,
    Page,
    Paragraph,
    Placeholder,
    ProposalRef,
    SidebarSection,
    Table,
    Text,
    TocEntry,
    walk_blocks,
)
from proposal_site.parser.body import BodyParser, parse_inline

logger = get_logger(__name__)

_URL_SCHEMES = ("http://", "https://", "data:", "//")


@dataclass(frozen=True)
class RenderedPage:
    """A page tree plus the warnings raised while building it."""

    page: Page
    warnings: tuple[RenderWarning, ...] = ()


class PageRenderer:
    """Render one document into a ``Page``.

    Manifesto:
        A page is assembled from explicit inputs only: the document, its
        resolved outgoing references, and the index. Nothing is looked up in
        shared mutable state, so pages can be rendered in parallel.

    Architecture:
        ```
        Document.body ──► BodyParser ──► blocks
                                          │
                      outgoing refs ──────┤  ProposalRef ─► DocumentLink
                      Index ──────────────┤                 or DanglingRef
                      asset root ─────────┘  Image ───────► Image
                                                            or Placeholder + RenderWarning
                                          │
                                          ▼
                  Page(breadcrumbs, header, toc, body, sidebar)
        ```

    Guardrails:
        - Do NOT fail a page on a missing image
          ✅ Placeholder node plus RenderWarning(kind="asset")
        - Do NOT link a marker whose target did not resolve
          ✅ DanglingRef, shown as plain marked text

    Tags:
        - renderer
        - page
        - navigation

    Doc-Types:
        - API_REFERENCE (section: "Renderers Module", priority: 8)
    """

    def __init__(
        self,
        site_title: str = "Index",
        color_scheme: str = "auto",
        body_parser: BodyParser | None = None,
    ):
        self.site_title = site_title
        self.color_scheme = color_scheme
        self.body_parser = body_parser or BodyParser()

    def render(
        self,
        document: Document,
        references: tuple[Reference, ...],
        index: Index,
        referenced_by: tuple[int, ...] = (),
        asset_root: Path | None = None,
    ) -> RenderedPage:
        """Build the page for ``document``.

        Args:
            document: Document to render
            references: Its resolved outgoing references
            index: Index of the whole corpus
            referenced_by: Documents linking to this one (for the sidebar)
            asset_root: Directory images are resolved against (defaults to
                the document's own directory)

        Returns:
            RenderedPage with the page tree and any warnings
        """
        if asset_root is None and document.path is not None:
            asset_root = document.path.parent

        context = _PageContext(
            document=document,
            resolved={ref.target for ref in references},
            index=index,
            asset_root=asset_root,
        )

        body = tuple(self._block(block, context) for block in self.body_parser.parse(document.body))

        page = Page(
            slug=document.slug,
            title=f"{document.label} – {document.title}",
            breadcrumbs=(
                Crumb(self.site_title, "index.html"),
                Crumb(document.label),
            ),
            header=self._header(document, context),
            toc=build_toc([b for b in walk_blocks(body) if isinstance(b, Heading)]),
            body=body,
            sidebar=self._sidebar(document, references, referenced_by, context),
            color_scheme=self.color_scheme,
            assets=tuple(context.assets),
        )
        return RenderedPage(page=page, warnings=tuple(context.warnings))

    # -- header ---------------------------------------------------------

    def _header(self, document: Document, context: _PageContext) -> tuple[HeaderRow, ...]:
        rows = []

        if document.authors:
            values: list[Inline] = []
            for author in document.authors:
                if values:
                    values.append(Text(", "))
                if author.email:
                    values.append(Link(author.name, f"mailto:{author.email}"))
                else:
                    values.append(Text(author.name))
            rows.append(HeaderRow("Author", tuple(values)))

        rows.append(HeaderRow("Status", (Text(document.status.value),)))
        rows.append(HeaderRow("Type", (Text(document.type.value),)))
        rows.append(HeaderRow("Created", (Text(document.created.strftime("%d-%b-%Y")),)))

        for name, numbers in (
            ("Requires", document.requires),
            ("Replaces", document.replaces),
            ("Superseded-By", document.superseded_by),
        ):
            if numbers:
                values = []
                for number in numbers:
                    if values:
                        values.append(Text(", "))
                    values.append(context.link(ProposalRef(number, str(number))))
                rows.append(HeaderRow(name, tuple(values)))

        for name, value in document.extra:
            rows.append(HeaderRow(name, context.resolve_inlines(parse_inline(value))))

        return tuple(rows)

    # -- body -----------------------------------------------------------

    def _block(self, block: Block, context: _PageContext) -> Block:
        if isinstance(block, (Heading, Paragraph)):
            return dataclasses.replace(block, children=context.resolve_inlines(block.children))
        if isinstance(block, ListBlock):
            items = tuple(
                tuple(self._block(child, context) for child in item) for item in block.items
            )
            return dataclasses.replace(block, items=items)
        if isinstance(block, (BlockQuote, Admonition)):
            children = tuple(self._block(child, context) for child in block.children)
            return dataclasses.replace(block, children=children)
        if isinstance(block, Table):
            rows = tuple(
                tuple(context.resolve_inlines(cell) for cell in row) for row in block.rows
            )
            return dataclasses.replace(block, rows=rows)
        if isinstance(block, Image):
            return self._image(block, context)
        return block

    def _image(self, image: Image, context: _PageContext) -> Block:
        try:
            source = context.asset(image.src)
        except AssetNotFound as e:
            context.warn(e.message, target=image.src)
            return Placeholder(f"Image unavailable: {image.src}", image.src)
        return dataclasses.replace(
            image, src=source, caption=context.resolve_inlines(image.caption)
        )

    # -- sidebar --------------------------------------------------------

    def _sidebar(
        self,
        document: Document,
        references: tuple[Reference, ...],
        referenced_by: tuple[int, ...],
        context: _PageContext,
    ) -> tuple[SidebarSection, ...]:
        sections = []

        targets: dict[int, None] = {}
        for ref in references:
            if ref.target != document.number:
                targets.setdefault(ref.target)
        if targets:
            sections.append(SidebarSection(
                "References", tuple(context.link(ProposalRef(n, f"{LABEL} {n}")) for n in targets)
            ))

        if referenced_by:
            sections.append(SidebarSection(
                "Referenced by",
                tuple(context.link(ProposalRef(n, f"{LABEL} {n}"), resolved=True) for n in referenced_by),
            ))

        previous, following = context.index.neighbors(document.number)
        nearby = tuple(
            context.link(ProposalRef(entry.number, label), resolved=True)
            for entry, label in (
                (previous, f"« {previous.label}" if previous else ""),
                (following, f"{following.label} »" if following else ""),
            )
            if entry is not None
        )
        if nearby:
            sections.append(SidebarSection("Nearby", nearby))

        return tuple(sections)


class _PageContext:
    """Mutable per-page state: resolved targets, collected assets and warnings."""

    def __init__(self, document: Document, resolved: set[int], index: Index, asset_root: Path | None):
        self.document = document
        self.resolved = resolved
        self.index = index
        self.asset_root = asset_root
        self.assets: list[str] = []
        self.warnings: list[RenderWarning] = []

    def link(self, ref: ProposalRef, resolved: bool = False) -> Inline:
        """Turn a marker into a DocumentLink, or a DanglingRef if it did not resolve.

        ``resolved=True`` skips the outgoing-reference check for links that do
        not come from this document's markers (back-links, neighbors).
        """
        entry = self.index.get(ref.number)
        resolved = resolved or ref.number in self.resolved or ref.number == self.document.number
        if entry is None or not resolved:
            return DanglingRef(ref.number, ref.text)
        href = f"{slug_for(ref.number)}.html"
        if ref.number == self.document.number:
            href = ""
        if ref.anchor:
            href = f"{href}#{ref.anchor}"
        return DocumentLink(
            number=ref.number,
            text=ref.text,
            href=href or "#",
            title=entry.title,
            status=entry.status.value,
        )

    def resolve_inlines(self, nodes: tuple[Inline, ...]) -> tuple[Inline, ...]:
        return tuple(self.link(node) if isinstance(node, ProposalRef) else node for node in nodes)

    def asset(self, src: str) -> str:
        """Validate an embedded asset and return the path to use in the page.

        Raises:
            AssetNotFound: If the asset is missing or outside the asset root
        """
        if src.startswith(_URL_SCHEMES):
            return src
        if not src or self.asset_root is None:
            raise AssetNotFound(f"{self.document.label}: no asset root for {src!r}")

        root = self.asset_root.resolve()
        candidate = (root / src).resolve()
        if not candidate.is_relative_to(root):
            raise AssetNotFound(f"{self.document.label}: asset {src!r} is outside the source tree")
        if not candidate.is_file():
            raise AssetNotFound(f"{self.document.label}: asset {src!r} not found")

        relative = candidate.relative_to(root).as_posix()
        if relative not in self.assets:
            self.assets.append(relative)
        return relative

    def warn(self, message: str, target: str | None = None) -> None:
        logger.warning("render.asset_missing", document=self.document.number, target=target)
        self.warnings.append(RenderWarning(self.document.number, message, kind="asset", target=target))


def build_toc(headings: list[Heading]) -> tuple[TocEntry, ...]:
    """Nest headings by level into table-of-contents entries."""
    root: list[tuple[Heading, list]] = []
    stack: list[tuple[int, list]] = [(0, root)]

    for heading in headings:
        while stack[-1][0] >= heading.level:
            stack.pop()
        children: list = []
        stack[-1][1].append((heading, children))
        stack.append((heading.level, children))

    def freeze(nodes: list[tuple[Heading, list]]) -> tuple[TocEntry, ...]:
        return tuple(
            TocEntry(heading.text, heading.anchor, freeze(children)) for heading, children in nodes
        )

    return freeze(root)


__all__ = ["PageRenderer", "RenderedPage", "build_toc"]
