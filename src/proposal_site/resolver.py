"""
Cross-reference resolver.

Scans every document for references to other documents (``:pep:`N``` roles,
bare ``PEP N`` tokens, and the ``Requires``/``Replaces``/``Superseded-By``
header fields) and validates each target against the corpus snapshot.

Example:
    >>> resolution = CrossReferenceResolver().resolve(corpus)
    >>> [ref.target for ref in resolution.outgoing(1)]
    [2]
    >>> [d.target for d in resolution.dangling]
    [999]
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from dataclasses import dataclass, field
from typing import Any

from proposal_site.logging import get_logger
from proposal_site.models import Corpus, DanglingReference, Document, Reference
from proposal_site.parser.body import BodyParser, iter_markers

logger = get_logger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a corpus.

    Attributes:
        references: Source number -> ordered outgoing edges (every document
            in the corpus has an entry, possibly empty)
        dangling: Every reference whose target is missing, ordered by
            source number then position
    """

    references: dict[int, tuple[Reference, ...]] = field(default_factory=dict)
    dangling: tuple[DanglingReference, ...] = ()
    _backlinks: dict[int, tuple[int, ...]] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        sources: dict[int, set[int]] = {}
        for refs in self.references.values():
            for ref in refs:
                if ref.target != ref.source:
                    sources.setdefault(ref.target, set()).add(ref.source)
        object.__setattr__(
            self, "_backlinks", {target: tuple(sorted(s)) for target, s in sources.items()}
        )

    def outgoing(self, number: int) -> tuple[Reference, ...]:
        return self.references.get(number, ())

    def targets(self, number: int) -> tuple[int, ...]:
        """Distinct targets of ``number`` in first-reference order, excluding itself."""
        seen: dict[int, None] = {}
        for ref in self.outgoing(number):
            if ref.target != number:
                seen.setdefault(ref.target)
        return tuple(seen)

    def referenced_by(self, number: int) -> tuple[int, ...]:
        """Distinct documents referencing ``number``, ascending, excluding itself."""
        return self._backlinks.get(number, ())

    def edges(self) -> tuple[Reference, ...]:
        return tuple(ref for number in sorted(self.references) for ref in self.references[number])

    def dangling_for(self, number: int) -> tuple[DanglingReference, ...]:
        return tuple(d for d in self.dangling if d.source == number)

    def to_dict(self) -> dict[str, Any]:
        return {
            "edges": [ref.to_dict() for ref in self.edges()],
            "dangling": [d.to_dict() for d in self.dangling],
        }


class CrossReferenceResolver:
    """Resolve references between documents in one pass.

    Manifesto:
        A reference to a missing document is a warning, never a silently
        dropped link and never a failed build. The result depends only on
        the corpus contents, not on the order documents were supplied in.

    Architecture:
        ```
        Corpus (sorted, read-only)
              │
              ▼  ThreadPoolExecutor.map (one task per document)
        resolve_document()
              ├──► header links (requires, replaces, superseded-by)
              └──► body markers (BodyParser → ProposalRef, in order)
              │
              ▼
        target in corpus? ──yes──► Reference
                          └─no───► DanglingReference
              │
              ▼
        Resolution(references, dangling)
        ```

    Tags:
        - resolver
        - cross_reference
        - validation

    Doc-Types:
        - ARCHITECTURE (section: "Build Pipeline", priority: 8)
        - API_REFERENCE (section: "Resolver Module", priority: 8)
    """

    def __init__(self, max_workers: int = 4):
        self.max_workers = max_workers
        self.body_parser = BodyParser()

    def resolve(self, corpus: Corpus) -> Resolution:
        """Resolve every document in the corpus.

        Args:
            corpus: Immutable document snapshot

        Returns:
            Resolution with one entry per document
        """
        documents = corpus.documents

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(copy_context().run, self.resolve_document, document, corpus)
                for document in documents
            ]
            results = [future.result() for future in futures]

        references: dict[int, tuple[Reference, ...]] = {}
        dangling: list[DanglingReference] = []
        for document, (edges, missing) in zip(documents, results):
            references[document.number] = edges
            dangling.extend(missing)

        for item in dangling:
            logger.warning(
                "resolve.dangling_reference",
                source=item.source,
                target=item.target,
                origin=item.origin,
            )
        logger.info(
            "resolve.completed",
            documents=len(documents),
            edges=sum(len(edges) for edges in references.values()),
            dangling=len(dangling),
        )
        return Resolution(references=references, dangling=tuple(dangling))

    def resolve_document(
        self, document: Document, corpus: Corpus
    ) -> tuple[tuple[Reference, ...], tuple[DanglingReference, ...]]:
        """Resolve the references of a single document against ``corpus``.

        Returns:
            (edges, dangling) in the order the references appear
        """
        edges: list[Reference] = []
        missing: list[DanglingReference] = []

        targets = list(document.header_links())
        targets.extend(
            ("body", marker.number)
            for marker in iter_markers(self.body_parser.parse(document.body))
        )

        for position, (origin, target) in enumerate(targets):
            if target in corpus:
                edges.append(Reference(document.number, target, origin, position))
            else:
                missing.append(DanglingReference(
                    document.number,
                    target,
                    origin,
                    position,
                    path=str(document.path) if document.path else None,
                ))

        return tuple(edges), tuple(missing)


__all__ = ["CrossReferenceResolver", "Resolution"]
