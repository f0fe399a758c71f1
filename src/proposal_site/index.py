"""
Index builder.

Aggregates the corpus into an ordered, read-only ``Index`` of entries with
grouping views and summary counts.

Example:
    >>> index = IndexBuilder().build(corpus)
    >>> [entry.number for entry in index]
    [1, 8, 20]
    >>> index.status_counts()[Status.FINAL]
    2
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from proposal_site.logging import get_logger
from proposal_site.models import Corpus, DocumentType, IndexEntry, Status

logger = get_logger(__name__)


class Index:
    """Sorted listing of every document, with grouping views.

    Every view orders entries by identifier ascending; groups follow the
    declaration order of ``Status`` / ``DocumentType``.
    """

    def __init__(self, entries: list[IndexEntry] | tuple[IndexEntry, ...], title: str = "Index"):
        self.title = title
        self._entries = tuple(sorted(entries, key=lambda entry: entry.number))
        self._by_number = {entry.number: entry for entry in self._entries}
        self._positions = {entry.number: i for i, entry in enumerate(self._entries)}

    @property
    def entries(self) -> tuple[IndexEntry, ...]:
        return self._entries

    def get(self, number: int) -> IndexEntry | None:
        return self._by_number.get(number)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, number: object) -> bool:
        return number in self._by_number

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Index):
            return NotImplemented
        return self._entries == other._entries

    # -- grouping views -------------------------------------------------

    def by_status(self, include_empty: bool = False) -> dict[Status, tuple[IndexEntry, ...]]:
        groups = {
            status: tuple(e for e in self._entries if e.status is status)
            for status in Status
        }
        return groups if include_empty else {k: v for k, v in groups.items() if v}

    def by_type(self, include_empty: bool = False) -> dict[DocumentType, tuple[IndexEntry, ...]]:
        groups = {
            doc_type: tuple(e for e in self._entries if e.type is doc_type)
            for doc_type in DocumentType
        }
        return groups if include_empty else {k: v for k, v in groups.items() if v}

    def by_author(self) -> dict[str, tuple[IndexEntry, ...]]:
        """Author name -> entries, authors sorted case-insensitively."""
        groups: dict[str, list[IndexEntry]] = {}
        for entry in self._entries:
            for author in entry.authors:
                groups.setdefault(author, []).append(entry)
        return {name: tuple(groups[name]) for name in sorted(groups, key=str.casefold)}

    def status_counts(self) -> dict[Status, int]:
        return {status: len(group) for status, group in self.by_status(include_empty=True).items()}

    def type_counts(self) -> dict[DocumentType, int]:
        return {doc_type: len(group) for doc_type, group in self.by_type(include_empty=True).items()}

    def neighbors(self, number: int) -> tuple[IndexEntry | None, IndexEntry | None]:
        """Entries immediately before and after ``number`` in identifier order."""
        position = self._positions.get(number)
        if position is None:
            return None, None
        previous = self._entries[position - 1] if position > 0 else None
        following = self._entries[position + 1] if position + 1 < len(self._entries) else None
        return previous, following

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "total": len(self),
            "status_counts": {s.value: n for s, n in self.status_counts().items()},
            "type_counts": {t.value: n for t, n in self.type_counts().items()},
            "entries": [entry.to_dict() for entry in self._entries],
        }


class IndexBuilder:
    """Build the ``Index`` for a corpus.

    Features:
        - Primary order: identifier ascending
        - Grouping by status and by type, identifier ascending within groups
        - Per-status and per-type counts, including zero counts
        - Same corpus contents always give an equal Index

    Tags:
        - index
        - aggregation

    Doc-Types:
        - API_REFERENCE (section: "Index Module", priority: 7)
    """

    def __init__(self, title: str = "Index"):
        self.title = title

    def build(self, corpus: Corpus) -> Index:
        index = Index([IndexEntry.from_document(document) for document in corpus], title=self.title)
        logger.info(
            "index.completed",
            entries=len(index),
            statuses={s.value: n for s, n in index.status_counts().items() if n},
        )
        return index


__all__ = ["Index", "IndexBuilder"]
