"""
Core records for the proposal pipeline.

Documents are parsed once and are immutable for the rest of the build. The
``Corpus`` is the read-only snapshot of every parsed document that the
resolver, index builder and renderer all receive explicitly.

Architecture:
    ::

        Document ──┐
        Document ──┼──► Corpus (sorted by number, unique numbers)
        Document ──┘        │
                            ├──► Reference / DanglingReference  (resolver)
                            ├──► IndexEntry                     (index)
                            └──► RenderWarning                  (renderer)

Tags:
    models, document, corpus, proposal-site

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

from proposal_site.errors import DuplicateIdentifier

# Label used in titles, page names and bare "PEP 8" reference markers.
LABEL = "PEP"


class Status(str, Enum):
    """Declared lifecycle status of a document.

    Declaration order is the display order for grouped views.
    """

    DRAFT = "Draft"
    ACTIVE = "Active"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"
    DEFERRED = "Deferred"
    FINAL = "Final"
    SUPERSEDED = "Superseded"

    @property
    def abbreviation(self) -> str:
        return _STATUS_ABBREVIATIONS[self]

    @classmethod
    def parse(cls, value: str) -> Status:
        """Look up a status by its header spelling, ignoring case.

        Raises:
            ValueError: If the value names no known status
        """
        wanted = value.strip().casefold()
        for status in cls:
            if status.value.casefold() == wanted:
                return status
        raise ValueError(f"unknown status {value!r}")


_STATUS_ABBREVIATIONS = {
    Status.DRAFT: "",
    Status.ACTIVE: "A",
    Status.ACCEPTED: "A",
    Status.DEFERRED: "D",
    Status.FINAL: "F",
    Status.SUPERSEDED: "S",
    Status.REJECTED: "R",
    Status.WITHDRAWN: "W",
}


class DocumentType(str, Enum):
    """Kind of proposal."""

    STANDARDS_TRACK = "Standards Track"
    INFORMATIONAL = "Informational"
    PROCESS = "Process"

    @property
    def abbreviation(self) -> str:
        return self.value[0]

    @classmethod
    def parse(cls, value: str) -> DocumentType:
        """Look up a type by its header spelling, ignoring case and spacing.

        Raises:
            ValueError: If the value names no known type
        """
        wanted = " ".join(value.split()).casefold()
        for doc_type in cls:
            if doc_type.value.casefold() == wanted:
                return doc_type
        raise ValueError(f"unknown type {value!r}")


@dataclass(frozen=True)
class Author:
    """One author as written in the ``Author`` header."""

    name: str
    email: str | None = None

    def __str__(self) -> str:
        if self.email:
            return f"{self.name} <{self.email}>"
        return self.name


@dataclass(frozen=True)
class Document:
    """One parsed proposal.

    Attributes:
        number: Unique identifier within the corpus
        title: Title header
        status: Declared status (transition legality is not checked)
        type: Declared document type
        created: Creation date
        authors: Ordered, de-duplicated authors
        requires: Identifiers this document requires
        replaces: Identifiers this document replaces
        superseded_by: Identifiers superseding this document
        extra: Any other header fields, in their original order
        body: Raw body text following the header block
        path: Source file, if parsed from disk (not part of equality)
    """

    number: int
    title: str
    status: Status
    type: DocumentType
    created: date
    authors: tuple[Author, ...] = ()
    requires: tuple[int, ...] = ()
    replaces: tuple[int, ...] = ()
    superseded_by: tuple[int, ...] = ()
    extra: tuple[tuple[str, str], ...] = ()
    body: str = ""
    path: Path | None = field(default=None, compare=False)

    @property
    def label(self) -> str:
        """Display label, e.g. ``PEP 8``."""
        return f"{LABEL} {self.number}"

    @property
    def slug(self) -> str:
        """Output page stem, e.g. ``pep-0008``."""
        return slug_for(self.number)

    @property
    def source(self) -> str:
        """Name used in error and warning messages."""
        return str(self.path) if self.path else self.label

    def header_links(self) -> Iterator[tuple[str, int]]:
        """Yield ``(origin, target)`` for every header field naming another document."""
        for origin, targets in (
            ("requires", self.requires),
            ("replaces", self.replaces),
            ("superseded-by", self.superseded_by),
        ):
            for target in targets:
                yield origin, target

    def to_dict(self) -> dict[str, Any]:
        """Metadata as a JSON-friendly dict (the body is left out)."""
        return {
            "number": self.number,
            "title": self.title,
            "status": self.status.value,
            "type": self.type.value,
            "created": self.created.isoformat(),
            "authors": [
                {"name": author.name, "email": author.email} for author in self.authors
            ],
            "requires": list(self.requires),
            "replaces": list(self.replaces),
            "superseded_by": list(self.superseded_by),
            "extra": dict(self.extra),
            "source": self.source,
        }


def slug_for(number: int) -> str:
    return f"{LABEL.lower()}-{number:04d}"


class Corpus:
    """Immutable snapshot of every document in one build.

    Examples:
        >>> corpus = Corpus([doc_12, doc_3])
        >>> [d.number for d in corpus]
        [3, 12]
        >>> 12 in corpus
        True
    """

    def __init__(self, documents: list[Document] | tuple[Document, ...] = ()):
        by_number: dict[int, Document] = {}
        for document in documents:
            existing = by_number.get(document.number)
            if existing is not None:
                raise DuplicateIdentifier(
                    f"identifier {document.number} is also declared by {existing.source}",
                    document=document.source,
                    field="pep",
                )
            by_number[document.number] = document
        self._by_number = dict(sorted(by_number.items()))
        self._documents = tuple(self._by_number.values())

    @property
    def documents(self) -> tuple[Document, ...]:
        return self._documents

    @property
    def numbers(self) -> tuple[int, ...]:
        return tuple(self._by_number)

    def get(self, number: int) -> Document | None:
        return self._by_number.get(number)

    def __getitem__(self, number: int) -> Document:
        return self._by_number[number]

    def __contains__(self, number: object) -> bool:
        return number in self._by_number

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __repr__(self) -> str:
        return f"Corpus({len(self)} documents)"


@dataclass(frozen=True)
class Reference:
    """A resolved, directional edge from one document to another.

    ``origin`` is ``body`` for markers in the text, or the header field name
    (``requires``, ``replaces``, ``superseded-by``). ``position`` is the
    ordinal of the marker among all markers of the source document.
    """

    source: int
    target: int
    origin: str = "body"
    position: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "origin": self.origin,
            "position": self.position,
        }


@dataclass(frozen=True)
class DanglingReference:
    """A reference whose target does not exist in the corpus (warning)."""

    source: int
    target: int
    origin: str = "body"
    position: int = 0
    path: str | None = None

    @property
    def message(self) -> str:
        where = "body" if self.origin == "body" else f"{self.origin} header"
        return f"{LABEL} {self.source} references missing {LABEL} {self.target} ({where})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "origin": self.origin,
            "position": self.position,
            "path": self.path,
            "message": self.message,
        }


@dataclass(frozen=True)
class IndexEntry:
    """Listing projection of a Document; rebuilt on every build."""

    number: int
    title: str
    status: Status
    type: DocumentType
    authors: tuple[str, ...] = ()

    @classmethod
    def from_document(cls, document: Document) -> IndexEntry:
        return cls(
            number=document.number,
            title=document.title,
            status=document.status,
            type=document.type,
            authors=tuple(author.name for author in document.authors),
        )

    @property
    def slug(self) -> str:
        return slug_for(self.number)

    @property
    def label(self) -> str:
        return f"{LABEL} {self.number}"

    @property
    def code(self) -> str:
        """Two-letter type/status code shown in index tables, e.g. ``SF``."""
        return f"{self.type.abbreviation}{self.status.abbreviation}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "status": self.status.value,
            "type": self.type.value,
            "authors": list(self.authors),
            "url": f"{self.slug}.html",
        }


@dataclass(frozen=True)
class RenderWarning:
    """Non-fatal, per-document rendering problem.

    ``kind`` is ``asset`` when a missing asset was replaced by a placeholder
    (the page was still produced) and ``failure`` when no page could be
    produced for the document.
    """

    document: int
    message: str
    kind: str = "asset"
    target: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document": self.document,
            "message": self.message,
            "kind": self.kind,
            "target": self.target,
        }


__all__ = [
    "LABEL",
    "Status",
    "DocumentType",
    "Author",
    "Document",
    "Corpus",
    "Reference",
    "DanglingReference",
    "IndexEntry",
    "RenderWarning",
    "slug_for",
]
