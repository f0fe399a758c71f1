"""
Metadata header parser.

Parses the colon-delimited preamble at the top of every proposal into a typed
``Document`` and serializes a ``Document`` back to the same canonical text.

Example:
    >>> text = '''PEP: 8
    ... Title: Style Guide for Python Code
    ... Author: Guido van Rossum <guido@python.org>
    ... Status: Active
    ... Type: Process
    ... Created: 05-Jul-2001
    ...
    ... Introduction
    ... ============
    ... '''
    >>> doc = parse_document(text)
    >>> doc.number, doc.status.value
    (8, 'Active')
    >>> parse_document(format_document(doc)) == doc
    True
"""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from datetime import date, datetime
from pathlib import Path

from proposal_site.errors import (
    CorpusError,
    DuplicateField,
    DuplicateIdentifier,
    HeaderError,
    MalformedHeader,
)
from proposal_site.logging import get_logger
from proposal_site.models import Author, Corpus, Document, DocumentType, Status

logger = get_logger(__name__)

# Canonical spelling and serialization order of the typed fields.
FIELD_NAMES = {
    "pep": "PEP",
    "title": "Title",
    "author": "Author",
    "status": "Status",
    "type": "Type",
    "created": "Created",
    "requires": "Requires",
    "replaces": "Replaces",
    "superseded-by": "Superseded-By",
}
REQUIRED_FIELDS = ("pep", "title", "status", "type", "created")

DATE_FORMATS = ("%d-%b-%Y", "%Y-%m-%d")

_FIELD_LINE = re.compile(r"^(?P<key>[A-Za-z][A-Za-z0-9-]*):\s*(?P<value>.*)$")
_FILE_NUMBER = re.compile(r"^pep-(\d+)$", re.IGNORECASE)


class MetadataParser:
    """Parse document headers into ``Document`` records.

    Manifesto:
        Header fields are validated once, at parse time, into a typed record
        with explicit enumerations for status and type. Nothing downstream
        reads raw header strings.

    Architecture:
        ```
        raw text
              │
              ▼
        _split() ──► header lines, body
              │
              ▼
        _fields() ──► [(key, value)]   (continuations folded,
              │                          duplicates rejected)
              ▼
        _build() ──► Document           (required fields checked,
                                         values typed)
        ```

    Features:
        - Field order does not matter; keys are case-insensitive
        - Indented continuation lines fold into the previous value
        - Unknown fields are preserved in order as ``extra``
        - ``Created`` accepts ``DD-Mon-YYYY`` or ISO dates

    Guardrails:
        - Do NOT accept a repeated field
          ✅ DuplicateField naming the field
        - Do NOT default a required field
          ✅ MalformedHeader naming the document and the field

    Tags:
        - parser
        - header
        - metadata

    Doc-Types:
        - API_REFERENCE (section: "Parser Module", priority: 9)
    """

    def parse(self, text: str, source: str | None = None, path: Path | None = None) -> Document:
        """Parse one document.

        Args:
            text: Full document text (header block, blank line, body)
            source: Name used in error messages (defaults to the path or ``<string>``)
            path: Source file, stored on the Document

        Returns:
            Document

        Raises:
            MalformedHeader: Missing/empty/invalid field or unusable header block
            DuplicateField: A field appears twice
        """
        source = source or (str(path) if path else "<string>")
        header_lines, body = self._split(text, source)
        fields = self._fields(header_lines, source)
        return self._build(fields, body, source, path)

    def _split(self, text: str, source: str) -> tuple[list[str], str]:
        """Split text into header lines and body at the first blank line."""
        lines = text.lstrip("\ufeff").splitlines()

        # Tolerate leading blank lines before the header.
        start = 0
        while start < len(lines) and not lines[start].strip():
            start += 1

        end = start
        while end < len(lines) and lines[end].strip():
            end += 1

        if end == start:
            raise MalformedHeader("document has no header block", document=source)

        body = "\n".join(lines[end + 1:]).strip("\n")
        if body:
            body += "\n"
        return lines[start:end], body

    def _fields(self, lines: list[str], source: str) -> list[tuple[str, str]]:
        """Fold continuation lines and collect ``(key, value)`` pairs in order."""
        fields: list[tuple[str, list[str]]] = []
        seen: dict[str, str] = {}

        for line in lines:
            if line[:1] in (" ", "\t"):
                if not fields:
                    raise MalformedHeader(
                        "header starts with a continuation line", document=source
                    )
                fields[-1][1].append(line.strip())
                continue

            match = _FIELD_LINE.match(line.rstrip())
            if not match:
                raise MalformedHeader(
                    f"not a 'Field: value' line: {line.strip()!r}", document=source
                )

            key = match.group("key")
            normalized = key.lower()
            if normalized in seen:
                raise DuplicateField(
                    f"field {key!r} appears more than once", document=source, field=normalized
                )
            seen[normalized] = key
            fields.append((key, [(match.group("value") or "").strip()]))

        return [(key, " ".join(part for part in parts if part)) for key, parts in fields]

    def _build(
        self,
        fields: list[tuple[str, str]],
        body: str,
        source: str,
        path: Path | None,
    ) -> Document:
        values = {key.lower(): value for key, value in fields}

        for name in REQUIRED_FIELDS:
            if name not in values:
                raise MalformedHeader(
                    f"missing required field {FIELD_NAMES[name]!r}", document=source, field=name
                )
            if not values[name]:
                raise MalformedHeader(
                    f"required field {FIELD_NAMES[name]!r} is empty", document=source, field=name
                )

        try:
            status = Status.parse(values["status"])
        except ValueError as e:
            raise MalformedHeader(str(e), document=source, field="status", cause=e) from e

        try:
            doc_type = DocumentType.parse(values["type"])
        except ValueError as e:
            raise MalformedHeader(str(e), document=source, field="type", cause=e) from e

        return Document(
            number=_parse_number(values["pep"], source, "pep"),
            title=values["title"],
            status=status,
            type=doc_type,
            created=_parse_date(values["created"], source),
            authors=parse_authors(values.get("author", ""), source),
            requires=_parse_numbers(values.get("requires", ""), source, "requires"),
            replaces=_parse_numbers(values.get("replaces", ""), source, "replaces"),
            superseded_by=_parse_numbers(values.get("superseded-by", ""), source, "superseded-by"),
            extra=tuple(
                (key, value) for key, value in fields if key.lower() not in FIELD_NAMES
            ),
            body=body,
            path=path,
        )


def _parse_number(value: str, source: str, field: str) -> int:
    text = value.strip()
    if not text.isdecimal():
        raise MalformedHeader(
            f"{FIELD_NAMES.get(field, field)!r} must be a non-negative integer, got {value!r}",
            document=source,
            field=field,
        )
    return int(text)


def _parse_numbers(value: str, source: str, field: str) -> tuple[int, ...]:
    if not value.strip():
        return ()
    numbers: list[int] = []
    for part in value.split(","):
        number = _parse_number(part, source, field)
        if number not in numbers:
            numbers.append(number)
    return tuple(numbers)


def _parse_date(value: str, source: str) -> date:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    raise MalformedHeader(
        f"'Created' must look like 05-Jul-2001, got {value!r}",
        document=source,
        field="created",
    )


def _split_outside_brackets(value: str) -> list[str]:
    """Split on commas that are not inside ``<...>`` or ``(...)``."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in value:
        if char in "<(":
            depth += 1
        elif char in ">)" and depth:
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


_NAME_EMAIL = re.compile(r"^(?P<name>.*?)\s*<(?P<email>[^>]*)>$")
_EMAIL_NAME = re.compile(r"^(?P<email>\S+@\S+)\s*\((?P<name>[^)]*)\)$")


def parse_authors(value: str, source: str = "<string>") -> tuple[Author, ...]:
    """Parse an ``Author`` header value into an ordered set of authors.

    Accepts ``Name <email>``, the legacy ``email (Name)`` form, and bare names.
    A name may contain a comma only when it also has an email, since only
    the legacy form can write it back.

    Examples:
        >>> parse_authors("Guido van Rossum <guido@python.org>, Barry Warsaw")
        (Author(name='Guido van Rossum', email='guido@python.org'), Author(name='Barry Warsaw', email=None))
    """
    authors: list[Author] = []
    for part in _split_outside_brackets(value):
        match = _NAME_EMAIL.match(part) or _EMAIL_NAME.match(part)
        if match:
            author = Author(name=match.group("name").strip() or match.group("email"),
                            email=match.group("email").strip() or None)
        else:
            author = Author(name=part)
        if "," in author.name and not _serializable(author):
            raise MalformedHeader(
                f"author {author.name!r} contains a comma but no email address",
                document=source,
                field="author",
            )
        if author not in authors:
            authors.append(author)
    return tuple(authors)


def _serializable(author: Author) -> bool:
    return author.email is not None and "(" not in author.name and ")" not in author.name


def _format_author(author: Author, source: str) -> str:
    """One author in a form ``parse_authors`` reads back unchanged.

    Names containing a comma use the legacy ``email (Name)`` form, where the
    parentheses keep the comma from splitting the list.
    """
    if "," not in author.name:
        return str(author)
    if not _serializable(author):
        raise MalformedHeader(
            f"author {author.name!r} contains a comma and cannot be serialized",
            document=source,
            field="author",
        )
    return f"{author.email} ({author.name})"


# =============================================================================
# Serialization
# =============================================================================


def format_header(document: Document) -> str:
    """Serialize a Document's metadata back to its canonical header block."""
    rows: list[tuple[str, str]] = [
        ("PEP", str(document.number)),
        ("Title", document.title),
    ]
    if document.authors:
        rows.append((
            "Author",
            ", ".join(_format_author(author, document.source) for author in document.authors),
        ))
    rows.extend([
        ("Status", document.status.value),
        ("Type", document.type.value),
        ("Created", document.created.strftime("%d-%b-%Y")),
    ])
    for name, numbers in (
        ("Requires", document.requires),
        ("Replaces", document.replaces),
        ("Superseded-By", document.superseded_by),
    ):
        if numbers:
            rows.append((name, ", ".join(str(n) for n in numbers)))
    rows.extend(document.extra)

    width = max(len(name) for name, _ in rows) + 2
    lines = []
    for name, value in rows:
        label = f"{name}:"
        lines.append(f"{label:<{width}}{value}".rstrip() if value else label)
    return "\n".join(lines) + "\n"


def format_document(document: Document) -> str:
    """Serialize a Document to full text: header block, blank line, body."""
    if not document.body:
        return format_header(document)
    return f"{format_header(document)}\n{document.body}"


# =============================================================================
# Files and corpora
# =============================================================================

_default_parser = MetadataParser()


def parse_document(text: str, source: str | None = None) -> Document:
    """Parse document text with the default parser. See ``MetadataParser.parse``."""
    return _default_parser.parse(text, source=source)


def parse_file(path: Path) -> Document:
    """Parse a proposal file.

    Besides header validation, a file named ``pep-NNNN.*`` must declare the
    identifier NNNN.

    Raises:
        MalformedHeader: Header invalid, file unreadable, or identifier mismatch
        DuplicateField: A field appears twice
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedHeader(f"cannot read document: {e}", document=str(path), cause=e) from e

    document = _default_parser.parse(text, path=path)

    match = _FILE_NUMBER.match(path.stem)
    if match and int(match.group(1)) != document.number:
        raise MalformedHeader(
            f"file name says {int(match.group(1))} but header declares {document.number}",
            document=str(path),
            field="pep",
        )
    return document


def discover(source_dir: Path, patterns: list[str]) -> list[Path]:
    """List proposal files in ``source_dir`` matching any pattern, sorted by name."""
    found: set[Path] = set()
    for pattern in patterns:
        found.update(p for p in Path(source_dir).glob(pattern) if p.is_file())
    return sorted(found)


def load_corpus(source_dir: Path, patterns: list[str], max_workers: int = 4) -> Corpus:
    """Parse every proposal file into an immutable Corpus.

    Files are parsed in parallel. All header errors are collected before
    failing, so the raised ``CorpusError`` names every offending document.

    Args:
        source_dir: Directory holding the proposal files
        patterns: Glob patterns selecting proposal files
        max_workers: Thread pool size

    Returns:
        Corpus of all documents

    Raises:
        CorpusError: If any document has a header error or identifiers collide
    """
    paths = discover(source_dir, patterns)
    logger.info("parse.discovered", source_dir=str(source_dir), files=len(paths))

    def parse_one(path: Path) -> Document | HeaderError:
        try:
            return parse_file(path)
        except HeaderError as e:
            return e

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(copy_context().run, parse_one, path) for path in paths]
        results = [future.result() for future in futures]

    documents = [r for r in results if isinstance(r, Document)]
    errors: list[HeaderError] = [r for r in results if isinstance(r, HeaderError)]

    seen: dict[int, Document] = {}
    for document in documents:
        first = seen.setdefault(document.number, document)
        if first is not document:
            errors.append(DuplicateIdentifier(
                f"identifier {document.number} is also declared by {first.source}",
                document=document.source,
                field="pep",
            ))

    if errors:
        for error in errors:
            logger.error("parse.header_invalid", document=error.document, field=error.field,
                         reason=error.message)
        raise CorpusError(errors)

    logger.info("parse.completed", documents=len(documents))
    return Corpus(documents)


__all__ = [
    "MetadataParser",
    "parse_document",
    "parse_file",
    "parse_authors",
    "format_header",
    "format_document",
    "discover",
    "load_corpus",
]
