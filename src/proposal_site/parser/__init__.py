"""
Parser module for proposal-site.

Turns proposal files into typed ``Document`` records (header parser) and
their bodies into node trees (body parser).
"""

from proposal_site.parser.body import BodyParser, find_references, iter_markers, parse_inline
from proposal_site.parser.header import (
    MetadataParser,
    discover,
    format_document,
    format_header,
    load_corpus,
    parse_authors,
    parse_document,
    parse_file,
)

__all__ = [
    "BodyParser",
    "MetadataParser",
    "discover",
    "find_references",
    "format_document",
    "format_header",
    "iter_markers",
    "load_corpus",
    "parse_authors",
    "parse_document",
    "parse_file",
    "parse_inline",
]
