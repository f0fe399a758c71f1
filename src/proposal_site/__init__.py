"""
proposal-site: render a directory of proposal documents into a static site.

Pipeline:
    parse headers ─► resolve cross-references ─► build index ─► render pages ─► publish

Example:
    >>> from proposal_site import SiteBuilder, SiteSettings
    >>> report = SiteBuilder(SiteSettings(source_dir="peps", output_dir="build")).build()
"""

__version__ = "0.1.0"

from proposal_site.builder import BuildReport, BuildStage, SiteBuilder  # noqa: E402
from proposal_site.config import SiteSettings  # noqa: E402
from proposal_site.errors import (  # noqa: E402
    BuildCancelled,
    BuildInProgress,
    CorpusError,
    DuplicateField,
    DuplicateIdentifier,
    HeaderError,
    MalformedHeader,
    SiteError,
)
from proposal_site.index import Index, IndexBuilder  # noqa: E402
from proposal_site.models import (  # noqa: E402
    Corpus,
    DanglingReference,
    Document,
    DocumentType,
    IndexEntry,
    Reference,
    RenderWarning,
    Status,
)
from proposal_site.parser import format_document, load_corpus, parse_document  # noqa: E402
from proposal_site.resolver import CrossReferenceResolver, Resolution  # noqa: E402

__all__ = [
    "__version__",
    "BuildCancelled",
    "BuildInProgress",
    "BuildReport",
    "BuildStage",
    "Corpus",
    "CorpusError",
    "CrossReferenceResolver",
    "DanglingReference",
    "Document",
    "DocumentType",
    "DuplicateField",
    "DuplicateIdentifier",
    "HeaderError",
    "Index",
    "IndexBuilder",
    "IndexEntry",
    "MalformedHeader",
    "Reference",
    "RenderWarning",
    "Resolution",
    "SiteBuilder",
    "SiteError",
    "SiteSettings",
    "Status",
    "format_document",
    "load_corpus",
    "parse_document",
]
