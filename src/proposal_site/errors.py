"""
Structured error types for proposal-site.

Every failure the build can raise is a ``SiteError`` carrying a category,
structured context (document, field, path, target) and an optional chained
cause, so the CLI and the build report can name exactly what went wrong.

Manifesto:
    - **Typed hierarchy:** Header problems, render problems and publish
      problems are different types, handled at different stages
    - **Rich context:** Errors name the offending document and field
    - **Error chaining:** The original exception is kept as ``cause``

Architecture:
    ::

        SiteError (category, context, cause)
          ├── HeaderError (PARSE)         fatal, parsing stage
          │     ├── MalformedHeader
          │     ├── DuplicateField
          │     └── DuplicateIdentifier (VALIDATION)
          ├── CorpusError (PARSE)         aggregate of HeaderError
          ├── RenderError (RENDER)        per-document
          │     └── AssetNotFound         recovered as a RenderWarning
          ├── PublishError (PUBLISH)
          ├── ConfigError (CONFIG)
          ├── BuildCancelled (BUILD)
          └── BuildInProgress (BUILD)

Guardrails:
    ❌ DON'T: Raise a bare Exception for an expected failure
    ✅ DO: Use the SiteError subclass for the stage that failed

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, error-context, proposal-site

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for reporting and exit codes."""

    PARSE = "PARSE"             # Header/body parsing
    VALIDATION = "VALIDATION"   # Corpus-level constraints (unique identifiers)
    REFERENCE = "REFERENCE"     # Cross-reference resolution
    RENDER = "RENDER"           # Page rendering, templates, assets
    PUBLISH = "PUBLISH"         # Staging and swapping output
    CONFIG = "CONFIG"           # Missing or invalid settings
    BUILD = "BUILD"             # Build lifecycle (cancelled, re-entered)
    INTERNAL = "INTERNAL"       # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set are serialized by ``to_dict()``; anything that
    has no dedicated field goes into ``metadata``.

    Examples:
        >>> ctx = ErrorContext(document="pep-0669.rst", field="status")
        >>> ctx.to_dict()
        {'document': 'pep-0669.rst', 'field': 'status'}
    """

    document: str | None = None
    field: str | None = None
    path: str | None = None
    target: int | None = None
    stage: str | None = None

    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["document", "field", "path", "target", "stage"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SiteError(Exception):
    """
    Base exception for all proposal-site errors.

    Examples:
        >>> error = SiteError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error = SiteError("Bad page").with_context(document="pep-0008.rst")
        >>> error.context.document
        'pep-0008.rst'

        >>> SiteError("Bad", category=ErrorCategory.RENDER).to_dict()["category"]
        'RENDER'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SiteError:
        """
        Add context to this error (fluent API).

        Usage:
            raise RenderError("Template failed").with_context(document="pep-0001.rst")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# PARSING STAGE (fatal)
# =============================================================================


class HeaderError(SiteError):
    """A document's metadata header cannot be turned into a Document.

    ``document`` names the source (file path, or ``<string>`` for text that
    did not come from a file) and ``field`` the lowercase header field at
    fault, or ``None`` when the header block itself is unusable.
    """

    default_category = ErrorCategory.PARSE

    def __init__(
        self,
        message: str,
        *,
        document: str,
        field: str | None = None,
        **kwargs: Any,
    ):
        context = kwargs.pop("context", None) or ErrorContext()
        context.document = document
        context.field = field
        super().__init__(message, context=context, **kwargs)

    @property
    def document(self) -> str:
        return self.context.document or "<unknown>"

    @property
    def field(self) -> str | None:
        return self.context.field

    def __str__(self) -> str:
        if self.field:
            return f"{self.document}: {self.field}: {self.message}"
        return f"{self.document}: {self.message}"


class MalformedHeader(HeaderError):
    """A required field is missing, empty, or holds an invalid value."""


class DuplicateField(HeaderError):
    """The same header field appears more than once in one document."""


class DuplicateIdentifier(HeaderError):
    """Two documents in the corpus declare the same identifier."""

    default_category = ErrorCategory.VALIDATION


class CorpusError(SiteError):
    """One or more documents failed to parse; the build cannot continue.

    Carries every underlying ``HeaderError`` so a failed build names each
    offending document and field at once.
    """

    default_category = ErrorCategory.PARSE

    def __init__(self, errors: list[HeaderError], **kwargs: Any):
        self.errors = list(errors)
        noun = "document" if len(self.errors) == 1 else "documents"
        lines = [f"{len(self.errors)} {noun} failed to parse:"]
        lines.extend(f"  - {error}" for error in self.errors)
        super().__init__("\n".join(lines), **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["errors"] = [error.to_dict() for error in self.errors]
        return result


# =============================================================================
# RENDERING / PUBLISHING STAGES
# =============================================================================


class RenderError(SiteError):
    """A single document's page could not be rendered."""

    default_category = ErrorCategory.RENDER


class AssetNotFound(RenderError):
    """A document embeds an asset (image, figure) that does not exist."""


class PublishError(SiteError):
    """Output could not be staged or swapped into place."""

    default_category = ErrorCategory.PUBLISH


class ConfigError(SiteError):
    """Configuration file or values are invalid."""

    default_category = ErrorCategory.CONFIG


class BuildCancelled(SiteError):
    """The build was cancelled between stages; nothing was published."""

    default_category = ErrorCategory.BUILD


class BuildInProgress(SiteError):
    """``build()`` was called while the same builder was already running."""

    default_category = ErrorCategory.BUILD


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SiteError",
    "HeaderError",
    "MalformedHeader",
    "DuplicateField",
    "DuplicateIdentifier",
    "CorpusError",
    "RenderError",
    "AssetNotFound",
    "PublishError",
    "ConfigError",
    "BuildCancelled",
    "BuildInProgress",
]
