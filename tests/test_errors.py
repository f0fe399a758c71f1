"""Tests for proposal_site.errors — typed hierarchy and serialization."""

from proposal_site.errors import (
    AssetNotFound,
    CorpusError,
    DuplicateField,
    DuplicateIdentifier,
    ErrorCategory,
    HeaderError,
    MalformedHeader,
    RenderError,
    SiteError,
)


class TestSiteError:
    """Base error behavior."""

    def test_default_category(self):
        assert SiteError("boom").category is ErrorCategory.INTERNAL
        assert RenderError("boom").category is ErrorCategory.RENDER
        assert AssetNotFound("boom").category is ErrorCategory.RENDER

    def test_with_context_sets_known_fields_and_metadata(self):
        error = SiteError("boom").with_context(document="pep-0001.rst", attempt=2)
        assert error.context.document == "pep-0001.rst"
        assert error.context.metadata == {"attempt": 2}
        assert error.to_dict()["context"] == {"document": "pep-0001.rst", "attempt": 2}

    def test_cause_is_chained(self):
        cause = ValueError("bad")
        error = SiteError("boom", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "bad"

    def test_repr(self):
        assert repr(RenderError("x")) == "RenderError('x', category=RENDER)"


class TestHeaderErrors:
    """Header errors name the document and field."""

    def test_str_includes_document_and_field(self):
        error = MalformedHeader("missing required field 'Status'", document="pep-0007.rst", field="status")
        assert str(error) == "pep-0007.rst: status: missing required field 'Status'"
        assert error.category is ErrorCategory.PARSE

    def test_hierarchy(self):
        for cls in (MalformedHeader, DuplicateField, DuplicateIdentifier):
            assert issubclass(cls, HeaderError)
        assert DuplicateIdentifier("x", document="d").category is ErrorCategory.VALIDATION

    def test_corpus_error_lists_every_document(self):
        errors = [
            MalformedHeader("missing", document="a.rst", field="status"),
            DuplicateField("twice", document="b.rst", field="title"),
        ]
        error = CorpusError(errors)
        assert error.errors == errors
        assert "2 documents failed to parse" in error.message
        assert "a.rst: status: missing" in error.message
        data = error.to_dict()
        assert [e["context"]["field"] for e in data["errors"]] == ["status", "title"]
