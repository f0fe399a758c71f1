"""Tests for proposal_site.parser.header — metadata parsing and serialization."""

from datetime import date

import pytest

from proposal_site.errors import CorpusError, DuplicateField, DuplicateIdentifier, MalformedHeader
from proposal_site.models import Author, DocumentType, Status
from proposal_site.parser.header import (
    format_document,
    format_header,
    load_corpus,
    parse_authors,
    parse_document,
    parse_file,
)

SAMPLE = """\
PEP: 8
Title: Style Guide for Python Code
Author: Guido van Rossum <guido@python.org>, Barry Warsaw <barry@python.org>
Status: Active
Type: Process
Created: 05-Jul-2001
Post-History: 05-Jul-2001, 01-Aug-2013

Introduction
============

Body text.
"""


# =============================================================================
# Parsing
# =============================================================================


class TestParseDocument:
    """Valid headers become typed Document records."""

    def test_required_fields(self):
        doc = parse_document(SAMPLE)
        assert doc.number == 8
        assert doc.title == "Style Guide for Python Code"
        assert doc.status is Status.ACTIVE
        assert doc.type is DocumentType.PROCESS
        assert doc.created == date(2001, 7, 5)

    def test_authors_in_order(self):
        doc = parse_document(SAMPLE)
        assert doc.authors == (
            Author("Guido van Rossum", "guido@python.org"),
            Author("Barry Warsaw", "barry@python.org"),
        )

    def test_body_follows_first_blank_line(self):
        doc = parse_document(SAMPLE)
        assert doc.body == "Introduction\n============\n\nBody text.\n"

    def test_unknown_fields_kept_in_extra(self):
        doc = parse_document(SAMPLE)
        assert doc.extra == (("Post-History", "05-Jul-2001, 01-Aug-2013"),)

    def test_keys_are_case_insensitive_and_unordered(self):
        text = (
            "created: 2020-03-01\n"
            "TYPE: informational\n"
            "status: draft\n"
            "title: Lowercase\n"
            "pep: 12\n"
        )
        doc = parse_document(text)
        assert doc.number == 12
        assert doc.status is Status.DRAFT
        assert doc.type is DocumentType.INFORMATIONAL
        assert doc.created == date(2020, 3, 1)

    def test_continuation_lines_fold_into_previous_value(self):
        text = (
            "PEP: 3\n"
            "Title: A title that\n"
            "   spans two lines\n"
            "Status: Final\n"
            "Type: Process\n"
            "Created: 01-Jan-2001\n"
        )
        assert parse_document(text).title == "A title that spans two lines"

    def test_link_fields_are_integer_tuples(self, make_text):
        doc = parse_document(make_text(10, requires="1, 8", replaces="4", superseded_by="12, 12"))
        assert doc.requires == (1, 8)
        assert doc.replaces == (4,)
        assert doc.superseded_by == (12,)
        assert list(doc.header_links()) == [
            ("requires", 1), ("requires", 8), ("replaces", 4), ("superseded-by", 12),
        ]

    def test_header_only_document_has_empty_body(self, make_text):
        assert parse_document(make_text(5)).body == ""

    def test_leading_blank_lines_and_bom_tolerated(self, make_text):
        doc = parse_document("\ufeff\n\n" + make_text(5))
        assert doc.number == 5

    def test_path_is_not_part_of_equality(self, make_text, tmp_path):
        path = tmp_path / "pep-0005.rst"
        path.write_text(make_text(5))
        assert parse_file(path) == parse_document(make_text(5))


class TestParseAuthors:
    """Author header forms."""

    def test_name_email(self):
        assert parse_authors("Tim Peters <tim@example.org>") == (Author("Tim Peters", "tim@example.org"),)

    def test_legacy_email_name(self):
        assert parse_authors("tim@example.org (Tim Peters)") == (Author("Tim Peters", "tim@example.org"),)

    def test_bare_names_and_duplicates(self):
        assert parse_authors("Alice, Bob, Alice") == (Author("Alice"), Author("Bob"))

    def test_commas_inside_brackets_do_not_split(self):
        authors = parse_authors("core@example.org (Core, Docs) , Carol <carol@example.org>")
        assert [a.name for a in authors] == ["Core, Docs", "Carol"]

    def test_comma_in_name_without_email_is_rejected(self):
        with pytest.raises(MalformedHeader) as excinfo:
            parse_authors("Team (Core, Docs)", source="pep-0009.rst")
        assert excinfo.value.field == "author"
        assert excinfo.value.document == "pep-0009.rst"


# =============================================================================
# Errors
# =============================================================================


class TestHeaderErrors:
    """Malformed headers name the document and field."""

    def test_missing_status(self, make_text):
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(make_text(7, omit=("status",)), source="pep-0007.rst")
        assert excinfo.value.document == "pep-0007.rst"
        assert excinfo.value.field == "status"
        assert "status" in str(excinfo.value).lower()

    @pytest.mark.parametrize("field", ["pep", "title", "type", "created"])
    def test_missing_required_field(self, make_text, field):
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(make_text(7, omit=(field,)))
        assert excinfo.value.field == field

    def test_empty_required_field(self):
        text = "PEP: 7\nTitle:\nStatus: Draft\nType: Process\nCreated: 01-Jan-2001\n"
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(text)
        assert excinfo.value.field == "title"

    def test_unknown_status(self, make_text):
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(make_text(7, status="Pending"))
        assert excinfo.value.field == "status"

    def test_unknown_type(self, make_text):
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(make_text(7, doc_type="Tutorial"))
        assert excinfo.value.field == "type"

    def test_bad_date(self, make_text):
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(make_text(7, created="yesterday"))
        assert excinfo.value.field == "created"

    def test_non_numeric_identifier(self, make_text):
        text = make_text(7).replace("PEP: 7", "PEP: seven")
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(text)
        assert excinfo.value.field == "pep"

    def test_non_numeric_requires(self, make_text):
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(make_text(7, requires="8, abc"))
        assert excinfo.value.field == "requires"

    def test_non_decimal_digits_in_identifier(self, make_text):
        text = make_text(7).replace("PEP: 7", "PEP: ²")
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(text)
        assert excinfo.value.field == "pep"

    def test_non_decimal_digits_in_requires(self, make_text):
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(make_text(7, requires="²"))
        assert excinfo.value.field == "requires"

    def test_duplicate_field_is_case_insensitive(self, make_text):
        text = make_text(7).replace("Status: Draft", "Status: Draft\nSTATUS: Final")
        with pytest.raises(DuplicateField) as excinfo:
            parse_document(text)
        assert excinfo.value.field == "status"

    def test_line_without_colon(self, make_text):
        text = make_text(7).replace("Status: Draft", "Status Draft")
        with pytest.raises(MalformedHeader) as excinfo:
            parse_document(text)
        assert excinfo.value.field is None

    def test_empty_text(self):
        with pytest.raises(MalformedHeader):
            parse_document("\n\n")

    def test_file_name_must_match_identifier(self, make_text, tmp_path):
        path = tmp_path / "pep-0009.rst"
        path.write_text(make_text(8))
        with pytest.raises(MalformedHeader) as excinfo:
            parse_file(path)
        assert excinfo.value.field == "pep"
        assert excinfo.value.document == str(path)


# =============================================================================
# Serialization
# =============================================================================


class TestRoundTrip:
    """parse -> format -> parse yields an identical Document."""

    @pytest.mark.parametrize("text", [
        SAMPLE,
        "PEP: 3\nTitle: Folded\n  title\nStatus: final\nType: standards  track\nCreated: 2001-01-01\n",
        (
            "PEP: 484\nTitle: Type Hints\n"
            "Author: guido@python.org (Guido van Rossum), Jukka <jukka@example.org>\n"
            "Status: Final\nType: Standards Track\nCreated: 29-Sep-2014\n"
            "Requires: 3107\nReplaces: 1, 2\nSuperseded-By: 9999\n"
            "Discussions-To: https://mail.python.org/\nPost-History:\n"
            "\n\n\nRationale\n=========\n\nSee :pep:`3107`.\n\n\n"
        ),
        (
            "PEP: 9\nTitle: Suffixed names\n"
            "Author: jr@example.org (John Smith, Jr.), Ann <ann@example.org>\n"
            "Status: Draft\nType: Process\nCreated: 01-Jan-2020\n"
        ),
    ])
    def test_round_trip(self, text):
        doc = parse_document(text)
        assert parse_document(format_document(doc)) == doc

    def test_format_is_canonical_and_stable(self):
        doc = parse_document(SAMPLE)
        once = format_document(doc)
        assert format_document(parse_document(once)) == once

    def test_comma_names_use_legacy_author_form(self, make_text):
        doc = parse_document(make_text(1, author="jr@example.org (John Smith, Jr.)"))
        author_line = next(line for line in format_header(doc).splitlines() if line.startswith("Author:"))
        assert author_line.split(":", 1)[1].strip() == "jr@example.org (John Smith, Jr.)"
        assert parse_document(format_document(doc)).authors == (
            Author("John Smith, Jr.", "jr@example.org"),
        )

    def test_header_uses_canonical_field_order(self):
        header = format_header(parse_document(
            "Created: 05-Jul-2001\nType: Process\nStatus: Active\nTitle: T\nPEP: 8\n"
        ))
        keys = [line.split(":")[0] for line in header.splitlines()]
        assert keys == ["PEP", "Title", "Status", "Type", "Created"]


# =============================================================================
# Corpus loading
# =============================================================================


class TestLoadCorpus:
    """Parallel parsing of a directory into a Corpus."""

    def test_loads_fixture_corpus(self, source_dir):
        corpus = load_corpus(source_dir, ["pep-*.rst"])
        assert corpus.numbers == (1, 8, 20)
        assert corpus[1].path == source_dir / "pep-0001.rst"

    def test_collects_every_header_error(self, write_document):
        write_document(1)
        write_document(2, omit=("status",))
        write_document(3, created="never")
        source = write_document(1).parent

        with pytest.raises(CorpusError) as excinfo:
            load_corpus(source, ["pep-*.rst"])

        errors = excinfo.value.errors
        assert [(type(e), e.field) for e in errors] == [
            (MalformedHeader, "status"),
            (MalformedHeader, "created"),
        ]
        assert errors[0].document.endswith("pep-0002.rst")

    def test_duplicate_identifier_across_files(self, write_document, make_text):
        path = write_document(1)
        (path.parent / "pep-0001.txt").write_text(make_text(1, title="Again"))

        with pytest.raises(CorpusError) as excinfo:
            load_corpus(path.parent, ["pep-*.rst", "pep-*.txt"])

        assert isinstance(excinfo.value.errors[0], DuplicateIdentifier)
        assert excinfo.value.errors[0].field == "pep"

    def test_empty_directory_gives_empty_corpus(self, empty_source_dir):
        assert len(load_corpus(empty_source_dir, ["pep-*.rst"])) == 0
