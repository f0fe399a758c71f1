"""Tests for proposal_site.parser.body — body blocks and inline markup."""

import textwrap

import pytest

from proposal_site.nodes import (
    Admonition,
    BlockQuote,
    Emphasis,
    Heading,
    Image,
    Link,
    ListBlock,
    Literal,
    LiteralBlock,
    Paragraph,
    ProposalRef,
    Role,
    Strong,
    Table,
    Text,
)
from proposal_site.parser.body import BodyParser, find_references, parse_inline


def parse(text: str):
    return BodyParser().parse(textwrap.dedent(text))


# =============================================================================
# Blocks
# =============================================================================


class TestBlocks:
    """Block-level constructs."""

    def test_heading_levels_follow_first_appearance(self):
        blocks = parse("""
            Title
            =====

            Section
            -------

            Other
            =====
        """)
        assert [(b.level, b.text) for b in blocks] == [(1, "Title"), (2, "Section"), (1, "Other")]

    def test_overlined_heading_is_its_own_style(self):
        blocks = parse("""
            =======
             Intro
            =======

            Part
            ====
        """)
        assert [(b.level, b.text) for b in blocks] == [(1, "Intro"), (2, "Part")]

    def test_heading_anchors_are_unique(self):
        blocks = parse("""
            Notes
            =====

            Notes
            =====
        """)
        assert [b.anchor for b in blocks] == ["notes", "notes-1"]

    def test_paragraph_lines_are_joined(self):
        (block,) = parse("""
            First line
            second line.
        """)
        assert block == Paragraph((Text("First line second line."),))

    def test_double_colon_introduces_literal_block(self):
        blocks = parse("""
            Example::

                x = 1
                y = 2
        """)
        assert blocks == (
            Paragraph((Text("Example:"),)),
            LiteralBlock("x = 1\ny = 2"),
        )

    def test_code_block_directive(self):
        (block,) = parse("""
            .. code-block:: python

               print("hi")
        """)
        assert block == LiteralBlock('print("hi")', language="python")

    def test_bullet_list(self):
        (block,) = parse("""
            - one
            - two
              continued
        """)
        assert isinstance(block, ListBlock)
        assert not block.ordered
        assert block.items == (
            (Paragraph((Text("one"),)),),
            (Paragraph((Text("two continued"),)),),
        )

    def test_enumerated_list(self):
        (block,) = parse("""
            1. first
            2. second
        """)
        assert block.ordered
        assert len(block.items) == 2

    def test_indented_text_is_block_quote(self):
        blocks = parse("""
            Para.

               Quoted text.
        """)
        assert blocks[1] == BlockQuote((Paragraph((Text("Quoted text."),)),))

    def test_admonition(self):
        (block,) = parse("""
            .. warning::

               Be careful.
        """)
        assert block == Admonition("warning", (Paragraph((Text("Be careful."),)),))
        assert block.title == "Warning"

    def test_image_and_figure(self):
        blocks = parse("""
            .. image:: diagram.png
               :alt: A diagram

            .. figure:: chart.svg

               The caption.
        """)
        assert blocks == (
            Image("diagram.png", alt="A diagram"),
            Image("chart.svg", caption=(Text("The caption."),)),
        )

    def test_comments_and_unknown_directives_skipped(self):
        blocks = parse("""
            .. this is a comment

            .. contents::
               :depth: 2

            Text.
        """)
        assert blocks == (Paragraph((Text("Text."),)),)

    def test_unknown_directive_keeps_its_content(self):
        (block,) = parse("""
            .. topic:: Summary

               Builds on PEP 8 heavily.
        """)
        assert block == Admonition("topic", (
            Paragraph((Text("Summary"),)),
            Paragraph((Text("Builds on "), ProposalRef(8, "PEP 8"), Text(" heavily."))),
        ))
        assert block.title == "Topic"
        assert [ref.number for ref in find_references(".. versionadded:: 3.8\n\n   See PEP 20.\n")] == [20]

    def test_content_free_unknown_directive_skipped(self):
        assert parse(".. sidebar::\n") == ()

    def test_simple_table_cells(self):
        (block,) = parse("""
            =====  ========
            A      B
            =====  ========
            one    PEP 8
            two    second
                   line
            =====  ========
        """)
        assert isinstance(block, Table)
        assert block.header_rows == 1
        assert block.rows == (
            ((Text("A"),), (Text("B"),)),
            ((Text("one"),), (ProposalRef(8, "PEP 8"),)),
            ((Text("two"),), (Text("second line"),)),
        )

    def test_grid_table_cells_carry_reference_markers(self):
        (block,) = parse("""
            +-------+--------------+
            | Key   | Value        |
            +=======+==============+
            | one   | :pep:`999`   |
            +-------+--------------+
        """)
        assert isinstance(block, Table)
        assert block.header_rows == 1
        assert block.rows[1] == ((Text("one"),), (ProposalRef(999, "PEP 999"),))

    def test_prose_starting_with_dots_is_paragraph(self):
        (block,) = parse("...and so on.")
        assert isinstance(block, Paragraph)


# =============================================================================
# Inline markup
# =============================================================================


class TestInline:
    """Inline constructs and reference markers."""

    def test_literal_emphasis_strong(self):
        assert parse_inline("``x`` *a* **b**") == (
            Literal("x"), Text(" "), Emphasis("a"), Text(" "), Strong("b"),
        )

    def test_named_link(self):
        assert parse_inline("`Python <https://python.org>`_") == (
            Link("Python", "https://python.org"),
        )

    def test_bare_url(self):
        assert parse_inline("See https://python.org.") == (
            Text("See "), Link("https://python.org", "https://python.org"), Text("."),
        )

    def test_generic_role(self):
        assert parse_inline(":func:`len`") == (Role("func", "len"),)

    @pytest.mark.parametrize("text, expected", [
        (":pep:`8`", ProposalRef(8, "PEP 8")),
        (":pep:`the style guide <8>`", ProposalRef(8, "the style guide")),
        (":pep:`8#naming`", ProposalRef(8, "PEP 8", "naming")),
        ("PEP 20", ProposalRef(20, "PEP 20")),
    ])
    def test_reference_markers(self, text, expected):
        assert parse_inline(text) == (expected,)

    def test_markers_inside_literals_are_not_references(self):
        assert find_references("Use ``PEP 8`` and `PEP 9`.") == []

    def test_non_decimal_role_target_is_plain_role(self):
        assert parse_inline(":pep:`²`") == (Role("pep", "²"),)

    def test_references_in_order_across_blocks(self):
        body = textwrap.dedent("""
            About PEP 3
            ===========

            See :pep:`8` and PEP 20.

            - item mentioning PEP 1

            ::

                PEP 999 in code
        """)
        assert [ref.number for ref in find_references(body)] == [3, 8, 20, 1]

    def test_heading_marker_keeps_heading_text(self):
        (heading,) = parse("""
            About PEP 3
            ===========
        """)
        assert isinstance(heading, Heading)
        assert heading.text == "About PEP 3"
