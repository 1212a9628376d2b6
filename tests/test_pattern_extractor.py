"""
Tests for the Pattern Extractor module.
"""

import pytest

from mdxref.labels import LabelKey
from mdxref.pattern_extractor import (
    analyze_citations,
    analyze_labels,
    analyze_unit,
    apply_outside_protected,
    find_bibliography,
    strip_protected,
)


class TestLabelExtraction:
    """Test cases for label definitions and references."""

    def test_finds_labels(self):
        """A bare @id defines a label in the global enumeration."""
        meta = analyze_labels("\n      @foo Foo\n      ")

        assert meta.labels_defined == [LabelKey(None, "foo")]
        assert len(meta.labels_referenced) == 0

    def test_finds_references(self):
        """#id is a reference, not a definition."""
        meta = analyze_labels("In section #bar we explain.")

        assert meta.labels_defined == []
        assert meta.labels_referenced == {LabelKey(None, "bar")}

    def test_referenced_and_defined(self):
        """A unit may both define and reference the same label."""
        meta = analyze_labels("In section #bar we explain.\n\n# Section @bar")

        assert meta.labels_defined == [LabelKey(None, "bar")]
        assert meta.labels_referenced == {LabelKey(None, "bar")}

    def test_named_enumeration(self):
        """A letters-only prefix before ':' names the enumeration."""
        meta = analyze_labels("Equation @eq:alpha and @fig:gamma")

        assert meta.labels_defined == [LabelKey("eq", "alpha"), LabelKey("fig", "gamma")]

    def test_id_may_contain_colons(self):
        """Only the first colon separates enumeration name from id."""
        meta = analyze_labels("see #eq:foo:bar")

        assert meta.labels_referenced == {LabelKey("eq", "foo:bar")}

    def test_definition_order_preserved(self):
        """labels_defined keeps first-occurrence order."""
        meta = analyze_labels("@b then @a then @c")

        assert [str(k) for k in meta.labels_defined] == ["b", "a", "c"]

    def test_intra_unit_duplicate(self):
        """A repeated definition is flagged but listed once."""
        meta = analyze_labels("@foo and again @foo")

        assert meta.labels_defined == [LabelKey(None, "foo")]
        assert meta.duplicate_labels == {LabelKey(None, "foo")}

    def test_repeated_references_not_duplicates(self):
        """References are never duplicate-tracked."""
        meta = analyze_labels("#foo #foo #foo")

        assert meta.labels_referenced == {LabelKey(None, "foo")}
        assert meta.duplicate_labels == set()

    def test_marker_without_identifier(self):
        """A lone @ or # is not markup."""
        meta = analyze_labels("mail me @ home, # of items")

        assert meta.labels_defined == []
        assert meta.labels_referenced == set()

    def test_case_sensitive(self):
        """Identifiers are case-sensitive."""
        meta = analyze_labels("@Foo @foo")

        assert len(meta.labels_defined) == 2

    def test_heading_markers_ignored(self):
        """Markdown heading hashes followed by a space are not references."""
        meta = analyze_labels("## @life. Life")

        assert meta.labels_defined == [LabelKey(None, "life")]
        assert meta.labels_referenced == set()

    def test_labels_inside_math_ignored(self):
        """Labels inside math spans are not definitions."""
        meta = analyze_labels("$$x \\tag{@eq:one}$$ and @eq:two")

        assert meta.labels_defined == [LabelKey("eq", "two")]

    def test_labels_inside_comments_ignored(self):
        """Labels inside HTML comments are not definitions."""
        meta = analyze_labels("<!-- @hidden #gone --> @shown")

        assert meta.labels_defined == [LabelKey(None, "shown")]
        assert meta.labels_referenced == set()


class TestCitationExtraction:
    """Test cases for ^key citations."""

    def test_simple_keys(self):
        """Finds keys in first-use order."""
        assert analyze_citations("See ^foo and ^bar.") == ["foo", "bar"]

    def test_repeats_listed_once(self):
        assert analyze_citations("^a ^b ^a") == ["a", "b"]

    @pytest.mark.parametrize("text", [
        "$x^foo$ and ^qux",
        "$$x^foo$$ and ^qux",
        "\\[ x^foo \\] and ^qux",
        "<!-- ^foo --> and ^qux",
        "$$\nx^foo\n$$\n^qux",
    ])
    def test_ignores_protected_spans(self, text):
        """^ inside math or comments is never a citation."""
        assert analyze_citations(text) == ["qux"]

    def test_inline_math_exponents(self):
        """Exponents in inline math do not leak out."""
        cites = analyze_citations("$x^2 + y^b$ and ^qux")

        assert "2" not in cites
        assert "b" not in cites
        assert cites == ["qux"]


class TestProtectedSpans:
    """Test cases for math/comment shielding."""

    def test_strip_keeps_tokens_apart(self):
        """Stripping a span does not fuse the text around it."""
        assert analyze_citations("^ab$x$cd") == ["ab"]
        assert "$" not in strip_protected("a $x$ b")

    def test_apply_outside_restores_spans(self):
        """Spans come back verbatim after the transform."""
        text = "C $C$ <!-- C --> C"
        result = apply_outside_protected(text, lambda t: t.replace("C", "x"))

        assert result == "x $C$ <!-- C --> x"

    def test_link_destination_protected(self):
        """Anchors in link targets are not references."""
        meta = analyze_labels("[see](#details) and #real")

        assert meta.labels_referenced == {LabelKey(None, "real")}


class TestBibliographyBlock:
    """Test cases for ::: bibliography detection."""

    def test_block_with_src(self):
        text = "::: bibliography\nsrc: refs/a.bib\n:::"
        assert find_bibliography(text) == (True, "refs/a.bib")

    def test_block_with_url(self):
        text = "Intro\n\n::: bibliography\nsrc: https://example.com/a.bib\n:::\n"
        assert find_bibliography(text) == (True, "https://example.com/a.bib")

    def test_block_without_src(self):
        """A block with no src: line is a bibliography unit with no source."""
        assert find_bibliography("::: bibliography\n:::") == (True, None)

    def test_no_block(self):
        assert find_bibliography("Just text") == (False, None)

    def test_analyze_unit_combines_scans(self):
        meta = analyze_unit("@fig:a cites ^x\n::: bibliography\nsrc: r.bib\n:::")

        assert meta.labels_defined == [LabelKey("fig", "a")]
        assert meta.citations_referenced == ["x"]
        assert meta.is_bibliography_unit
        assert meta.bibliography_source == "r.bib"
