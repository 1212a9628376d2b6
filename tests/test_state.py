"""
Tests for per-document state: scanning, edits, rendering and bibliography refresh.
"""

import os

import pytest
from loguru import logger
from unittest.mock import Mock

from mdxref.bib_source import BibliographySource
from mdxref.config import Config
from mdxref.errors import BibliographyFetchError
from mdxref.labels import LabelKey
from mdxref.state import DocumentState, EditResult
from mdxref.units import DocumentUnit, UnitKind


SAMPLE_BIB = """
@article{smith2020,
  author = {John Smith},
  title = {An Example Article},
  year = {2020}
}
"""


def make_settings(**overrides):
    settings = Config()
    settings.TAGGABLE_NAMES = frozenset({"eq"})
    settings.LINK_CITATIONS = False
    settings.CITATION_ANCHOR_PREFIX = "cite-"
    for key, value in overrides.items():
        setattr(settings, key, value)
    return settings


class TestDocumentState:
    """Test cases for the end-to-end flow on a local bibliography."""

    def setup_method(self):
        self.units = [
            DocumentUnit(text="As shown by ^smith2020 in #eq:one"),
            DocumentUnit(text="$$ x = 1 $$ @eq:one"),
            DocumentUnit(text="print('^not a citation')", kind=UnitKind.CODE),
            DocumentUnit(text="::: bibliography\nsrc: refs.bib\n:::"),
        ]

    def make_state(self, tmp_path, **overrides):
        bib = tmp_path / "refs.bib"
        bib.write_text(SAMPLE_BIB, encoding="utf-8")
        os.utime(bib, (1_700_000_000, 1_700_000_000))
        state = DocumentState(base_dir=tmp_path, settings=make_settings(**overrides))
        state.scan(self.units)
        return state

    def test_render_flow(self, tmp_path):
        state = self.make_state(tmp_path)

        assert state.refresh_bibliography(self.units)
        assert state.render(self.units[0]) == "As shown by [1] in (1)"
        assert state.render(self.units[1]) == "$$ x = 1 $$ 1"
        assert state.render(self.units[2]) == "print('^not a citation')"
        assert state.render(self.units[3]) == "1. John Smith. 2020. An Example Article. (2020)."

    def test_second_refresh_unchanged(self, tmp_path):
        state = self.make_state(tmp_path)
        state.refresh_bibliography(self.units)

        assert not state.refresh_bibliography(self.units)

    def test_linked_citations_and_anchors(self, tmp_path):
        state = self.make_state(tmp_path, LINK_CITATIONS=True)
        state.refresh_bibliography(self.units)

        assert state.render(self.units[0]) == "As shown by [[1]](#cite-smith2020) in (1)"
        assert state.render(self.units[3]).startswith('1. <a id="cite-smith2020"></a>')

    def test_bibliography_unit(self, tmp_path):
        state = self.make_state(tmp_path)

        assert state.bibliography_unit(self.units) is self.units[3]

    def test_block_without_src(self, tmp_path):
        self.units[3].set_text("::: bibliography\n:::")
        state = self.make_state(tmp_path)

        assert not state.refresh_bibliography(self.units)
        assert state.bibliography.current is None

    def test_no_bibliography_unit(self, tmp_path):
        state = self.make_state(tmp_path)
        units = self.units[:3]
        state.scan(units)

        assert not state.refresh_bibliography(units)

    def test_code_unit_edit_ignored(self, tmp_path):
        state = self.make_state(tmp_path)
        self.units[2].set_text("@eq:zero = 1")

        assert state.on_edit(self.units[2], self.units).is_empty

    def test_close_drops_state(self, tmp_path):
        state = self.make_state(tmp_path)
        state.refresh_bibliography(self.units)
        state.close()

        assert len(state.registry) == 0
        assert len(state.citations) == 0
        assert len(state.metadata) == 0
        assert state.bibliography.entries == {}


class TestOnEdit:
    """Test cases for incremental edits and re-render targeting."""

    def setup_method(self):
        self.units = [
            DocumentUnit(text="See #fig:a and ^x"),
            DocumentUnit(text="@fig:a"),
            DocumentUnit(text="@fig:b ^y"),
            DocumentUnit(text="No references here"),
            DocumentUnit(text="::: bibliography\nsrc: refs.bib\n:::"),
        ]
        self.state = DocumentState(settings=make_settings(), source=Mock())
        self.state.scan(self.units)

    def edit(self, index, text):
        self.units[index].set_text(text)
        return self.state.on_edit(self.units[index], self.units)

    def test_insert_label(self):
        result = self.edit(1, "@fig:c @fig:a")

        assert result.changed_labels == {
            LabelKey("fig", "a"), LabelKey("fig", "b"), LabelKey("fig", "c"),
        }
        assert self.state.registry.as_dict() == {"fig:c": 1, "fig:a": 2, "fig:b": 3}

        affected = self.state.affected_units(self.units, result)
        assert affected == self.units[:3]

    def test_text_only_edit(self):
        result = self.edit(3, "Still no references")

        assert result.is_empty
        assert self.state.affected_units(self.units, result) == []

    def test_citation_edit_touches_bibliography(self):
        result = self.edit(3, "Now citing ^z and ^x")

        assert result.changed_citations == {"z"}
        affected = self.state.affected_units(self.units, result)
        assert affected == [self.units[3], self.units[4]]

    def test_reordering_citations(self):
        result = self.edit(0, "See #fig:a and ^y ^x")

        assert result.changed_citations == {"x", "y"}
        affected = self.state.affected_units(self.units, result)
        assert affected == [self.units[0], self.units[2], self.units[4]]

    def test_bibliography_change_touches_only_bibliography(self):
        affected = self.state.affected_units(self.units, EditResult(), bib_changed=True)

        assert affected == [self.units[4]]

    def test_duplicate_flagged(self):
        result = self.edit(2, "@fig:b @fig:a ^y")

        assert result.duplicate_labels == {LabelKey("fig", "a")}
        assert self.state.duplicates == {LabelKey("fig", "a")}
        assert self.state.render(self.units[0]) == "See ⚠️ {duplicate: fig:a} and [1]"

    def test_resolved_duplicate_rerenders_references(self):
        """A label that stops being a duplicate re-renders the units referencing it."""
        units = [DocumentUnit(text="@a and again @a"), DocumentUnit(text="see #a")]
        state = DocumentState(settings=make_settings(), source=Mock())
        state.scan(units)
        assert state.render(units[1]) == "see ⚠️ {duplicate: a}"

        units[0].set_text("@a")
        result = state.on_edit(units[0], units)

        assert LabelKey(None, "a") in result.changed_labels
        assert state.affected_units(units, result) == units
        assert state.render(units[1]) == "see 1"

    def test_new_duplicate_rerenders_references(self):
        """A label that becomes a duplicate re-renders the units referencing it."""
        units = [DocumentUnit(text="@a"), DocumentUnit(text="see #a")]
        state = DocumentState(settings=make_settings(), source=Mock())
        state.scan(units)

        units[0].set_text("@a @a")
        result = state.on_edit(units[0], units)

        assert state.affected_units(units, result) == units
        assert state.render(units[1]) == "see ⚠️ {duplicate: a}"

    def test_state_matches_rescan(self):
        edits = [
            (1, "@fig:c @fig:a"),
            (3, "^z @fig:d"),
            (0, "@fig:a ^y ^x"),
            (2, "#fig:a"),
        ]
        for index, text in edits:
            self.edit(index, text)

        fresh = DocumentState(settings=make_settings(), source=Mock())
        fresh.scan(self.units)

        assert self.state.registry == fresh.registry
        assert self.state.duplicates == fresh.duplicates
        assert self.state.citations.order == fresh.citations.order


class TestBibliographyFailure:
    """A failing bibliography source leaves numbering intact."""

    def test_fetch_error_propagates(self):
        session = Mock()
        response = Mock(ok=False, status_code=404, reason="Not Found", headers={})
        session.request.return_value = response
        units = [
            DocumentUnit(text="@intro ^k"),
            DocumentUnit(text="::: bibliography\nsrc: https://example.com/refs.bib\n:::"),
        ]
        state = DocumentState(
            source=BibliographySource(session=session),
            settings=make_settings(),
        )
        state.scan(units)

        with pytest.raises(BibliographyFetchError, match="404 Not Found"):
            state.refresh_bibliography(units)

        assert state.render(units[0]) == "1 [1]"
        assert state.render(units[1]) == "1. **[?]** Missing entry for `k`"

    def test_fetch_error_logged_with_source(self):
        session = Mock()
        session.request.return_value = Mock(ok=False, status_code=404, reason="Not Found", headers={})
        src = "https://example.com/refs.bib"
        units = [DocumentUnit(text=f"::: bibliography\nsrc: {src}\n:::")]
        state = DocumentState(source=BibliographySource(session=session), settings=make_settings())
        state.scan(units)

        records = []
        handler_id = logger.add(lambda message: records.append(message.record), level="ERROR")
        try:
            with pytest.raises(BibliographyFetchError):
                state.refresh_bibliography(units)
        finally:
            logger.remove(handler_id)

        assert len(records) == 1
        assert records[0]["extra"]["bib_src"] == src
        assert "404 Not Found" in records[0]["message"]
