"""Per-document cross-reference state.

One ``DocumentState`` exists per open document and is passed to, or owns,
every operation on it; nothing is kept in module globals. The host calls
``scan`` on open and after units are added, removed or moved, ``on_edit``
after a unit's text changes, ``refresh_bibliography`` when the
bibliography should be (re)loaded, and ``render`` for each unit listed by
``affected_units``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set, Union

from loguru import logger

from .bib_source import BibliographyCache, BibliographySource
from .bibliography import generate_bibliography
from .citation_tracker import CitationMap, scan_citations, update_citation_map
from .config import Config, config as default_config
from .errors import BibliographySourceError
from .label_registry import LabelRegistry, scan_all
from .labels import LabelKey
from .metadata import MetadataTable
from .renumbering import update_on_edit
from .text_rewriter import TextRewriter
from .units import DocumentUnit, markdown_units


@dataclass
class EditResult:
    """What an edit changed, for deciding which units to re-render."""
    changed_labels: Set[LabelKey] = field(default_factory=set)
    duplicate_labels: Set[LabelKey] = field(default_factory=set)
    changed_citations: Set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.changed_labels or self.duplicate_labels or self.changed_citations)


class DocumentState:
    """Label numbering, citation order and bibliography of one document."""

    def __init__(
        self,
        base_dir: Union[str, Path, None] = None,
        source: Optional[BibliographySource] = None,
        settings: Optional[Config] = None,
    ):
        """
        Args:
            base_dir: Directory of the document, for relative .bib paths
            source: Bibliography loader; built from ``base_dir`` when omitted
            settings: Configuration (default: the global config)
        """
        self.config = settings or default_config
        self.metadata = MetadataTable()
        self.registry = LabelRegistry()
        self.duplicates: Set[LabelKey] = set()
        self.citations = CitationMap()
        self.bibliography = BibliographyCache(source or BibliographySource(base_dir))

    def scan(self, units: List[DocumentUnit]) -> None:
        """Full rescan of labels and citations."""
        self.metadata.clear()
        self.registry, self.duplicates = scan_all(units, self.metadata)
        self.citations = scan_citations(units, self.metadata)

    def on_edit(self, unit: DocumentUnit, units: List[DocumentUnit]) -> EditResult:
        """Incrementally update numbering after ``unit``'s text changed."""
        if not unit.is_markdown:
            return EditResult()

        changed_labels, duplicate_labels = update_on_edit(
            unit, units, self.metadata, self.registry, self.duplicates
        )
        changed_citations = update_citation_map(unit, units, self.metadata, self.citations)

        result = EditResult(changed_labels, duplicate_labels, changed_citations)
        if not result.is_empty:
            logger.debug(
                f"Edit of {unit.uid}: {len(changed_labels)} labels, "
                f"{len(changed_citations)} citations changed"
            )
        return result

    def bibliography_unit(self, units: List[DocumentUnit]) -> Optional[DocumentUnit]:
        """The first unit holding a ``::: bibliography`` block."""
        for unit in markdown_units(units):
            meta = self.metadata.get(unit.uid)
            if meta and meta.is_bibliography_unit:
                return unit
        return None

    def refresh_bibliography(self, units: List[DocumentUnit]) -> bool:
        """
        Load or re-check the bibliography named by the bibliography block.

        Label and citation state is not touched, so a failure here leaves
        numbering intact.

        Returns:
            True if the reference list must be re-rendered

        Raises:
            BibliographySourceError: the source could not be fetched or found
        """
        unit = self.bibliography_unit(units)
        if unit is None:
            return False

        src = self.metadata.get(unit.uid).bibliography_source
        if not src:
            # Malformed block, already warned about while scanning
            return False

        try:
            return self.bibliography.update(src)
        except BibliographySourceError as e:
            logger.bind(bib_src=src).error(f"Bibliography refresh failed: {e}")
            raise

    def affected_units(
        self,
        units: List[DocumentUnit],
        result: EditResult,
        bib_changed: bool = False,
    ) -> List[DocumentUnit]:
        """Units whose rendering may differ after ``result``."""
        watched = result.changed_labels | result.duplicate_labels
        affected = []

        for unit in markdown_units(units):
            meta = self.metadata.get(unit.uid)
            if meta is None:
                continue

            if meta.is_bibliography_unit and (bib_changed or result.changed_citations):
                affected.append(unit)
            elif any(meta.mentions_label(key) for key in watched):
                affected.append(unit)
            elif any(key in result.changed_citations for key in meta.citations_referenced):
                affected.append(unit)

        return affected

    def rewriter(self) -> TextRewriter:
        return TextRewriter(
            registry=self.registry,
            duplicates=self.duplicates,
            citation_map=self.citations,
            taggable_names=self.config.TAGGABLE_NAMES,
            link_citations=self.config.LINK_CITATIONS,
            anchor_prefix=self.config.CITATION_ANCHOR_PREFIX,
        )

    def render_text(self, text: str, is_bibliography_unit: bool = False) -> str:
        """Display text for ``text`` under the current numbering."""
        rendered = self.rewriter().rewrite(text)
        if is_bibliography_unit:
            anchors = self.config.CITATION_ANCHOR_PREFIX if self.config.LINK_CITATIONS else None
            rendered = generate_bibliography(
                rendered, self.citations, self.bibliography.entries, anchors
            )
        return rendered

    def render(self, unit: DocumentUnit) -> str:
        if not unit.is_markdown:
            return unit.get_text()
        meta = self.metadata.get(unit.uid)
        return self.render_text(unit.get_text(), bool(meta and meta.is_bibliography_unit))

    def close(self) -> None:
        """Drop all state when the document closes."""
        self.metadata.clear()
        self.registry.clear()
        self.duplicates.clear()
        self.citations.clear()
        self.bibliography.clear()


__all__ = ['EditResult', 'DocumentState']
