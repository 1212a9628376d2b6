"""Citation Order Tracker Module - First-use numbering of ``^key`` citations."""

from typing import Dict, Iterable, Iterator, List, Optional, Set

from loguru import logger

from .metadata import MetadataTable, UnitMetadata
from .pattern_extractor import analyze_citations, find_bibliography
from .units import DocumentUnit, markdown_units


class CitationMap:
    """
    Citation keys in first-use order across the document.

    ``order`` is duplicate-free; a key's number is its position plus one.
    """

    def __init__(self, order: Optional[Iterable[str]] = None):
        self.order: List[str] = []
        self._positions: Dict[str, int] = {}
        if order is not None:
            self.reset(order)

    def reset(self, order: Iterable[str]) -> None:
        self.order = []
        self._positions = {}
        for key in order:
            if key not in self._positions:
                self.order.append(key)
                self._positions[key] = len(self.order)

    def get(self, key: str) -> Optional[int]:
        return self._positions.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._positions

    def __len__(self) -> int:
        return len(self.order)

    def __iter__(self) -> Iterator[str]:
        return iter(self.order)

    def as_dict(self) -> Dict[str, int]:
        return dict(self._positions)

    def clear(self) -> None:
        self.order = []
        self._positions = {}

    def __repr__(self) -> str:
        return f"CitationMap({self.order!r})"


def _scan_unit(unit: DocumentUnit) -> UnitMetadata:
    text = unit.get_text()
    is_bib, src = find_bibliography(text)
    return UnitMetadata(
        citations_referenced=analyze_citations(text),
        is_bibliography_unit=is_bib,
        bibliography_source=src,
    )


def _document_order(units: List[DocumentUnit], table: MetadataTable) -> List[str]:
    order: List[str] = []
    for unit in units:
        meta = table.get(unit.uid)
        if meta:
            order.extend(meta.citations_referenced)
    return order


def scan_citations(units: Iterable[DocumentUnit], table: MetadataTable) -> CitationMap:
    """Scan every Markdown unit for citations, storing per-unit metadata."""
    units = markdown_units(units)
    for unit in units:
        table.set_citations(unit.uid, _scan_unit(unit))

    citation_map = CitationMap(_document_order(units, table))
    logger.info(f"Citation scan complete: {len(citation_map)} distinct citations")
    return citation_map


def update_citation_map(
    edited: DocumentUnit,
    all_units: List[DocumentUnit],
    table: MetadataTable,
    citation_map: CitationMap,
) -> Set[str]:
    """
    Refresh ``citation_map`` in place after ``edited`` changed.

    Citations share one flat enumeration, so the order is rebuilt from every
    unit's stored citations rather than patched.

    Returns:
        Keys that vanished, appeared, or moved to a different number.
    """
    previous = table.get(edited.uid)
    old_cites = previous.citations_referenced if previous else []
    new_meta = table.set_citations(edited.uid, _scan_unit(edited))
    new_cites = new_meta.citations_referenced

    if old_cites == new_cites:
        return set()

    # Keys dropped from the edited unit are reported even if cited elsewhere
    new_set = set(new_cites)
    changed = {key for key in old_cites if key not in new_set}

    old_positions = citation_map.as_dict()
    citation_map.reset(_document_order(markdown_units(all_units), table))

    for key in citation_map:
        if old_positions.get(key) != citation_map.get(key):
            changed.add(key)

    logger.debug(f"Citations changed in unit {edited.uid}: {sorted(changed)}")
    return changed


__all__ = ['CitationMap', 'scan_citations', 'update_citation_map']
