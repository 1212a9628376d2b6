"""Per-unit metadata and the side-table that owns it."""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Set

from .labels import LabelKey


@dataclass
class UnitMetadata:
    """What one scan of a unit's text found."""
    # Ordered: definition order decides numbering
    labels_defined: List[LabelKey] = field(default_factory=list)
    labels_referenced: Set[LabelKey] = field(default_factory=set)
    # Labels defined more than once within this unit
    duplicate_labels: Set[LabelKey] = field(default_factory=set)
    # Ordered by first use
    citations_referenced: List[str] = field(default_factory=list)
    is_bibliography_unit: bool = False
    bibliography_source: Optional[str] = None

    def mentions_label(self, key: LabelKey) -> bool:
        return key in self.labels_referenced or key in self.labels_defined


class MetadataTable:
    """
    Maps unit uid to the UnitMetadata of its last scan.

    Label and citation fields are stored separately so that each
    incremental update compares against its own previous scan.
    """

    def __init__(self):
        self._entries: Dict[str, UnitMetadata] = {}

    def get(self, uid: str) -> Optional[UnitMetadata]:
        return self._entries.get(uid)

    def __contains__(self, uid: str) -> bool:
        return uid in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def set_labels(self, uid: str, scanned: UnitMetadata) -> UnitMetadata:
        """Replace the label fields of ``uid`` with those of ``scanned``."""
        current = self._entries.get(uid) or UnitMetadata()
        updated = replace(
            current,
            labels_defined=list(scanned.labels_defined),
            labels_referenced=set(scanned.labels_referenced),
            duplicate_labels=set(scanned.duplicate_labels),
        )
        self._entries[uid] = updated
        return updated

    def set_citations(self, uid: str, scanned: UnitMetadata) -> UnitMetadata:
        """Replace the citation and bibliography fields of ``uid``."""
        current = self._entries.get(uid) or UnitMetadata()
        updated = replace(
            current,
            citations_referenced=list(scanned.citations_referenced),
            is_bibliography_unit=scanned.is_bibliography_unit,
            bibliography_source=scanned.bibliography_source,
        )
        self._entries[uid] = updated
        return updated

    def clear(self) -> None:
        self._entries.clear()


__all__ = ['UnitMetadata', 'MetadataTable']
