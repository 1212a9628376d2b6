"""Label Registry Module - Label numbering per enumeration namespace."""

from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from loguru import logger

from .labels import LabelKey, LabelLike, as_key
from .metadata import MetadataTable
from .pattern_extractor import analyze_labels
from .units import DocumentUnit, markdown_units


class LabelRegistry:
    """
    Maps each label to its 1-based number within its enumeration.

    Within one enumeration, numbers are dense and follow definition order
    through the document; a repeated definition keeps the first number.
    """

    def __init__(self):
        self._numbers: Dict[LabelKey, int] = {}

    def get(self, label: LabelLike) -> Optional[int]:
        return self._numbers.get(as_key(label))

    def __contains__(self, label: LabelLike) -> bool:
        return as_key(label) in self._numbers

    def __len__(self) -> int:
        return len(self._numbers)

    def __iter__(self) -> Iterator[LabelKey]:
        return iter(self._numbers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LabelRegistry):
            return NotImplemented
        return self._numbers == other._numbers

    def set(self, label: LabelLike, n: int) -> None:
        self._numbers[as_key(label)] = n

    def delete(self, label: LabelLike) -> None:
        self._numbers.pop(as_key(label), None)

    def clear(self) -> None:
        self._numbers.clear()

    def items(self) -> List[Tuple[LabelKey, int]]:
        return list(self._numbers.items())

    def namespace(self, name: Optional[str]) -> Dict[str, int]:
        """Numbers of one enumeration, keyed by canonical label string."""
        return {str(k): n for k, n in self._numbers.items() if k.namespace == name}

    def as_dict(self) -> Dict[str, int]:
        return {str(k): n for k, n in self._numbers.items()}

    def __repr__(self) -> str:
        return f"LabelRegistry({self.as_dict()!r})"


def scan_all(units: Iterable[DocumentUnit],
             table: MetadataTable) -> Tuple[LabelRegistry, Set[LabelKey]]:
    """
    Number every label in the document from scratch.

    Stores each unit's label metadata in ``table``. Used when a document is
    opened and after units are inserted, removed or reordered.

    Returns:
        (registry, duplicate labels across the whole document)
    """
    counters: Dict[Optional[str], int] = {}
    registry = LabelRegistry()
    duplicates: Set[LabelKey] = set()

    for unit in markdown_units(units):
        meta = table.set_labels(unit.uid, analyze_labels(unit.get_text()))
        duplicates.update(meta.duplicate_labels)

        for key in meta.labels_defined:
            if key in registry:
                duplicates.add(key)
                continue
            n = counters.get(key.namespace, 0) + 1
            counters[key.namespace] = n
            registry.set(key, n)

    logger.info(f"Label scan complete: {len(registry)} labels, {len(duplicates)} duplicates")
    return registry, duplicates


__all__ = ['LabelRegistry', 'scan_all']
