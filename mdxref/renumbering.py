"""Incremental Renumbering Module - Renumbers labels after a single unit edit.

Work is bounded to the enumerations the edit touches, and numbers are only
written from the edited unit onward, yet the result always matches what a
full ``scan_all`` of the edited document would produce.
"""

from typing import Dict, List, Optional, Set, Tuple

from loguru import logger

from .label_registry import LabelRegistry
from .labels import LabelKey
from .metadata import MetadataTable
from .pattern_extractor import analyze_labels
from .units import DocumentUnit, markdown_units


def labels_equal_ordered(a: List[LabelKey], b: List[LabelKey]) -> bool:
    """Same labels in the same order."""
    return len(a) == len(b) and all(x == y for x, y in zip(a, b))


def update_on_edit(
    edited: DocumentUnit,
    all_units: List[DocumentUnit],
    table: MetadataTable,
    registry: LabelRegistry,
    document_duplicates: Optional[Set[LabelKey]] = None,
) -> Tuple[Set[LabelKey], Set[LabelKey]]:
    """
    Update ``registry`` in place after ``edited`` changed.

    Args:
        edited: The unit whose text changed; must be one of ``all_units``
        all_units: Every unit of the document, in document order
        table: Metadata side-table holding the pre-edit scan of each unit
        registry: Label numbers before the edit
        document_duplicates: The document-wide duplicate set, if kept; its
            entries in the affected enumerations are replaced in place

    Returns:
        (changed_labels, duplicate_labels). ``changed_labels`` holds labels
        whose number changed, appeared, or vanished, plus (when
        ``document_duplicates`` is given) labels that became or stopped
        being duplicates. ``duplicate_labels``
        holds the duplicates found within the affected enumerations only.
    """
    scanned = analyze_labels(edited.get_text())
    previous = table.get(edited.uid)
    old_labels = previous.labels_defined if previous else []
    old_duplicates = previous.duplicate_labels if previous else set()

    table.set_labels(edited.uid, scanned)
    new_labels = scanned.labels_defined

    # References alone never move numbers
    if labels_equal_ordered(old_labels, new_labels) and old_duplicates == scanned.duplicate_labels:
        return set(), set()

    new_set = set(new_labels)
    removed = {key for key in old_labels if key not in new_set}
    for key in removed:
        registry.delete(key)

    affected = {key.namespace for key in old_labels}
    affected.update(key.namespace for key in new_labels)
    logger.debug(
        f"Labels changed in unit {edited.uid}; "
        f"renumbering {sorted(str(ns) for ns in affected)}"
    )

    changed, duplicates = renumber_downstream(registry, edited, all_units, table, affected)

    if document_duplicates is not None:
        previous_duplicates = {k for k in document_duplicates if k.namespace in affected}
        document_duplicates.difference_update(previous_duplicates)
        document_duplicates.update(duplicates)
        # Keys that stopped or started being duplicates render differently
        changed.update(previous_duplicates ^ duplicates)

    # Dangling references must re-render as undefined
    changed.update(removed)
    return changed, duplicates


def renumber_downstream(
    registry: LabelRegistry,
    from_unit: DocumentUnit,
    all_units: List[DocumentUnit],
    table: MetadataTable,
    affected: Set[Optional[str]],
) -> Tuple[Set[LabelKey], Set[LabelKey]]:
    """Recount ``affected`` enumerations, writing numbers from ``from_unit`` on."""
    units = markdown_units(all_units)
    start = next((i for i, u in enumerate(units) if u is from_unit), None)
    if start is None:
        raise ValueError(f"Unit {from_unit.uid} is not a Markdown unit of this document")

    counters: Dict[Optional[str], int] = {}
    changed: Set[LabelKey] = set()
    seen: Set[LabelKey] = set()
    duplicates: Set[LabelKey] = set()

    # Upstream numbers are final; walk them to prime the counters
    for unit in units[:start]:
        meta = table.get(unit.uid)
        if not meta:
            continue
        duplicates.update(k for k in meta.duplicate_labels if k.namespace in affected)

        for key in meta.labels_defined:
            if key.namespace not in affected:
                continue
            if key in seen:
                duplicates.add(key)
                continue
            seen.add(key)
            n = counters.get(key.namespace, 0) + 1
            counters[key.namespace] = n
            # A key just deleted from the edited unit may still be defined here
            if key not in registry:
                registry.set(key, n)
                changed.add(key)

    # Renumber from the edited unit onward
    for unit in units[start:]:
        meta = table.get(unit.uid)
        if not meta:
            continue
        duplicates.update(k for k in meta.duplicate_labels if k.namespace in affected)

        for key in meta.labels_defined:
            if key.namespace not in affected:
                continue
            if key in seen:
                duplicates.add(key)
                continue
            seen.add(key)
            n = counters.get(key.namespace, 0) + 1
            counters[key.namespace] = n
            if registry.get(key) != n:
                registry.set(key, n)
                changed.add(key)

    return changed, duplicates


__all__ = ['update_on_edit', 'renumber_downstream', 'labels_equal_ordered']
