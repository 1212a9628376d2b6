"""Document Units Module - Ordered text blocks owned by the host document."""

import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List


class UnitKind(Enum):
    """Kinds of document unit. Only Markdown units carry cross-references."""
    MARKDOWN = "markdown"
    CODE = "code"
    OTHER = "other"


@dataclass(eq=False)
class DocumentUnit:
    """
    One block of a document (a notebook cell in a notebook).

    Identity is stable across edits: two units are equal only if they are
    the same object, and ``uid`` keys the metadata side-table.
    """
    text: str = ""
    kind: UnitKind = UnitKind.MARKDOWN
    uid: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def is_markdown(self) -> bool:
        return self.kind is UnitKind.MARKDOWN

    def get_text(self) -> str:
        return self.text

    def set_text(self, text: str) -> None:
        self.text = text


def markdown_units(units: Iterable[DocumentUnit]) -> List[DocumentUnit]:
    """Filter to the Markdown units, keeping document order."""
    return [u for u in units if u.is_markdown]


def units_from_notebook(notebook: Dict[str, Any]) -> List[DocumentUnit]:
    """
    Build units from parsed .ipynb JSON.

    Cell sources may be a string or a list of lines, as nbformat allows.
    """
    units = []
    for cell in notebook.get('cells', []):
        source = cell.get('source', '')
        if isinstance(source, list):
            source = ''.join(source)
        cell_type = cell.get('cell_type', '')
        if cell_type == 'markdown':
            kind = UnitKind.MARKDOWN
        elif cell_type == 'code':
            kind = UnitKind.CODE
        else:
            kind = UnitKind.OTHER
        units.append(DocumentUnit(
            text=source,
            kind=kind,
            uid=str(cell.get('id') or uuid.uuid4().hex),
        ))
    return units


def units_from_markdown(content: str, separator: str = "<!-- cell -->") -> List[DocumentUnit]:
    """Split a Markdown file into units on lines holding only ``separator``."""
    pattern = re.compile(r'^[ \t]*' + re.escape(separator) + r'[ \t]*$', re.MULTILINE)
    parts = pattern.split(content)
    return [DocumentUnit(text=part.strip('\n')) for part in parts]


__all__ = [
    'UnitKind',
    'DocumentUnit',
    'markdown_units',
    'units_from_notebook',
    'units_from_markdown',
]
