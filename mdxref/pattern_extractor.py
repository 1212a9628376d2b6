"""Pattern Extractor Module - Finds labels, references and citations in unit text.

Markup grammar:
- ``@name:id`` / ``@id``  label definition
- ``#name:id`` / ``#id``  label reference
- ``^key``                citation

Math spans, HTML comments and Markdown link destinations are shielded
before matching, so ``^``, ``@`` and ``#`` inside them are never markup.
"""

import re
from typing import Callable, List, Optional, Tuple

from loguru import logger

from .labels import LabelKey, to_id
from .metadata import UnitMetadata


# Comments, $$...$$, $...$ (no internal $), \[...\], and ](link destinations)
PROTECTED_SPAN_PATTERN = re.compile(
    r'(<!--[\s\S]*?-->|\${2}[\s\S]+?\${2}|\$[^$]+\$|\\\[[\s\S]+?\\\]|\]\([^)]*\))'
)

# Match labels: @eq:foo or @foo
LABEL_PATTERN = re.compile(r'@([A-Za-z]+:)?([A-Za-z0-9:_\-]+)')

# Match references: #eq:foo or #foo
REFERENCE_PATTERN = re.compile(r'#([A-Za-z]+:)?([A-Za-z0-9:_\-]+)')

# Labels and references together, for rewriting
LABEL_OR_REFERENCE_PATTERN = re.compile(r'([@#])([A-Za-z]+:)?([A-Za-z0-9:_\-]+)')

CITATION_PATTERN = re.compile(r'\^([A-Za-z0-9_\-]+)')

BIBLIOGRAPHY_OPENER_PATTERN = re.compile(r'^::: *bibliography', re.MULTILINE)
BIBLIOGRAPHY_CONTAINER_PATTERN = re.compile(
    r'^::: *bibliography[\s\S]*?^:::[ \t]*$', re.MULTILINE
)
BIBLIOGRAPHY_SRC_PATTERN = re.compile(r'^src:\s*(\S+)\s*$', re.MULTILINE)

_PLACEHOLDER = '\u0000P{}\u0000'
_PLACEHOLDER_PATTERN = re.compile('\u0000P(\\d+)\u0000')


def strip_protected(text: str) -> str:
    """Blank out math, comments and link destinations for matching."""
    # A space keeps the text either side from fusing into one token
    return PROTECTED_SPAN_PATTERN.sub(' ', text)


def apply_outside_protected(text: str, transform: Callable[[str], str]) -> str:
    """
    Run ``transform`` over ``text`` with protected spans held aside.

    Spans are swapped for placeholders, the remainder transformed, then the
    spans restored verbatim.
    """
    spans: List[str] = []

    def hide(match: re.Match) -> str:
        spans.append(match.group(0))
        return _PLACEHOLDER.format(len(spans) - 1)

    hidden = PROTECTED_SPAN_PATTERN.sub(hide, text)
    transformed = transform(hidden)
    return _PLACEHOLDER_PATTERN.sub(lambda m: spans[int(m.group(1))], transformed)


def _match_key(name_group: Optional[str], id_group: str) -> LabelKey:
    name = name_group[:-1] if name_group else None
    return LabelKey.parse(to_id(name, id_group))


def analyze_labels(text: str) -> UnitMetadata:
    """Find label definitions and references within one unit's text."""
    labels_defined = {}  # dict keeps first-seen order
    labels_referenced = set()
    duplicate_labels = set()

    source = strip_protected(text)

    for match in LABEL_PATTERN.finditer(source):
        key = _match_key(match.group(1), match.group(2))
        if key in labels_defined:
            duplicate_labels.add(key)
        labels_defined[key] = None

    for match in REFERENCE_PATTERN.finditer(source):
        labels_referenced.add(_match_key(match.group(1), match.group(2)))

    return UnitMetadata(
        labels_defined=list(labels_defined),
        labels_referenced=labels_referenced,
        duplicate_labels=duplicate_labels,
    )


def analyze_citations(text: str) -> List[str]:
    """Citation keys in first-use order, each once."""
    cites = {}
    for match in CITATION_PATTERN.finditer(strip_protected(text)):
        cites.setdefault(match.group(1), None)
    return list(cites)


def find_bibliography(text: str) -> Tuple[bool, Optional[str]]:
    """
    Detect a ``::: bibliography`` block.

    Returns:
        (is_bibliography_unit, source path or URL). The source is None when
        the block is unterminated or has no ``src:`` line.
    """
    if not BIBLIOGRAPHY_OPENER_PATTERN.search(text):
        return False, None

    container = BIBLIOGRAPHY_CONTAINER_PATTERN.search(text)
    if not container:
        logger.warning("Found ::: bibliography without a closing ::: line")
        return True, None

    src = BIBLIOGRAPHY_SRC_PATTERN.search(container.group(0))
    if not src:
        logger.warning("Found ::: bibliography but no src: line")
        return True, None

    return True, src.group(1)


def analyze_unit(text: str) -> UnitMetadata:
    """Full scan of one unit: labels, citations and bibliography block."""
    meta = analyze_labels(text)
    meta.citations_referenced = analyze_citations(text)
    meta.is_bibliography_unit, meta.bibliography_source = find_bibliography(text)
    logger.debug(
        f"Unit scan: {len(meta.labels_defined)} labels, "
        f"{len(meta.labels_referenced)} references, "
        f"{len(meta.citations_referenced)} citations"
    )
    return meta


__all__ = [
    'PROTECTED_SPAN_PATTERN',
    'LABEL_OR_REFERENCE_PATTERN',
    'CITATION_PATTERN',
    'BIBLIOGRAPHY_CONTAINER_PATTERN',
    'strip_protected',
    'apply_outside_protected',
    'analyze_labels',
    'analyze_citations',
    'find_bibliography',
    'analyze_unit',
]
