"""Text Rewriter Module - Replaces label, reference and citation markup with display text.

Rewriting is a pure function of the text and the current numbering, so it
must only run once the registry and citation map are final for an edit.
Math, HTML comments and link destinations pass through untouched.
"""

import re
from dataclasses import dataclass, field
from typing import AbstractSet, List, Optional, Tuple

from loguru import logger

from .citation_tracker import CitationMap
from .config import config
from .label_registry import LabelRegistry
from .labels import LabelKey, duplicate_marker, format_label, to_id, undefined_marker
from .pattern_extractor import (
    CITATION_PATTERN,
    LABEL_OR_REFERENCE_PATTERN,
    apply_outside_protected,
)


@dataclass
class RewriteResult:
    """Result of rewriting one unit."""
    original_text: str
    modified_text: str
    replacements_made: int
    replacement_log: List[Tuple[str, str]] = field(default_factory=list)


class TextRewriter:
    """Replaces ``@label``, ``#label`` and ``^key`` markup with numbers."""

    def __init__(
        self,
        registry: Optional[LabelRegistry] = None,
        duplicates: Optional[AbstractSet[LabelKey]] = None,
        citation_map: Optional[CitationMap] = None,
        taggable_names: Optional[AbstractSet[str]] = None,
        link_citations: Optional[bool] = None,
        anchor_prefix: Optional[str] = None,
    ):
        self.registry = registry if registry is not None else LabelRegistry()
        self.duplicates = duplicates if duplicates is not None else set()
        self.citation_map = citation_map if citation_map is not None else CitationMap()
        self.taggable_names = frozenset(
            n.lower() for n in (taggable_names if taggable_names is not None else config.TAGGABLE_NAMES)
        )
        self.link_citations = config.LINK_CITATIONS if link_citations is None else link_citations
        self.anchor_prefix = config.CITATION_ANCHOR_PREFIX if anchor_prefix is None else anchor_prefix
        self.replacement_log: List[Tuple[str, str]] = []

    def _replace_label(self, match: re.Match) -> str:
        sym, enum_name, id_ = match.group(1), match.group(2), match.group(3)
        name = enum_name[:-1] if enum_name else None
        key = LabelKey.parse(to_id(name, id_))
        n = self.registry.get(key)

        if key in self.duplicates:
            replacement = duplicate_marker(key)
        elif n is None:
            replacement = undefined_marker(key)
        else:
            # Definitions bare, references parenthesized when taggable
            replacement = format_label(key.name, n, self.taggable_names, raw=(sym == '@'))

        self.replacement_log.append((match.group(0), replacement))
        return replacement

    def _replace_citation(self, match: re.Match) -> str:
        key = match.group(1)
        n = self.citation_map.get(key)
        if n is None:
            replacement = "[?]"
        elif self.link_citations:
            replacement = f"[[{n}]](#{self.anchor_prefix}{key})"
        else:
            replacement = f"[{n}]"

        self.replacement_log.append((match.group(0), replacement))
        return replacement

    def rewrite_labels(self, text: str) -> str:
        return apply_outside_protected(
            text, lambda t: LABEL_OR_REFERENCE_PATTERN.sub(self._replace_label, t)
        )

    def rewrite_citations(self, text: str) -> str:
        return apply_outside_protected(
            text, lambda t: CITATION_PATTERN.sub(self._replace_citation, t)
        )

    def rewrite(self, text: str) -> str:
        """Rewrite labels, then citations. Returns the display text."""
        return self.replace_all(text).modified_text

    def replace_all(self, text: str) -> RewriteResult:
        self.replacement_log = []

        def transform(hidden: str) -> str:
            # Labels first: a citation link target holds a '#'
            hidden = LABEL_OR_REFERENCE_PATTERN.sub(self._replace_label, hidden)
            return CITATION_PATTERN.sub(self._replace_citation, hidden)

        modified = apply_outside_protected(text, transform)
        if self.replacement_log:
            logger.debug(f"Rewrote {len(self.replacement_log)} marks")

        return RewriteResult(
            original_text=text,
            modified_text=modified,
            replacements_made=len(self.replacement_log),
            replacement_log=self.replacement_log,
        )


def rewrite_labels(text: str, registry: LabelRegistry, duplicates: AbstractSet[LabelKey],
                   taggable_names: Optional[AbstractSet[str]] = None) -> str:
    """Replace ``@``/``#`` label markup in ``text``."""
    return TextRewriter(registry, duplicates, taggable_names=taggable_names).rewrite_labels(text)


def rewrite_citations(text: str, citation_map: CitationMap,
                      link_citations: bool = False) -> str:
    """Replace ``^key`` citations in ``text`` with ``[n]`` or ``[?]``."""
    return TextRewriter(citation_map=citation_map,
                        link_citations=link_citations).rewrite_citations(text)


__all__ = ['RewriteResult', 'TextRewriter', 'rewrite_labels', 'rewrite_citations']
