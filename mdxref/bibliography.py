"""Reference list generation for the ``::: bibliography`` block."""

from typing import Dict, Optional

from loguru import logger

from .bibtex_handler import BibTeXEntry
from .citation_tracker import CitationMap
from .pattern_extractor import BIBLIOGRAPHY_CONTAINER_PATTERN


def format_acm(entry: BibTeXEntry) -> str:
    """Format one entry in a simple ACM-like style."""
    authors = ', '.join(entry.authors) + '.'
    year = entry.year
    title = f" {entry.title}." if entry.title else ''

    venue = entry.get('journal') or entry.get('booktitle')
    venue = f" *{venue}*" if venue else ''

    vol = f" **{entry.get('volume')}**" if entry.get('volume') else ''
    num = f", {entry.get('number')}" if entry.get('number') else ''

    if entry.get('month'):
        date = f" ({entry.get('month')} {year})"
    elif year:
        date = f" ({year})"
    else:
        date = ''

    pages = f", {entry.get('pages')}" if entry.get('pages') else ''
    doi = entry.get('doi')
    doi_link = f" [https://doi.org/{doi}](https://doi.org/{doi})" if doi else ''

    return f"{authors} {year}.{title}{venue}{vol}{num}{date}{pages}.{doi_link}"


def format_reference_list(
    citation_map: CitationMap,
    entries: Dict[str, BibTeXEntry],
    anchor_prefix: Optional[str] = None,
) -> str:
    """
    Numbered entries in first-use order, one paragraph each.

    With ``anchor_prefix`` set, each entry carries an ``<a id=...>`` target
    for linked citations.
    """
    lines = []
    for n, key in enumerate(citation_map, 1):
        anchor = f'<a id="{anchor_prefix}{key}"></a>' if anchor_prefix else ''
        entry = entries.get(key)
        if entry is None:
            lines.append(f"{n}. {anchor}**[?]** Missing entry for `{key}`")
        else:
            lines.append(f"{n}. {anchor}{format_acm(entry)}")
    return '\n\n'.join(lines)


def generate_bibliography(
    markdown: str,
    citation_map: CitationMap,
    entries: Dict[str, BibTeXEntry],
    anchor_prefix: Optional[str] = None,
) -> str:
    """Replace the first ``::: bibliography ... :::`` block with the reference list."""
    match = BIBLIOGRAPHY_CONTAINER_PATTERN.search(markdown)
    if not match:
        return markdown

    missing = [key for key in citation_map if key not in entries]
    if missing:
        logger.warning(f"{len(missing)} citations have no bibliography entry: {missing}")

    listing = format_reference_list(citation_map, entries, anchor_prefix)
    return markdown[:match.start()] + listing + markdown[match.end():]


__all__ = ['format_acm', 'format_reference_list', 'generate_bibliography']
