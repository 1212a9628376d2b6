"""BibTeX Handler Module.

Turns raw .bib text into entries keyed by citation key. Covers the
common grammar (braced, quoted and bare-number field values, nested
braces); @string macros and concatenation are not expanded.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List

from loguru import logger


@dataclass
class BibTeXEntry:
    """A single BibTeX entry."""
    entry_type: str  # article, book, inproceedings, etc.
    cite_key: str
    fields: Dict[str, str] = field(default_factory=dict)

    def get(self, name: str, default: str = '') -> str:
        return self.fields.get(name.lower(), default)

    @property
    def title(self) -> str:
        return self.get('title')

    @property
    def authors(self) -> List[str]:
        """Parse author field into list of names."""
        author_str = self.get('author')
        if not author_str:
            return []
        # BibTeX uses "and" to separate authors
        return [a.strip() for a in re.split(r'\s+and\s+', author_str) if a.strip()]

    @property
    def year(self) -> str:
        return self.get('year')


class BibTeXParser:
    """Parser for BibTeX text."""

    # Pattern to match entry start
    ENTRY_PATTERN = re.compile(r'@(\w+)\s*\{\s*([^,\s]+)\s*,', re.IGNORECASE)

    # Pattern to match field: braced, quoted, or a bare number
    FIELD_PATTERN = re.compile(
        r'(\w+)\s*=\s*(?:\{([^{}]*(?:\{[^{}]*\}[^{}]*)*)\}|"([^"]*)"|(\d+))'
    )

    # Entry types that are not references
    SKIPPED_TYPES = {'comment', 'string', 'preamble'}

    def parse_string(self, content: str) -> List[BibTeXEntry]:
        """
        Parse BibTeX content from a string.

        Args:
            content: BibTeX content string

        Returns:
            List of BibTeXEntry objects, in file order
        """
        entries = []

        entry_starts = list(self.ENTRY_PATTERN.finditer(content))

        for i, match in enumerate(entry_starts):
            entry_type = match.group(1).lower()
            if entry_type in self.SKIPPED_TYPES:
                continue
            cite_key = match.group(2).strip()

            # Entry content runs to the next entry, or the end
            start = match.end()
            if i + 1 < len(entry_starts):
                end = entry_starts[i + 1].start()
            else:
                end = len(content)

            entry_content = content[start:end]

            # Find closing brace (accounting for nested braces)
            brace_count = 1
            actual_end = len(entry_content)
            for j, char in enumerate(entry_content):
                if char == '{':
                    brace_count += 1
                elif char == '}':
                    brace_count -= 1
                    if brace_count == 0:
                        actual_end = j
                        break

            fields = self._parse_fields(entry_content[:actual_end])

            entries.append(BibTeXEntry(
                entry_type=entry_type,
                cite_key=cite_key,
                fields=fields
            ))

        logger.debug(f"Parsed {len(entries)} BibTeX entries")
        return entries

    def parse_entries(self, content: str) -> Dict[str, BibTeXEntry]:
        """Parse content into a mapping of citation key to entry."""
        return {entry.cite_key: entry for entry in self.parse_string(content)}

    def _parse_fields(self, content: str) -> Dict[str, str]:
        """Parse fields from entry content."""
        fields = {}

        for match in self.FIELD_PATTERN.finditer(content):
            key = match.group(1).lower()
            # Value can be in braces (2), quotes (3) or a bare number (4)
            value = match.group(2) or match.group(3) or match.group(4) or ""

            value = self._clean_value(value)

            if value:
                fields[key] = value

        return fields

    def _clean_value(self, value: str) -> str:
        """Clean up a BibTeX field value."""
        value = value.strip()

        # Remove LaTeX commands for special chars
        value = re.sub(r'\\[\'"`^~=.uvHtcdb]\{?(\w)\}?', r'\1', value)

        # Remove remaining braces used for case protection
        value = re.sub(r'\{([^{}]*)\}', r'\1', value)

        # Clean up whitespace
        value = ' '.join(value.split())

        return value


__all__ = ['BibTeXEntry', 'BibTeXParser']
