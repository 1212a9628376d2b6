"""mdxref - cross-references and citations for notebook Markdown"""

from .units import DocumentUnit, UnitKind, markdown_units
from .labels import LabelKey, format_label
from .metadata import UnitMetadata, MetadataTable
from .pattern_extractor import analyze_unit, analyze_labels, analyze_citations
from .label_registry import LabelRegistry, scan_all
from .renumbering import update_on_edit
from .citation_tracker import CitationMap, scan_citations, update_citation_map
from .text_rewriter import TextRewriter, RewriteResult
from .bibtex_handler import BibTeXEntry, BibTeXParser
from .bib_source import BibInfo, BibliographySource, BibliographyCache
from .bibliography import generate_bibliography
from .errors import BibliographySourceError, BibliographyFetchError, BibliographyNotFoundError
from .state import DocumentState, EditResult

__version__ = '0.4.0'
