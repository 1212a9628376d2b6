#!/usr/bin/env python3
"""
mdx render - Number cross-references and citations in a notebook or Markdown file.

Usage:
    python mdx_render.py analysis.ipynb
    python mdx_render.py paper.md --separator "<!-- cell -->" -o paper.rendered.md
    python mdx_render.py analysis.ipynb --labels
    python mdx_render.py analysis.ipynb --no-bib

Markup:
    @id, @name:id   label definition (renders as its number)
    #id, #name:id   label reference
    ^key            citation, numbered by first use
    ::: bibliography / src: refs.bib / :::   reference list placeholder
"""

import sys
import argparse
import json
from pathlib import Path
from typing import List

from rich.console import Console
from rich.table import Table
from loguru import logger

from mdxref.config import config, VERSION
from mdxref.errors import BibliographySourceError
from mdxref.logging_setup import init_from_config
from mdxref.state import DocumentState
from mdxref.units import DocumentUnit, units_from_markdown, units_from_notebook

console = Console(stderr=True)


def load_units(path: Path, separator: str) -> List[DocumentUnit]:
    """Read a document into units."""
    content = path.read_text(encoding='utf-8')
    if path.suffix == '.ipynb':
        return units_from_notebook(json.loads(content))
    return units_from_markdown(content, separator)


def render_document(state: DocumentState, units: List[DocumentUnit], load_bib: bool = True) -> str:
    """Scan, optionally load the bibliography, and render every Markdown unit."""
    state.scan(units)

    if load_bib:
        try:
            state.refresh_bibliography(units)
        except BibliographySourceError as e:
            # Already logged; numbering does not depend on the bibliography
            console.print(f"[red]Bibliography not loaded: {e}[/red]")

    rendered = [state.render(unit) for unit in units if unit.is_markdown]
    return '\n\n'.join(rendered)


def display_state(state: DocumentState) -> None:
    """Print the label registry and citation order as tables."""
    labels = Table(title="Labels")
    labels.add_column("Label", style="cyan")
    labels.add_column("Enumeration")
    labels.add_column("Number", justify="right", style="green")
    for key, n in state.registry.items():
        labels.add_row(str(key), key.namespace or "(global)", str(n))
    for key in sorted(state.duplicates, key=str):
        labels.add_row(str(key), key.namespace or "(global)", "[red]duplicate[/red]")
    console.print(labels)

    citations = Table(title="Citations")
    citations.add_column("#", justify="right", style="green")
    citations.add_column("Key", style="cyan")
    citations.add_column("Entry")
    entries = state.bibliography.entries
    for n, key in enumerate(state.citations, 1):
        entry = entries.get(key)
        citations.add_row(str(n), key, entry.title if entry else "[yellow]missing[/yellow]")
    console.print(citations)


def main():
    parser = argparse.ArgumentParser(
        description="Number labels, references and citations in notebook Markdown",
        epilog=f"mdxref {VERSION}"
    )
    parser.add_argument('input', help='Notebook (.ipynb) or Markdown file')
    parser.add_argument('--output', '-o', help='Output file (default: stdout)')
    parser.add_argument('--separator', default='<!-- cell -->',
                        help='Line that separates units in a Markdown file')
    parser.add_argument('--labels', action='store_true',
                        help='Print the label and citation tables instead of rendering')
    parser.add_argument('--no-bib', dest='no_bib', action='store_true',
                        help='Do not load the bibliography source')
    parser.add_argument('--link-citations', dest='link_citations', action='store_true',
                        help='Render citations as links into the reference list')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')

    args = parser.parse_args()

    init_from_config(verbose=args.verbose)

    input_path = Path(args.input)
    if not input_path.exists():
        console.print(f"[red]Error: File not found: {args.input}[/red]")
        sys.exit(1)

    if args.link_citations:
        config.LINK_CITATIONS = True

    units = load_units(input_path, args.separator)
    logger.info(f"Loaded {len(units)} units from {input_path}")
    state = DocumentState(base_dir=input_path.resolve().parent)
    output_text = render_document(state, units, load_bib=not args.no_bib)

    if args.labels:
        display_state(state)
        sys.exit(0)

    if args.output:
        Path(args.output).write_text(output_text, encoding='utf-8')
        console.print(f"[green]Output written to: {args.output}[/green]")
    else:
        print(output_text)

    if state.duplicates:
        console.print(f"[yellow]Duplicate labels: {', '.join(sorted(map(str, state.duplicates)))}[/yellow]")


if __name__ == "__main__":
    main()
