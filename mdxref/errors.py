"""Errors raised by bibliography source loading.

Label and citation processing never raise for malformed markup; problems
there render in-band as warning markers. Only the I/O-bound bibliography
path raises, and only the caller of that path needs to handle it.
"""


class BibliographySourceError(Exception):
    """Base class for failures loading an external bibliography."""

    def __init__(self, message: str, src: str = ""):
        super().__init__(message)
        self.src = src


class BibliographyFetchError(BibliographySourceError):
    """A remote bibliography responded with a non-success status."""


class BibliographyNotFoundError(BibliographySourceError, FileNotFoundError):
    """A local bibliography file could not be located."""


__all__ = [
    'BibliographySourceError',
    'BibliographyFetchError',
    'BibliographyNotFoundError',
]
