"""Bibliography Source Module - Loads .bib files and decides when to reload.

A source is either a remote URL (any ``scheme://`` prefix) fetched with
``requests``, or a local path resolved against the document's directory.
After the first full load, a refresh only issues a metadata probe (HTTP
HEAD, or a file stat) and reloads when the freshness token moved.
"""

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import requests
from loguru import logger

from .bibtex_handler import BibTeXEntry, BibTeXParser
from .config import config
from .errors import BibliographyFetchError, BibliographyNotFoundError

REMOTE_PATTERN = re.compile(r'^[a-z][a-z0-9+.\-]*://', re.IGNORECASE)


@dataclass
class BibInfo:
    """Parsed entries of one source plus the freshness tokens of that load."""
    src: str = ''
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    entries: Dict[str, BibTeXEntry] = field(default_factory=dict)


@dataclass
class LoadedText:
    """Raw source text as fetched or read."""
    content: str
    etag: Optional[str] = None
    last_modified: Optional[str] = None


def is_remote(src: str) -> bool:
    return bool(REMOTE_PATTERN.match(src))


class BibliographySource:
    """Fetches, probes and parses bibliography sources."""

    def __init__(
        self,
        base_dir: Union[str, Path, None] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        """
        Args:
            base_dir: Directory that relative local sources resolve against
            session: HTTP session; a fresh one is created when omitted
            timeout: Request timeout in seconds (default from config)
            user_agent: User-Agent header (default from config)
        """
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.session = session or requests.Session()
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.session.headers.update({'User-Agent': user_agent or config.USER_AGENT})
        self.parser = BibTeXParser()

        # One refresh at a time per source
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, src: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(src, threading.Lock())

    def resolve_path(self, src: str) -> Path:
        path = Path(src).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def _request(self, method: str, src: str) -> requests.Response:
        try:
            response = self.session.request(method, src, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            raise BibliographyFetchError(
                f"Could not fetch bibliography at {src}: {method} request failed: {e}", src
            ) from e

        if not response.ok:
            raise BibliographyFetchError(
                f"Could not fetch bibliography at {src}: {method} request failed with "
                f"{response.status_code} {response.reason}",
                src,
            )
        return response

    def _stat_local(self, src: str) -> Tuple[Path, str]:
        path = self.resolve_path(src)
        if not path.is_file():
            raise BibliographyNotFoundError(f"Bibliography file not found: {path}", src)
        mtime = path.stat().st_mtime
        return path, datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()

    def fetch(self, src: str) -> LoadedText:
        """Full read of a source's text and freshness tokens."""
        if is_remote(src):
            logger.bind(bib_src=src).info(f"Fetching bibliography: {src}")
            response = self._request('GET', src)
            return LoadedText(
                content=response.text,
                etag=response.headers.get('ETag'),
                last_modified=response.headers.get('Last-Modified'),
            )

        path, last_modified = self._stat_local(src)
        logger.bind(bib_src=src).info(f"Reading bibliography: {path}")
        try:
            content = path.read_text(encoding='utf-8')
        except UnicodeDecodeError:
            content = path.read_text(encoding='latin-1')
        return LoadedText(content=content, last_modified=last_modified)

    def probe(self, src: str) -> Tuple[Optional[str], Optional[str]]:
        """Metadata-only check. Returns (etag, last_modified)."""
        if is_remote(src):
            response = self._request('HEAD', src)
            return response.headers.get('ETag'), response.headers.get('Last-Modified')

        _, last_modified = self._stat_local(src)
        return None, last_modified

    # ------------------------------------------------------------------
    # Cache decisions
    # ------------------------------------------------------------------

    def load(self, src: str) -> BibInfo:
        loaded = self.fetch(src)
        entries = self.parser.parse_entries(loaded.content)
        logger.bind(bib_src=src).info(f"Loaded {len(entries)} bibliography entries from {src}")
        return BibInfo(
            src=src,
            etag=loaded.etag,
            last_modified=loaded.last_modified,
            entries=entries,
        )

    @staticmethod
    def is_stale(cached: BibInfo, etag: Optional[str], last_modified: Optional[str]) -> bool:
        """Compare probe tokens to the cached ones, entity tag first."""
        if cached.etag and etag:
            return etag != cached.etag
        return last_modified != cached.last_modified

    def refresh(self, src: str, cached: BibInfo) -> Tuple[BibInfo, bool]:
        """
        Bring ``cached`` up to date with ``src``.

        A different source always reloads. Otherwise a metadata probe decides,
        and content is only re-read when the freshness token changed. Probe
        and fetch failures propagate; ``cached`` is never modified.

        Returns:
            (info, changed) where ``info`` is ``cached`` itself when unchanged
        """
        with self._lock_for(src):
            if src != cached.src:
                return self.load(src), True

            etag, last_modified = self.probe(src)
            if not self.is_stale(cached, etag, last_modified):
                logger.bind(bib_src=src).debug(f"Bibliography unchanged: {src}")
                return cached, False

            logger.bind(bib_src=src).info(f"Bibliography changed, reloading: {src}")
            return self.load(src), True


class BibliographyCache:
    """
    Loaded bibliographies of one document, one entry per source.

    ``current`` names the source the document's bibliography block points
    at; switching back to a source seen before only probes it.
    """

    def __init__(self, source: BibliographySource):
        self.source = source
        self.current: Optional[str] = None
        self._infos: Dict[str, BibInfo] = {}

    @property
    def info(self) -> BibInfo:
        if self.current is None:
            return BibInfo()
        return self._infos.get(self.current, BibInfo())

    @property
    def entries(self) -> Dict[str, BibTeXEntry]:
        return self.info.entries

    def update(self, src: str) -> bool:
        """Refresh ``src`` and make it current. Returns True if what is shown changes."""
        cached = self._infos.get(src, BibInfo())
        info, changed = self.source.refresh(src, cached)
        self._infos[src] = info
        switched = src != self.current
        self.current = src
        return changed or switched

    def clear(self) -> None:
        self._infos.clear()
        self.current = None


__all__ = [
    'BibInfo',
    'LoadedText',
    'BibliographySource',
    'BibliographyCache',
    'is_remote',
]
