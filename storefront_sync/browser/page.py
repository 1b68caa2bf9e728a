"""
Page Snapshot

An immutable view of a loaded page: final URL, rendered HTML and the
platform globals captured from the page's JavaScript context. Extraction
code works on snapshots only, never on a live browser page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from ..extraction.parsers.analytics_data import AnalyticsDataParser


@dataclass(frozen=True)
class PageSnapshot:
    """Rendered page state handed to the classifier and the dispatcher."""
    url: str
    html: str
    globals: Dict[str, Any] = field(default_factory=dict)
    _soup: Optional[BeautifulSoup] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_html(cls, url: str, html: str) -> "PageSnapshot":
        """Build a snapshot with globals recovered from inline scripts."""
        return cls(url=url, html=html, globals=AnalyticsDataParser().parse(html))

    @property
    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            # parsed lazily, once; the only field set after construction
            object.__setattr__(self, "_soup", BeautifulSoup(self.html or "", "lxml"))
        return self._soup

    @property
    def origin(self) -> str:
        parsed = urlparse(self.url)
        return f"{parsed.scheme}://{parsed.netloc}"

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"
