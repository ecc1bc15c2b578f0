"""Base class for site-specific content extractors."""

from abc import ABC, abstractmethod

from bs4 import BeautifulSoup, Tag

from catalog_crawler.errors import ParseError
from catalog_crawler.models import PageRecord
from catalog_crawler.utils.url_utils import make_absolute


class BaseContentExtractor(ABC):
    """Turn rendered page HTML into a normalized :class:`PageRecord`.

    Each site gets its own subclass. A leaf page carries product content; any
    other page is a category page whose ``discovered_links`` are followed.
    """

    name: str = ""
    description: str = ""
    link_marker: str = ""
    wait_selector: str | None = None
    click_selector: str | None = None

    def __init__(self, link_marker: str | None = None):
        if link_marker is not None:
            self.link_marker = link_marker

    @abstractmethod
    def extract(self, html: str, url: str) -> PageRecord:
        """Extract a page record from ``html`` fetched from ``url``."""
        ...

    @staticmethod
    def _parse(html: str, url: str) -> BeautifulSoup:
        if not html or not html.strip():
            raise ParseError(f"Empty document for {url}")
        return BeautifulSoup(html, "lxml")

    def _discover_links(self, soup: BeautifulSoup, url: str) -> tuple[str, ...]:
        """Absolute URLs of anchors containing ``link_marker``, in document order."""
        links: list[str] = []
        seen: set[str] = set()
        for a in soup.find_all("a", href=True):
            href = a["href"].strip()
            if not href or href.startswith(("mailto:", "tel:", "javascript:", "#")):
                continue
            absolute = make_absolute(url, href)
            if self.link_marker and self.link_marker not in absolute:
                continue
            if absolute not in seen:
                seen.add(absolute)
                links.append(absolute)
        return tuple(links)

    @staticmethod
    def _text(element: Tag | None) -> str:
        if element is None:
            return ""
        return " ".join(element.get_text(" ", strip=True).split())
