"""Extractor for Enfold (Avia) WordPress product portfolios."""

import logging

from bs4 import BeautifulSoup

from catalog_crawler.extractor.base import BaseContentExtractor
from catalog_crawler.models import PageRecord

logger = logging.getLogger(__name__)


class EnfoldExtractor(BaseContentExtractor):
    """Product pages built from Avia icon boxes, special headings and data tables.

    A page is a product page when it has feature icon boxes together with a
    special heading, or at least one specification table. Anything else is a
    category page linking to ``/portfolio-item/`` entries.
    """

    name = "enfold"
    description = "Enfold/Avia WordPress theme product portfolios"
    link_marker = "/portfolio-item/"
    wait_selector = ".entry-content-wrapper"

    def extract(self, html: str, url: str) -> PageRecord:
        soup = self._parse(html, url)

        if soup.select_one(".entry-content-wrapper") is None:
            logger.debug("No content wrapper on %s", url)
            return PageRecord(url=url, is_leaf=False)

        iconboxes = soup.select(".iconbox_content_container")
        headings = soup.select(".av-special-heading-tag")
        tables = soup.select(".avia-data-table")

        if not ((iconboxes and headings) or tables):
            links = self._discover_links(soup, url)
            logger.debug("Category page %s with %d product links", url, len(links))
            return PageRecord(url=url, is_leaf=False, discovered_links=links)

        title = next(
            (
                text
                for text in (self._text(h) for h in headings)
                if text and "installation" not in text.lower()
            ),
            "",
        )
        features = self._features(iconboxes)
        specs = self._specifications(soup)

        return PageRecord(
            url=url,
            title=title,
            page_content=self._render(title, features, specs),
            is_leaf=True,
        )

    def _features(self, iconboxes) -> list[str]:
        features = []
        for el in iconboxes:
            box = el.find_parent(class_="iconbox_content")
            feature_title = self._text(box.select_one(".iconbox_content_title")) if box else ""
            text = self._text(el)
            feature = f"{feature_title}: {text}" if feature_title else text
            if feature:
                features.append(feature)
        return features

    def _specifications(self, soup: BeautifulSoup) -> list[str]:
        specs = []
        for row in soup.select(".avia-data-table tr"):
            cells = row.find_all(["td", "th"])
            if len(cells) >= 2:
                specs.append(f"{self._text(cells[0])}: {self._text(cells[1])}")
        return specs

    @staticmethod
    def _render(title: str, features: list[str], specs: list[str]) -> str:
        parts = [f"<h1>{title}</h1>"]
        if features:
            parts.append('<div class="product-features">')
            parts.append("<h2>Features</h2>")
            parts.extend(features)
            parts.append("</div>")
        if specs:
            parts.append('<div class="product-specifications">')
            parts.append("<h2>Specifications</h2>")
            parts.extend(specs)
            parts.append("</div>")
        return "\n".join(parts)
