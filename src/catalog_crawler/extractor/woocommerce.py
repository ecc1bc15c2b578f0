"""Extractor for WooCommerce storefronts."""

import logging

from catalog_crawler.extractor.base import BaseContentExtractor
from catalog_crawler.models import PageRecord

logger = logging.getLogger(__name__)

PRODUCT_SECTIONS = (".woocommerce-product-gallery", ".summary", ".woocommerce-tabs")
RELATED_SECTIONS = ".related, .up-sells, .cross-sells"


class WooCommerceExtractor(BaseContentExtractor):
    """Single-product pages keep gallery, summary and tabs; shop pages yield /product/ links."""

    name = "woocommerce"
    description = "WooCommerce storefronts (single product pages under /product/)"
    link_marker = "/product/"
    wait_selector = ".product-details-wrapper, .woocommerce"
    click_selector = "#tab-title-additional_information a"

    def extract(self, html: str, url: str) -> PageRecord:
        soup = self._parse(html, url)

        product = soup.select_one(".product-details-wrapper, div.product.type-product")
        if product is None:
            links = self._discover_links(soup, url)
            logger.debug("Shop page %s with %d product links", url, len(links))
            return PageRecord(url=url, is_leaf=False, discovered_links=links)

        sections = [soup.select_one(selector) for selector in PRODUCT_SECTIONS]
        for section in sections:
            if section is None:
                continue
            for related in section.select(RELATED_SECTIONS):
                related.decompose()

        content = "\n".join(str(section) for section in sections if section is not None)
        title_tag = soup.select_one(".product_title") or soup.find("h1") or soup.title

        return PageRecord(
            url=url,
            title=self._text(title_tag),
            page_content=content or str(product),
            is_leaf=True,
        )
