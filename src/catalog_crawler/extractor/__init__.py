"""Site-specific content extraction from rendered HTML."""

from catalog_crawler.extractor.base import BaseContentExtractor
from catalog_crawler.extractor.enfold import EnfoldExtractor
from catalog_crawler.extractor.registry import ExtractorRegistry
from catalog_crawler.extractor.woocommerce import WooCommerceExtractor

__all__ = [
    "BaseContentExtractor",
    "EnfoldExtractor",
    "WooCommerceExtractor",
    "ExtractorRegistry",
]
