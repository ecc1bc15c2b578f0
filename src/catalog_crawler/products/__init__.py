"""Structured product extraction."""

from catalog_crawler.products.extractor import ProductExtractor

__all__ = ["ProductExtractor"]
