"""Catalog publishing for WooCommerce stores."""

from catalog_crawler.catalog.formatter import format_product, validate_payload
from catalog_crawler.catalog.publisher import WooCommercePublisher

__all__ = ["WooCommercePublisher", "format_product", "validate_payload"]
