"""Utility functions."""

from catalog_crawler.utils.url_utils import (
    is_page_url,
    is_same_domain,
    make_absolute,
    normalize_url,
)

__all__ = [
    "normalize_url",
    "is_same_domain",
    "is_page_url",
    "make_absolute",
]
