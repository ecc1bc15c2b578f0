"""Crawl product pages, extract product records, and publish them to a catalog."""

__version__ = "0.1.0"
