"""Site traversal: path rules and the bounded crawler."""

from catalog_crawler.discovery.crawler import CrawlContext, CrawlController, CrawlState, VisitedSet
from catalog_crawler.discovery.path_filter import PathFilter, should_visit

__all__ = [
    "CrawlContext",
    "CrawlController",
    "CrawlState",
    "VisitedSet",
    "PathFilter",
    "should_visit",
]
