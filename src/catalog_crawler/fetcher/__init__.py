"""Page fetching with optional JavaScript rendering."""

from catalog_crawler.config import FetcherConfig
from catalog_crawler.fetcher.base import BaseFetcher, FetchResult
from catalog_crawler.fetcher.http_fetcher import HttpFetcher
from catalog_crawler.fetcher.playwright_fetcher import PlaywrightFetcher


def create_fetcher(config: FetcherConfig) -> BaseFetcher:
    """Create the appropriate fetcher."""
    if config.use_js:
        return PlaywrightFetcher(config)
    return HttpFetcher(config)


__all__ = [
    "BaseFetcher",
    "FetchResult",
    "PlaywrightFetcher",
    "HttpFetcher",
    "create_fetcher",
]
