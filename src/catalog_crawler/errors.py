"""Error kinds raised across the crawl and publish pipeline."""

from typing import Any


class CatalogCrawlerError(Exception):
    """Base class for all errors raised by catalog-crawler."""


class ConfigError(CatalogCrawlerError):
    """Missing or invalid configuration."""


class ParseError(CatalogCrawlerError):
    """A URL, an HTML document or a stored JSON file could not be parsed."""


class FetchError(CatalogCrawlerError):
    """A page could not be fetched (navigation failure, HTTP error, no response)."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


class FetchTimeoutError(FetchError):
    """Navigation or content wait exceeded the configured timeout."""


class RateLimitedError(CatalogCrawlerError):
    """An external API rejected the call because of a rate or quota limit."""


class TransientAPIError(CatalogCrawlerError):
    """A retryable external API failure."""


class ProcessingConflictError(CatalogCrawlerError):
    """The catalog is still processing a previous write for the same item."""


class ProductValidationError(CatalogCrawlerError):
    """A product record lacks a field required for publishing."""


class FatalConflictError(CatalogCrawlerError):
    """The item conflicts with catalog state in a way a retry cannot fix."""


class CatalogAPIError(CatalogCrawlerError):
    """Non-success response from the catalog API."""

    def __init__(self, message: str, status_code: int = 0, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
