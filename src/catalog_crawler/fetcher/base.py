"""Base class for page fetchers."""

from abc import ABC, abstractmethod

from pydantic import BaseModel

from catalog_crawler.config import FetcherConfig
from catalog_crawler.errors import FetchError, FetchTimeoutError


class FetchResult(BaseModel):
    """Result of fetching a page."""

    url: str
    final_url: str  # After redirects
    html: str
    status_code: int
    error: str | None = None
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 400 and not self.error

    def raise_for_error(self) -> None:
        """Raise a FetchError describing why this fetch failed, if it did."""
        if self.success:
            return
        if self.timed_out:
            raise FetchTimeoutError(self.url, self.error or "navigation timed out")
        raise FetchError(self.url, self.error or f"HTTP {self.status_code}")


class BaseFetcher(ABC):
    """Abstract base class for page fetchers.

    A fetcher is a session: entering the async context opens it (e.g. launches
    a browser), leaving it releases every resource it holds.
    """

    def __init__(self, config: FetcherConfig):
        self.config = config

    @staticmethod
    def _failure(url: str, error: str, status_code: int = 0, **kwargs) -> FetchResult:
        """A result for a fetch that produced no usable HTML."""
        return FetchResult(
            url=url,
            final_url=kwargs.pop("final_url", url),
            html="",
            status_code=status_code,
            error=error,
            **kwargs,
        )

    @abstractmethod
    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page and return its rendered HTML."""
        pass

    @abstractmethod
    async def __aenter__(self):
        """Async context manager entry."""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        pass
