"""Plain HTTP fetcher for catalogs that render server-side."""

import logging

import httpx

from catalog_crawler.config import FetcherConfig
from catalog_crawler.fetcher.base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


class HttpFetcher(BaseFetcher):
    """Fetch raw HTML with a single pooled ``httpx.AsyncClient``.

    No JavaScript runs, so ``wait_selector`` and ``click_selector`` are
    ignored. Responses that are not HTML (PDF datasheets, images served
    under a product path) come back as failed results.
    """

    def __init__(self, config: FetcherConfig):
        super().__init__(config)
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.5",
                "Accept-Language": "en",
            },
            follow_redirects=True,
            timeout=httpx.Timeout(self.config.timeout_ms / 1000),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def fetch(self, url: str) -> FetchResult:
        if self._client is None:
            raise RuntimeError("HttpFetcher used outside 'async with'")

        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            return self._failure(
                url, f"Timed out after {self.config.timeout_ms}ms: {e}", timed_out=True
            )
        except httpx.HTTPError as e:
            return self._failure(url, f"{type(e).__name__}: {e}")

        final_url = str(response.url)
        if final_url != url:
            logger.debug("%s redirected to %s", url, final_url)

        content_type = response.headers.get("content-type", "").lower()
        if content_type and not content_type.startswith(HTML_CONTENT_TYPES):
            return self._failure(
                url,
                f"Unexpected content type {content_type.split(';')[0]}",
                status_code=response.status_code,
                final_url=final_url,
            )

        return FetchResult(
            url=url,
            final_url=final_url,
            html=response.text,
            status_code=response.status_code,
        )
