"""Headless Chromium fetcher for catalogs that build their product pages in JavaScript."""

import asyncio
import logging

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from catalog_crawler.config import FetcherConfig
from catalog_crawler.fetcher.base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)

BLOCKED_RESOURCE_TYPES = frozenset(
    {"image", "media", "font", "texttrack", "object", "beacon", "csp_report", "imageset"}
)
BLOCKED_HOST_MARKERS = ("google-analytics", "googletagmanager", "facebook")


class PlaywrightFetcher(BaseFetcher):
    """Fetch pages using one headless Chromium instance per session."""

    def __init__(self, config: FetcherConfig):
        super().__init__(config)
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    async def __aenter__(self):
        """Launch the browser and open a context."""
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
            self._context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                viewport={"width": 1280, "height": 720},
                ignore_https_errors=True,
            )
        except Exception:
            await self.__aexit__(None, None, None)
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Clean up Playwright resources."""
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def fetch(self, url: str) -> FetchResult:
        """Navigate to ``url`` in a fresh page and return the rendered DOM."""
        if self._context is None:
            raise RuntimeError("PlaywrightFetcher used outside 'async with'")

        page = await self._context.new_page()
        try:
            page.set_default_timeout(self.config.timeout_ms)
            if self.config.block_resources:
                await page.route("**/*", self._filter_request)

            response = await page.goto(url, wait_until="networkidle")
            if response is None:
                return self._failure(url, "Navigation returned no response")

            await self._wait_for_content(page, url)
            if self.config.click_selector:
                await self._click(page, self.config.click_selector)

            final_url = page.url
            if final_url != url:
                logger.debug("%s redirected to %s", url, final_url)
            return FetchResult(
                url=url,
                final_url=final_url,
                html=await page.content(),
                status_code=response.status,
            )
        except PlaywrightTimeoutError as e:
            return self._failure(
                url, f"Navigation timed out after {self.config.timeout_ms}ms: {e}", timed_out=True
            )
        except PlaywrightError as e:
            return self._failure(url, f"Navigation failed: {e}")
        finally:
            try:
                await page.close()
            except PlaywrightError:
                logger.debug("Failed to close page for %s", url, exc_info=True)

    async def _wait_for_content(self, page: Page, url: str) -> None:
        """Wait for the configured content selector, reloading between attempts.

        A page where the selector never shows up is still returned: "no content"
        is for the content extractor to decide, not a fetch failure.
        """
        if not self.config.wait_selector:
            return

        for attempt in range(1, self.config.wait_retries + 1):
            try:
                await page.wait_for_selector(
                    self.config.wait_selector, timeout=self.config.wait_timeout_ms
                )
                return
            except PlaywrightTimeoutError:
                logger.debug(
                    "Waiting for content on %s (%d/%d)",
                    url, attempt, self.config.wait_retries,
                )
                if attempt < self.config.wait_retries:
                    await page.reload(wait_until="networkidle", timeout=self.config.timeout_ms)

        logger.debug("Content selector '%s' not found on %s", self.config.wait_selector, url)

    async def _click(self, page: Page, selector: str) -> None:
        """Click an element (e.g. a product tab) so its content lands in the DOM."""
        try:
            await page.click(selector, timeout=self.config.wait_timeout_ms)
            await asyncio.sleep(0.3)
        except PlaywrightError:
            logger.debug("Click on '%s' failed", selector, exc_info=True)

    @staticmethod
    async def _filter_request(route: Route) -> None:
        request = route.request
        if request.resource_type in BLOCKED_RESOURCE_TYPES or any(
            marker in request.url for marker in BLOCKED_HOST_MARKERS
        ):
            await route.abort()
        else:
            await route.continue_()
