"""Bounded depth-first crawler that collects product pages."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from catalog_crawler.config import CrawlConfig
from catalog_crawler.discovery.path_filter import PathFilter
from catalog_crawler.errors import FetchError, ParseError
from catalog_crawler.extractor.base import BaseContentExtractor
from catalog_crawler.fetcher.base import BaseFetcher
from catalog_crawler.models import CrawlTarget, PageRecord
from catalog_crawler.utils.url_utils import is_page_url, is_same_domain, normalize_url

logger = logging.getLogger(__name__)


class CrawlState(str, Enum):
    """Lifecycle of a crawl run."""

    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


class VisitedSet:
    """URLs visited during one run, keyed by raw URL and by normalized URL."""

    def __init__(self) -> None:
        self._raw: set[str] = set()
        self._normalized: set[str] = set()
        self._order: list[str] = []

    def __contains__(self, url: str) -> bool:
        return url in self._raw or normalize_url(url) in self._normalized

    def __len__(self) -> int:
        return len(self._raw)

    def add(self, url: str) -> None:
        if url not in self._raw:
            self._order.append(url)
        self._raw.add(url)
        self._normalized.add(normalize_url(url))

    @property
    def urls(self) -> list[str]:
        """Visited URLs in visit order."""
        return list(self._order)


@dataclass
class CrawlContext:
    """State owned by a single crawl run."""

    start_url: str
    max_pages: int
    max_depth: int
    state: CrawlState = CrawlState.IDLE
    visited: VisitedSet = field(default_factory=VisitedSet)
    documents: list[PageRecord] = field(default_factory=list)
    fetch_log: list[str] = field(default_factory=list)

    @property
    def pages_processed(self) -> int:
        return len(self.fetch_log)


class CrawlController:
    """Explore a site from a start URL and collect leaf (product) pages.

    Traversal is depth-first in the link order returned by the content
    extractor and strictly sequential, so the page bound is exact. A page
    that fails to fetch or parse ends its branch without aborting the run.
    """

    def __init__(
        self,
        fetcher: BaseFetcher,
        extractor: BaseContentExtractor,
        config: CrawlConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.extractor = extractor
        self.config = config or CrawlConfig()
        self.path_filter = PathFilter(self.config.include_paths, self.config.exclude_paths)
        self._sleep = sleep
        self.last_context: CrawlContext | None = None

    async def crawl(self, start_url: str) -> list[PageRecord]:
        """Crawl from ``start_url`` and return the product pages found."""
        context = CrawlContext(
            start_url=start_url,
            max_pages=self.config.max_pages,
            max_depth=self.config.max_depth,
        )
        logger.info(
            "Starting crawl at %s (max pages: %d, max depth: %d)",
            start_url, context.max_pages, context.max_depth,
        )
        await self._run(context, lambda: self._walk(context))
        logger.info(
            "Crawl complete: processed %d pages, found %d product pages",
            context.pages_processed, len(context.documents),
        )
        return list(context.documents)

    async def crawl_urls(self, urls: list[str]) -> list[PageRecord]:
        """Fetch each URL as a single-page crawl, pausing between fetches.

        Every page that fetches and parses is returned, category pages
        included; their links are not followed.
        """
        context = CrawlContext(
            start_url=urls[0] if urls else "",
            max_pages=len(urls),
            max_depth=1,
        )
        logger.info("Crawling %d specific URLs", len(urls))

        async def visit_all() -> None:
            for index, url in enumerate(urls):
                if index:
                    await self._sleep(self.config.url_list_delay_seconds)
                await self._visit_one(context, CrawlTarget(url=url, depth=0), follow_links=False)

        await self._run(context, visit_all)
        return list(context.documents)

    async def _run(self, context: CrawlContext, work: Callable[[], Awaitable[None]]) -> None:
        """Run ``work()`` inside one fetcher session, releasing it unconditionally."""
        self.last_context = context
        context.state = CrawlState.RUNNING
        try:
            async with self.fetcher:
                await work()
        finally:
            context.state = CrawlState.DONE

    async def _walk(self, context: CrawlContext) -> None:
        # The start URL is pushed directly, so include rules never reject it.
        stack = [CrawlTarget(url=context.start_url, depth=0)]
        while stack:
            target = stack.pop()
            links = await self._visit_one(context, target)
            # Reversed so the first discovered link is popped next.
            for link in reversed(links):
                stack.append(CrawlTarget(url=link, depth=target.depth + 1))

    def _skip_reason(self, context: CrawlContext, target: CrawlTarget) -> str | None:
        if target.depth >= context.max_depth:
            return "max depth"
        if len(context.visited) >= context.max_pages:
            return "max pages"
        if target.url in context.visited:
            return "already visited"
        return None

    async def _visit_one(
        self, context: CrawlContext, target: CrawlTarget, follow_links: bool = True
    ) -> list[str]:
        """Fetch and classify one page; return the links to follow from it."""
        reason = self._skip_reason(context, target)
        if reason:
            logger.debug("Skipping %s (%s)", target.url, reason)
            return []

        context.visited.add(target.url)
        context.fetch_log.append(target.url)
        logger.info(
            "[%d/%d] Crawling %s (depth: %d)",
            context.pages_processed, context.max_pages, target.url, target.depth,
        )

        try:
            result = await self.fetcher.fetch(target.url)
            result.raise_for_error()
            record = self.extractor.extract(result.html, result.final_url or target.url)
        except (FetchError, ParseError) as e:
            logger.warning("Error crawling %s: %s", target.url, e)
            return []
        except Exception:
            logger.exception("Unexpected error crawling %s", target.url)
            return []

        if record.is_leaf or not follow_links:
            logger.debug("Keeping %s (leaf: %s)", record.url, record.is_leaf)
            context.documents.append(record)
            return []

        return [
            link
            for link in record.discovered_links
            if is_page_url(link)
            and is_same_domain(link, context.start_url)
            and self.path_filter.should_visit(link)
        ]
