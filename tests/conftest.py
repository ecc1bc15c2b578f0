# File: tests/conftest.py
from collections import defaultdict

import pytest

from catalog_crawler.config import AppConfig, BatchConfig, CrawlConfig, FetcherConfig, RetryConfig
from catalog_crawler.errors import ParseError
from catalog_crawler.extractor.base import BaseContentExtractor
from catalog_crawler.fetcher.base import BaseFetcher, FetchResult
from catalog_crawler.models import PageRecord, ProductRecord

ROOT = "https://shop.example.com/catalog"


class FakeFetcher(BaseFetcher):
    """Serves canned HTML keyed by URL and records the session lifecycle."""

    def __init__(self, pages: dict[str, str], fail: set[str] | None = None, open_error: Exception | None = None):
        super().__init__(FetcherConfig(use_js=False))
        self.pages = pages
        self.fail = fail or set()
        self.open_error = open_error
        self.fetched: list[str] = []
        self.opened = 0
        self.closed = 0

    async def __aenter__(self):
        if self.open_error:
            raise self.open_error
        self.opened += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed += 1

    async def fetch(self, url: str) -> FetchResult:
        self.fetched.append(url)
        if url in self.fail:
            return FetchResult(url=url, final_url=url, html="", status_code=0, error="Navigation failed")
        if url not in self.pages:
            return FetchResult(url=url, final_url=url, html="", status_code=404)
        return FetchResult(url=url, final_url=url, html=self.pages[url], status_code=200)


class GraphExtractor(BaseContentExtractor):
    """Classifies pages from a prebuilt site graph instead of parsing HTML.

    ``graph`` maps URL -> list of links (category page) or ``None`` (leaf).
    """

    name = "graph"

    def __init__(self, graph: dict[str, list[str] | None], broken: set[str] | None = None):
        super().__init__()
        self.graph = graph
        self.broken = broken or set()

    def extract(self, html: str, url: str) -> PageRecord:
        if url in self.broken:
            raise ParseError(f"Cannot parse {url}")
        links = self.graph.get(url)
        if links is None:
            return PageRecord(url=url, title=url.rsplit("/", 1)[-1], page_content=html, is_leaf=True)
        return PageRecord(url=url, discovered_links=tuple(links))


class FakeProductExtractor:
    """Returns a product per URL; listed errors are raised in order first."""

    def __init__(self, errors: dict[str, list[Exception]] | None = None, empty: set[str] | None = None):
        self.errors = {url: list(errs) for url, errs in (errors or {}).items()}
        self.empty = empty or set()
        self.calls: dict[str, int] = defaultdict(int)

    async def process(self, record: PageRecord) -> ProductRecord | None:
        self.calls[record.url] += 1
        pending = self.errors.get(record.url)
        if pending:
            raise pending.pop(0)
        if record.url in self.empty:
            return None
        slug = record.url.rstrip("/").rsplit("/", 1)[-1]
        return ProductRecord(
            name=f"Product {slug}",
            sku=slug.upper(),
            price={"current": 100.0},
            categories=["inverter"],
            source_url=record.url,
        )


class FakePublisher:
    """In-memory catalog with the publisher surface the orchestrator uses."""

    def __init__(self, connection_error: Exception | None = None, fail_skus: dict[str, list[Exception]] | None = None):
        self.connection_error = connection_error
        self.fail_skus = {sku: list(errs) for sku, errs in (fail_skus or {}).items()}
        self.uploaded: list[dict] = []
        self.entered = 0
        self.exited = 0
        self.filter_categories: list[str] = []

    async def __aenter__(self):
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited += 1

    async def test_connection(self) -> bool:
        if self.connection_error:
            raise self.connection_error
        return True

    async def upload(self, payload: dict):
        pending = self.fail_skus.get(payload["sku"])
        if pending:
            raise pending.pop(0)
        self.uploaded.append(payload)
        return len(self.uploaded)

    def filter_by_category(self, products):
        wanted = set(self.filter_categories)
        if not wanted:
            return list(products)
        return [p for p in products if wanted & {c.lower() for c in p.categories}]


class Sleeper:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture()
def sleeper() -> Sleeper:
    return Sleeper()


@pytest.fixture()
def app_config(tmp_path) -> AppConfig:
    """Return an AppConfig with small bounds and files under tmp_path."""
    return AppConfig(
        start_url=ROOT,
        crawl=CrawlConfig(max_pages=20, max_depth=5),
        batch=BatchConfig(extract_batch_size=3, publish_batch_size=1),
        retry=RetryConfig(extract_max_attempts=3, publish_max_attempts=3),
        output={"directory": tmp_path, "name": "test"},
    )


@pytest.fixture()
def site_graph() -> dict[str, list[str] | None]:
    """A category page linking to two leaf product pages."""
    return {
        ROOT: [f"{ROOT}/good", f"{ROOT}/bad"],
        f"{ROOT}/good": None,
        f"{ROOT}/bad": None,
    }


def html_for(graph: dict) -> dict[str, str]:
    return {url: f"<html><body>{url}</body></html>" for url in graph}

