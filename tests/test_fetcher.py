# File: tests/test_fetcher.py
import httpx
import pytest

from catalog_crawler.config import FetcherConfig
from catalog_crawler.errors import FetchError, FetchTimeoutError
from catalog_crawler.fetcher import HttpFetcher, PlaywrightFetcher, create_fetcher
from catalog_crawler.fetcher.base import FetchResult


def result(**kwargs) -> FetchResult:
    base = {"url": "https://x.com/p", "final_url": "https://x.com/p", "html": "", "status_code": 200}
    base.update(kwargs)
    return FetchResult(**base)


def test_success_range():
    assert result(status_code=200).success
    assert result(status_code=301).success
    assert not result(status_code=404).success
    assert not result(status_code=200, error="boom").success


def test_raise_for_error_distinguishes_timeouts():
    result(status_code=200).raise_for_error()

    with pytest.raises(FetchTimeoutError):
        result(status_code=0, error="slow", timed_out=True).raise_for_error()
    with pytest.raises(FetchError, match="HTTP 503"):
        result(status_code=503).raise_for_error()


def test_create_fetcher_by_rendering_mode():
    assert isinstance(create_fetcher(FetcherConfig(use_js=True)), PlaywrightFetcher)
    assert isinstance(create_fetcher(FetcherConfig(use_js=False)), HttpFetcher)


async def test_fetch_requires_open_session():
    with pytest.raises(RuntimeError):
        await HttpFetcher(FetcherConfig(use_js=False)).fetch("https://x.com/")


def pages_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/datasheet.pdf":
            return httpx.Response(200, content=b"%PDF", headers={"content-type": "application/pdf"})
        if path == "/old":
            return httpx.Response(301, headers={"location": "https://x.com/new"})
        if path == "/slow":
            raise httpx.ReadTimeout("read timed out", request=request)
        return httpx.Response(200, text=f"<h1>{path}</h1>", headers={"content-type": "text/html; charset=utf-8"})

    return httpx.MockTransport(handler)


@pytest.fixture()
async def http_fetcher():
    fetcher = HttpFetcher(FetcherConfig(use_js=False))
    async with fetcher:
        await fetcher._client.aclose()
        fetcher._client = httpx.AsyncClient(transport=pages_transport(), follow_redirects=True)
        yield fetcher


async def test_http_fetch_follows_redirects(http_fetcher):
    page = await http_fetcher.fetch("https://x.com/old")

    assert page.success
    assert page.final_url == "https://x.com/new"
    assert page.html == "<h1>/new</h1>"


async def test_http_fetch_rejects_non_html(http_fetcher):
    page = await http_fetcher.fetch("https://x.com/datasheet.pdf")

    assert not page.success
    assert "application/pdf" in page.error


async def test_http_fetch_timeout_is_flagged(http_fetcher):
    page = await http_fetcher.fetch("https://x.com/slow")

    assert page.timed_out
    with pytest.raises(FetchTimeoutError):
        page.raise_for_error()
