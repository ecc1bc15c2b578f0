"""Main orchestrator that coordinates the crawl, extract and publish stages."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from rich.console import Console
from rich.table import Table

from catalog_crawler.catalog.formatter import format_product, validate_payload
from catalog_crawler.catalog.publisher import WooCommercePublisher
from catalog_crawler.config import AppConfig
from catalog_crawler.discovery.crawler import CrawlController
from catalog_crawler.errors import CatalogCrawlerError, ProductValidationError
from catalog_crawler.extractor.base import BaseContentExtractor
from catalog_crawler.fetcher.base import BaseFetcher
from catalog_crawler.models import (
    FailedUpload,
    PageRecord,
    PipelineReport,
    ProductRecord,
    PublishedProduct,
    ReplayReport,
)
from catalog_crawler.pipeline.batch import BatchRunner
from catalog_crawler.pipeline.retry import RetryPolicy
from catalog_crawler.products.extractor import ProductExtractor

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Coordinates crawl → extract → publish for one product set.

    Per-page and per-product failures end up in the returned report rather
    than raising. Only a failure to open the fetcher session escapes ``run``.
    """

    def __init__(
        self,
        config: AppConfig,
        fetcher: BaseFetcher,
        content_extractor: BaseContentExtractor,
        product_extractor: ProductExtractor,
        publisher: WooCommercePublisher | None = None,
        console: Console | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.product_extractor = product_extractor
        self.publisher = publisher
        self.console = console or Console()
        self.crawler = CrawlController(fetcher, content_extractor, config.crawl, sleep=sleep)
        self.retry_policy = RetryPolicy.from_config(config.retry, sleep=sleep)
        self.batch_runner = BatchRunner(config.batch.inter_batch_delay_seconds, sleep=sleep)

    async def run(
        self,
        start_url: str | None = None,
        urls: list[str] | None = None,
        publish: bool = True,
    ) -> PipelineReport:
        """Execute the full pipeline from a start URL or an explicit URL list."""
        start = time.monotonic()
        report = PipelineReport()

        if urls:
            self.console.print(f"[blue]Fetching {len(urls)} listed URLs...[/blue]")
            pages = await self.crawler.crawl_urls(urls)
        elif start_url:
            self.console.print(f"[blue]Crawling {start_url}...[/blue]")
            pages = await self.crawler.crawl(start_url)
        else:
            raise ValueError("Either start_url or urls is required")

        if self.crawler.last_context is not None:
            report.visited_urls = self.crawler.last_context.visited.urls
        pages = [page for page in pages if page]
        self.console.print(
            f"[green]Found {len(pages)} product pages[/green]"
            f" [dim]({len(report.visited_urls)} pages visited)[/dim]"
        )

        if pages:
            await self._extract(pages, report)
            if publish and self.publisher is not None and report.products:
                published, failed = await self.publish(report.products)
                report.published.extend(published)
                report.failed_uploads.extend(failed)
        else:
            self.console.print("[yellow]No product pages found to extract.[/yellow]")

        self._print_summary(report, time.monotonic() - start)
        return report

    async def replay(self, failed_pages: list[PageRecord], publish: bool = True) -> ReplayReport:
        """Re-run extraction (and publishing) over pages that failed before."""
        start = time.monotonic()
        report = PipelineReport()
        self.console.print(f"[blue]Retrying {len(failed_pages)} failed pages...[/blue]")

        if failed_pages:
            await self._extract(failed_pages, report)
            if publish and self.publisher is not None and report.products:
                published, failed = await self.publish(report.products)
                report.published.extend(published)
                report.failed_uploads.extend(failed)

        self._print_summary(report, time.monotonic() - start, title="Retry complete")
        return ReplayReport(
            recovered=len(report.products),
            still_failed=len(report.failed_pages),
            report=report,
        )

    async def _extract(self, pages: list[PageRecord], report: PipelineReport) -> None:
        self.console.print(f"[blue]Extracting products from {len(pages)} pages...[/blue]")
        result = await self.batch_runner.run(
            pages,
            self.config.batch.extract_batch_size,
            self._extract_one,
            label="pages",
        )
        report.products.extend(result.successes)
        report.failed_pages.extend(result.failures)

    async def _extract_one(self, page: PageRecord) -> ProductRecord | None:
        return await self.retry_policy.call(
            lambda: self.product_extractor.process(page),
            self.config.retry.extract_max_attempts,
            label=f"Extraction of {page.url}",
        )

    async def publish(
        self, products: list[ProductRecord]
    ) -> tuple[list[PublishedProduct], list[FailedUpload]]:
        """Validate and upload ``products``; return what was published and what failed."""
        published: list[PublishedProduct] = []
        failed: list[FailedUpload] = []
        if self.publisher is None:
            return published, failed

        selected = self.publisher.filter_by_category(products)
        if len(selected) < len(products):
            self.console.print(
                f"[dim]Category filter kept {len(selected)} of {len(products)} products[/dim]"
            )

        ready: list[tuple[ProductRecord, dict]] = []
        for product in selected:
            payload = format_product(product)
            try:
                validate_payload(payload)
            except ProductValidationError as e:
                logger.warning("Skipping upload: %s", e)
                failed.append(FailedUpload(sku=product.sku or "unknown", error=str(e), product=product))
                continue
            ready.append((product, payload))

        if not ready:
            return published, failed

        self.console.print(f"[blue]Publishing {len(ready)} products...[/blue]")
        async with self.publisher:
            try:
                await self.publisher.test_connection()
            except CatalogCrawlerError as e:
                logger.error("Catalog connection failed: %s", e)
                for product, payload in ready:
                    failed.append(
                        FailedUpload(
                            sku=payload["sku"],
                            error=f"Catalog connection failed: {e}",
                            details=getattr(e, "payload", None),
                            product=product,
                        )
                    )
                return published, failed

            result = await self.batch_runner.run(
                ready,
                self.config.batch.publish_batch_size,
                self._upload_one,
                label="products",
                delay_seconds=self.config.batch.publish_delay_seconds,
            )

        for outcome in result.outcomes:
            product, payload = outcome.item
            if outcome.success:
                published.append(outcome.value)
            else:
                failed.append(
                    FailedUpload(
                        sku=payload["sku"],
                        error=outcome.error or "Upload failed",
                        details=outcome.details,
                        product=product,
                    )
                )
        return published, failed

    async def _upload_one(self, item: tuple[ProductRecord, dict]) -> PublishedProduct:
        _, payload = item
        remote_id = await self.retry_policy.call(
            lambda: self.publisher.upload(payload),
            self.config.retry.publish_max_attempts,
            label=f"Upload of {payload['sku']}",
        )
        return PublishedProduct(sku=payload["sku"], remote_id=remote_id)

    def _print_summary(
        self, report: PipelineReport, elapsed: float, title: str = "Pipeline complete"
    ) -> None:
        """Print a post-run summary report."""
        self.console.print()
        self.console.print(f"[bold]{title}[/bold]")
        self.console.print()

        if report.visited_urls:
            self.console.print(f"  Pages visited:   {len(report.visited_urls)}")
        self.console.print(f"  Products:        [green]{report.success_count}[/green]")
        if self.publisher is not None:
            self.console.print(f"  Published:       [green]{len(report.published)}[/green]")
        if report.failed_pages:
            self.console.print(f"  Failed pages:    [red]{len(report.failed_pages)}[/red]")
        if report.failed_uploads:
            self.console.print(f"  Failed uploads:  [red]{len(report.failed_uploads)}[/red]")
        self.console.print(f"  Total time:      {elapsed:.1f}s")

        if report.failed_uploads:
            self.console.print()
            table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
            table.add_column("SKU", style="cyan")
            table.add_column("Error", style="red")
            for failure in report.failed_uploads[:10]:
                table.add_row(failure.sku, failure.error)
            self.console.print(table)
            if len(report.failed_uploads) > 10:
                self.console.print(f"  [dim]... and {len(report.failed_uploads) - 10} more[/dim]")
        self.console.print()
