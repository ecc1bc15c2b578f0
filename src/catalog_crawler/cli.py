"""Command-line interface for catalog-crawler."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from catalog_crawler import __version__
from catalog_crawler.catalog.publisher import WooCommercePublisher
from catalog_crawler.config import AppConfig, CatalogConfig
from catalog_crawler.errors import ConfigError
from catalog_crawler.extractor import ExtractorRegistry
from catalog_crawler.fetcher import create_fetcher
from catalog_crawler.models import PipelineReport
from catalog_crawler.orchestrator import PipelineOrchestrator
from catalog_crawler.products import ProductExtractor
from catalog_crawler.store import ResultStore

app = typer.Typer(
    name="catalog-crawler",
    help="Crawl product pages, extract structured products and publish them to WooCommerce.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"catalog-crawler version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Product catalog crawler and importer."""
    pass


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    for noisy in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error: {message}[/red]")
    return typer.Exit(1)


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load ``config_file`` (or defaults); exit with status 1 if it is unusable."""
    if config_file is None:
        return AppConfig()
    if not config_file.exists():
        raise _fail(f"Config file not found: {config_file}")
    try:
        return AppConfig.from_toml(config_file)
    except (OSError, ValueError) as e:
        raise _fail(f"Invalid config file {config_file}: {e}")


def _read_url_list(path: Path) -> list[str]:
    """Read a JSON array of URLs."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read URL list {path}: {e}") from e
    if not isinstance(data, list) or not all(isinstance(u, str) for u in data):
        raise ConfigError(f"URL list {path} must be a JSON array of strings")
    return [u.strip() for u in data if u.strip()]


def _build_orchestrator(config: AppConfig, publish: bool) -> PipelineOrchestrator:
    extractor = ExtractorRegistry.get(config.site)
    if extractor is None:
        names = ", ".join(cls.name for cls in ExtractorRegistry.list_extractors())
        raise ConfigError(f"Unknown site '{config.site}'. Available: {names}")

    # Site defaults for what to wait for and click before snapshotting the page.
    fetcher_config = config.fetcher.model_copy(
        update={
            "wait_selector": config.fetcher.wait_selector or extractor.wait_selector,
            "click_selector": config.fetcher.click_selector or extractor.click_selector,
        }
    )

    publisher = None
    if publish:
        catalog = config.catalog
        if not catalog.is_configured:
            catalog = CatalogConfig.from_env(
                timeout_seconds=catalog.timeout_seconds,
                duplicate_settle_seconds=catalog.duplicate_settle_seconds,
                filter_categories=catalog.filter_categories,
            )
        publisher = WooCommercePublisher(catalog)

    return PipelineOrchestrator(
        config,
        fetcher=create_fetcher(fetcher_config),
        content_extractor=extractor,
        product_extractor=ProductExtractor(config.llm),
        publisher=publisher,
        console=console,
    )


async def _run_pipeline(config: AppConfig, urls: list[str] | None, publish: bool) -> PipelineReport:
    orchestrator = _build_orchestrator(config, publish)
    report = await orchestrator.run(start_url=config.start_url, urls=urls, publish=publish)

    store = ResultStore(config.output)
    products_path = await store.save_products(report.products)
    console.print(f"[green]Products saved to {products_path}[/green]")
    if await store.save_failed_pages(report.failed_pages):
        console.print(
            f"[yellow]Failed pages saved to {config.output.failed_pages_path}; "
            f"run 'catalog-crawler retry-failed --name {config.output.name}' to retry[/yellow]"
        )
    if await store.save_failed_uploads(report.failed_uploads):
        console.print(f"[yellow]Failed uploads saved to {config.output.failed_uploads_path}[/yellow]")
    return report


async def _retry_failed(config: AppConfig, publish: bool) -> None:
    store = ResultStore(config.output)
    pages = await store.load_failed_pages()
    if not pages:
        console.print("[green]No failed pages to process.[/green]")
        return

    orchestrator = _build_orchestrator(config, publish)
    replay = await orchestrator.replay(pages, publish=publish)

    if replay.report.products:
        merged = await store.add_products(replay.report.products)
        console.print(f"[green]Products file now holds {len(merged)} products[/green]")
    await store.save_failed_pages(replay.report.failed_pages)
    if replay.report.failed_uploads:
        previous = await store.load_failed_uploads()
        await store.save_failed_uploads(previous + replay.report.failed_uploads)

    console.print(
        f"Recovered: [green]{replay.recovered}[/green]  "
        f"Still failed: [red]{replay.still_failed}[/red]"
    )


async def _upload(config: AppConfig) -> None:
    store = ResultStore(config.output)
    products = await store.load_products()
    if not products:
        console.print(f"[yellow]No products found in {config.output.products_path}[/yellow]")
        return

    orchestrator = _build_orchestrator(config, publish=True)
    published, failed = await orchestrator.publish(products)
    await store.save_failed_uploads(failed)

    console.print()
    console.print("[bold]Upload complete[/bold]")
    console.print(f"  Uploaded: [green]{len(published)}[/green]")
    if failed:
        console.print(f"  Failed:   [red]{len(failed)}[/red]")
        console.print(f"[yellow]Failed uploads saved to {config.output.failed_uploads_path}[/yellow]")


def _run_async(coro, verbose: bool):
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)
    except Exception as e:
        if verbose:
            console.print_exception()
        raise _fail(str(e))


@app.command()
def run(
    url: Optional[str] = typer.Argument(None, help="Start URL of the site to crawl"),
    site: Optional[str] = typer.Option(
        None,
        "--site",
        "-s",
        help="Site layout: 'enfold' or 'woocommerce' (see list-sites)",
    ),
    urls_file: Optional[Path] = typer.Option(
        None,
        "--urls-file",
        "-f",
        help="JSON array of product URLs to fetch instead of crawling",
    ),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", min=1, help="Maximum pages to visit"),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", min=1, max=50, help="Maximum crawl depth"),
    include: Optional[list[str]] = typer.Option(
        None,
        "--include",
        "-i",
        help="Only follow paths starting with this prefix (repeatable)",
    ),
    exclude: Optional[list[str]] = typer.Option(
        None,
        "--exclude",
        "-e",
        help="Skip paths containing this fragment (repeatable)",
    ),
    publish: bool = typer.Option(
        True,
        "--publish/--no-publish",
        help="Upload extracted products to WooCommerce",
    ),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Product set name for output files"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """
    Crawl a site, extract products and publish them.

    Examples:

        catalog-crawler run https://shop.example.com/products/ --site woocommerce --no-publish

        catalog-crawler run --urls-file urls.json --name inverters

        catalog-crawler run https://example.com --include portfolio-item --max-pages 200
    """
    _setup_logging(verbose)
    config = _load_config(config_file)

    urls = None
    if urls_file is not None:
        try:
            urls = _read_url_list(urls_file)
        except ConfigError as e:
            raise _fail(str(e))

    start_url = url or config.start_url
    if not start_url and not urls:
        console.print("[red]A start URL or --urls-file is required.[/red]")
        raise typer.Exit(1)

    crawl_updates = {}
    if max_pages is not None:
        crawl_updates["max_pages"] = max_pages
    if max_depth is not None:
        crawl_updates["max_depth"] = max_depth
    if include:
        crawl_updates["include_paths"] = include
    if exclude:
        crawl_updates["exclude_paths"] = exclude

    updates: dict = {"start_url": start_url, "verbose": verbose or config.verbose}
    if site:
        updates["site"] = site
    if crawl_updates:
        updates["crawl"] = config.crawl.model_copy(update=crawl_updates)
    if name:
        updates["output"] = config.output.model_copy(update={"name": name})
    config = config.model_copy(update=updates)

    _run_async(_run_pipeline(config, urls, publish), verbose)


@app.command("retry-failed")
def retry_failed(
    name: str = typer.Option(..., "--name", "-n", help="Product set name used by the original run"),
    publish: bool = typer.Option(
        True,
        "--publish/--no-publish",
        help="Upload recovered products to WooCommerce",
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """Re-run extraction over the pages that failed in a previous run."""
    _setup_logging(verbose)
    config = _load_config(config_file)
    config = config.model_copy(
        update={"output": config.output.model_copy(update={"name": name})}
    )
    _run_async(_retry_failed(config, publish), verbose)


@app.command()
def upload(
    name: str = typer.Option(..., "--name", "-n", help="Product set name to upload"),
    category: Optional[list[str]] = typer.Option(
        None,
        "--category",
        help="Only upload products in this category (repeatable)",
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """Publish a previously extracted product file to WooCommerce."""
    _setup_logging(verbose)
    config = _load_config(config_file)

    updates: dict = {"output": config.output.model_copy(update={"name": name})}
    if category:
        updates["catalog"] = config.catalog.model_copy(
            update={"filter_categories": [c.lower() for c in category]}
        )
    config = config.model_copy(update=updates)

    _run_async(_upload(config), verbose)


@app.command("list-sites")
def list_sites():
    """List supported site layouts."""
    table = Table(title="Supported Sites")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Product links")

    for extractor_cls in ExtractorRegistry.list_extractors():
        table.add_row(
            extractor_cls.name,
            extractor_cls.description,
            extractor_cls.link_marker or "-",
        )

    console.print(table)


if __name__ == "__main__":
    app()
