"""Configuration management with Pydantic models."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

from catalog_crawler.errors import ConfigError

DEFAULT_CATEGORY_CHOICES = [
    "inverter",
    "battery",
    "solar panel",
    "geysers",
    "e-bike",
    "packages",
    "accessories",
]


class CrawlConfig(BaseModel):
    """Configuration for the crawl stage."""

    max_pages: int = Field(default=50, ge=1)
    max_depth: int = Field(default=7, ge=1, le=50)
    include_paths: list[str] = Field(default_factory=list)
    exclude_paths: list[str] = Field(default_factory=list)
    url_list_delay_seconds: float = Field(default=2.0, ge=0.0, le=60.0)


class FetcherConfig(BaseModel):
    """Configuration for page fetching."""

    use_js: bool = True
    headless: bool = True
    timeout_ms: int = Field(default=30000, ge=1000, le=120000)
    user_agent: str = "CatalogCrawler/0.1 (Product Catalog Importer)"
    wait_selector: str | None = None
    wait_timeout_ms: int = Field(default=5000, ge=100, le=60000)
    wait_retries: int = Field(default=3, ge=1, le=10)
    click_selector: str | None = None
    block_resources: bool = True


class BatchConfig(BaseModel):
    """Configuration for batched extraction and publishing."""

    extract_batch_size: int = Field(default=3, ge=1, le=50)
    publish_batch_size: int = Field(default=1, ge=1, le=50)
    inter_batch_delay_seconds: float = Field(default=90.0, ge=0.0)
    publish_delay_seconds: float = Field(default=5.0, ge=0.0)


class RetryConfig(BaseModel):
    """Configuration for retry and backoff of API calls."""

    extract_max_attempts: int = Field(default=3, ge=0, le=10)
    publish_max_attempts: int = Field(default=3, ge=0, le=20)
    base_delay_ms: int = Field(default=5000, ge=0)
    rate_limit_delay_ms: int = Field(default=90000, ge=0)
    conflict_delay_ms: int = Field(default=30000, ge=0)


class LLMConfig(BaseModel):
    """Configuration for structured product extraction."""

    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2048, ge=256, le=16384)
    api_key: str | None = None
    product_url_marker: str | None = None  # substring a product page URL must contain
    category_choices: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORY_CHOICES))

    def resolved_api_key(self) -> str:
        key = self.api_key or os.environ.get("OPENAI_API_KEY")
        if not key:
            raise ConfigError("OPENAI_API_KEY is not set")
        return key


class CatalogConfig(BaseModel):
    """Configuration for the WooCommerce catalog."""

    url: str = ""
    consumer_key: str = ""
    consumer_secret: str = ""
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    duplicate_settle_seconds: float = Field(default=5.0, ge=0.0, le=60.0)
    filter_categories: list[str] = Field(default_factory=list)

    @classmethod
    def from_env(cls, **overrides) -> "CatalogConfig":
        """Build a config from WOOCOMMERCE_URL / WOOCOMMERCE_KEY / WOOCOMMERCE_SECRET."""
        names = {
            "url": "WOOCOMMERCE_URL",
            "consumer_key": "WOOCOMMERCE_KEY",
            "consumer_secret": "WOOCOMMERCE_SECRET",
        }
        missing = [env for env in names.values() if not os.environ.get(env)]
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
        values = {field: os.environ[env] for field, env in names.items()}
        values.update(overrides)
        return cls(**values)

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.consumer_key and self.consumer_secret)


class OutputConfig(BaseModel):
    """Where run results are persisted."""

    directory: Path = Path("./products")
    name: str = "products"

    @property
    def products_path(self) -> Path:
        return self.directory / f"{self.name}.json"

    @property
    def failed_pages_path(self) -> Path:
        return self.directory / f"{self.name}_fail.json"

    @property
    def failed_uploads_path(self) -> Path:
        return self.directory / f"{self.name}_failed_uploads.json"


class AppConfig(BaseModel):
    """Main application configuration."""

    start_url: str | None = None
    site: str = "enfold"  # content extractor name
    crawl: CrawlConfig = Field(default_factory=CrawlConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    verbose: bool = False

    @classmethod
    def from_toml(cls, path: Path) -> "AppConfig":
        """Load config from a TOML file."""
        try:
            import tomllib  # type: ignore[import-not-found]
        except ModuleNotFoundError:
            import tomli as tomllib  # type: ignore[import-not-found]
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)
