"""Records passed between the crawl, extract and publish stages."""

import re
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class CrawlTarget(BaseModel):
    """A discovered link waiting to be visited."""

    model_config = ConfigDict(frozen=True)

    url: str
    depth: int = 0


class PageRecord(BaseModel):
    """Normalized page produced by a content extractor."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    page_content: str = ""
    is_leaf: bool = False
    discovered_links: tuple[str, ...] = ()


class ProductPrice(BaseModel):
    current: float | None = None
    regular: float | None = None
    sale: float | None = None

    @field_validator("current", "regular", "sale", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        # "R 1,299.00" -> 1299.0
        if isinstance(value, str):
            digits = re.sub(r"[^\d.]", "", value)
            return float(digits) if digits.strip(".") else None
        return value


class ProductImage(BaseModel):
    src: str
    alt: str = ""


class ProductSpecifications(BaseModel):
    technical: list[str] = Field(default_factory=list)
    features: list[str] = Field(default_factory=list)
    additional: dict[str, Any] = Field(default_factory=dict)


class ProductDocuments(BaseModel):
    datasheet: str | None = None
    manual: str | None = None
    certificates: list[str] = Field(default_factory=list)


class ProductRecord(BaseModel):
    """Structured product extracted from a page."""

    model_config = ConfigDict(extra="ignore")

    name: str
    brand: str | None = None
    sku: str | None = None
    description: str = ""
    short_description: str = ""
    price: ProductPrice = Field(default_factory=ProductPrice)
    stock_status: str | None = None
    images: list[ProductImage] = Field(default_factory=list)
    specifications: ProductSpecifications = Field(default_factory=ProductSpecifications)
    documents: ProductDocuments = Field(default_factory=ProductDocuments)
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    source_url: str | None = None


@dataclass
class BatchOutcome(Generic[T]):
    """Result of running the worker on a single batch item."""

    success: bool
    item: Any = None
    value: T | None = None
    error: str | None = None
    details: Any = None


@dataclass
class BatchResult(Generic[T]):
    """Ordered outcomes of a batch run."""

    outcomes: list[BatchOutcome[T]] = field(default_factory=list)

    @property
    def successes(self) -> list[T]:
        return [o.value for o in self.outcomes if o.success]  # type: ignore[misc]

    @property
    def failures(self) -> list[Any]:
        return [o.item for o in self.outcomes if not o.success]

    @property
    def failed_outcomes(self) -> list[BatchOutcome[T]]:
        return [o for o in self.outcomes if not o.success]


class PublishedProduct(BaseModel):
    sku: str
    remote_id: int | str | None = None


class FailedUpload(BaseModel):
    """A product that could not be published, with the upstream error detail."""

    sku: str = "unknown"
    error: str
    details: Any = None
    product: ProductRecord | None = None


class PipelineReport(BaseModel):
    """Accumulated result of one pipeline run."""

    products: list[ProductRecord] = Field(default_factory=list)
    published: list[PublishedProduct] = Field(default_factory=list)
    failed_pages: list[PageRecord] = Field(default_factory=list)
    failed_uploads: list[FailedUpload] = Field(default_factory=list)
    visited_urls: list[str] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.products)

    @property
    def error_count(self) -> int:
        return len(self.failed_pages) + len(self.failed_uploads)


class ReplayReport(BaseModel):
    """Result of re-running extraction over previously failed pages."""

    recovered: int = 0
    still_failed: int = 0
    report: PipelineReport = Field(default_factory=PipelineReport)
