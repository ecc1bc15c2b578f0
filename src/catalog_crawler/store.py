"""JSON persistence of products, failed pages and failed uploads."""

import json
import logging
from pathlib import Path
from typing import Any

import aiofiles
from pydantic import TypeAdapter, ValidationError

from catalog_crawler.config import OutputConfig
from catalog_crawler.errors import ParseError
from catalog_crawler.models import FailedUpload, PageRecord, ProductRecord

logger = logging.getLogger(__name__)

_products = TypeAdapter(list[ProductRecord])
_pages = TypeAdapter(list[PageRecord])
_uploads = TypeAdapter(list[FailedUpload])


def _product_key(product: ProductRecord) -> str:
    return (product.sku or product.source_url or product.name).lower()


def merge_products(
    existing: list[ProductRecord], new: list[ProductRecord]
) -> list[ProductRecord]:
    """Append ``new`` to ``existing``; a new record replaces one with the same SKU."""
    merged = {_product_key(p): p for p in existing}
    for product in new:
        merged[_product_key(product)] = product
    return list(merged.values())


class ResultStore:
    """Read and write the files of one named product set."""

    def __init__(self, config: OutputConfig):
        self.config = config

    async def _read(self, path: Path, adapter: TypeAdapter) -> list[Any]:
        if not path.exists():
            return []
        async with aiofiles.open(path, encoding="utf-8") as f:
            raw = await f.read()
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            raise ParseError(f"Invalid data in {path}: {e}") from e

    async def _write(self, path: Path, adapter: TypeAdapter, items: list[Any]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = adapter.dump_python(items, mode="json")
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2, ensure_ascii=False))
        logger.debug("Wrote %d records to %s", len(items), path)
        return path

    async def load_products(self) -> list[ProductRecord]:
        return await self._read(self.config.products_path, _products)

    async def save_products(self, products: list[ProductRecord]) -> Path:
        return await self._write(self.config.products_path, _products, products)

    async def add_products(self, products: list[ProductRecord]) -> list[ProductRecord]:
        """Merge ``products`` into the stored set and persist it."""
        merged = merge_products(await self.load_products(), products)
        await self.save_products(merged)
        return merged

    async def load_failed_pages(self) -> list[PageRecord]:
        return await self._read(self.config.failed_pages_path, _pages)

    async def save_failed_pages(self, pages: list[PageRecord]) -> Path | None:
        """Persist ``pages``, or remove the failure file when none remain."""
        path = self.config.failed_pages_path
        if not pages:
            if path.exists():
                path.unlink()
                logger.info("All failed pages recovered, removed %s", path)
            return None
        return await self._write(path, _pages, pages)

    async def load_failed_uploads(self) -> list[FailedUpload]:
        return await self._read(self.config.failed_uploads_path, _uploads)

    async def save_failed_uploads(self, failures: list[FailedUpload]) -> Path | None:
        path = self.config.failed_uploads_path
        if not failures:
            if path.exists():
                path.unlink()
            return None
        return await self._write(path, _uploads, failures)
