"""WooCommerce REST API publisher."""

import asyncio
import logging
from typing import Any

import httpx

from catalog_crawler.config import CatalogConfig
from catalog_crawler.catalog.formatter import validate_payload
from catalog_crawler.errors import (
    CatalogAPIError,
    CatalogCrawlerError,
    FatalConflictError,
    ProcessingConflictError,
    TransientAPIError,
)
from catalog_crawler.models import ProductRecord
from catalog_crawler.pipeline.retry import PROCESSING_CONFLICT_CODE

logger = logging.getLogger(__name__)

API_PATH = "/wp-json/wc/v3/"


class WooCommercePublisher:
    """Publish formatted products to a WooCommerce store.

    Use as an async context manager. Authentication is sent as query string
    parameters, which works over plain HTTPS without OAuth signing.
    Category and tag ids are cached per publisher; lookups for the same name
    are serialized so concurrent uploads never create a term twice.
    """

    def __init__(
        self,
        config: CatalogConfig,
        client: httpx.AsyncClient | None = None,
        sleep=asyncio.sleep,
    ):
        self.config = config
        self.base_url = config.url.rstrip("/") + API_PATH
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._category_cache: dict[str, int] = {}
        self._tag_cache: dict[str, int] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        if not self._client:
            raise RuntimeError("Publisher not initialized. Use 'async with' context manager.")

        query = {
            "consumer_key": self.config.consumer_key,
            "consumer_secret": self.config.consumer_secret,
            **(params or {}),
        }
        try:
            response = await self._client.request(
                method, self.base_url + path, params=query, json=json
            )
        except httpx.HTTPError as e:
            raise TransientAPIError(f"{method} {path} failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        if response.is_error:
            message = response.reason_phrase
            code = None
            if isinstance(payload, dict):
                message = payload.get("message") or message
                code = payload.get("code")
            if code == PROCESSING_CONFLICT_CODE and "already under processing" in str(message).lower():
                raise ProcessingConflictError(message)
            raise CatalogAPIError(
                f"{method} {path} failed ({response.status_code}): {message}",
                status_code=response.status_code,
                payload=payload,
            )
        return payload

    async def test_connection(self) -> bool:
        """Verify the API is reachable with the configured credentials."""
        await self._request("GET", "products", params={"per_page": 1})
        logger.info("WooCommerce API connection successful")
        return True

    async def get_or_create_category(self, name: str) -> int | None:
        return await self._get_or_create("products/categories", name, self._category_cache)

    async def get_or_create_tag(self, name: str) -> int | None:
        return await self._get_or_create("products/tags", name, self._tag_cache)

    async def _get_or_create(self, endpoint: str, name: str, cache: dict[str, int]) -> int | None:
        if not name or not name.strip():
            logger.warning("Skipping empty %s name", endpoint)
            return None
        key = name.strip().lower()
        if key in cache:
            return cache[key]

        lock = self._locks.setdefault(f"{endpoint}:{key}", asyncio.Lock())
        async with lock:
            if key in cache:
                return cache[key]
            existing = await self._request(
                "GET", endpoint, params={"search": name, "per_page": 100}
            )
            match = next(
                (
                    term for term in existing or []
                    if str(term.get("name", "")).strip().lower() == key
                ),
                None,
            )
            if match is None:
                logger.info("Creating %s: %s", endpoint, name)
                match = await self._request("POST", endpoint, json={"name": name.strip()})
            else:
                logger.debug("Found existing %s: %s (ID: %s)", endpoint, name, match["id"])
            cache[key] = match["id"]
        return cache[key]

    async def _resolve_terms(self, terms: list[dict[str, Any]], resolve) -> list[dict[str, int]]:
        ids = []
        for term in terms:
            name = term.get("name")
            try:
                term_id = await resolve(name)
            except CatalogCrawlerError as e:
                logger.warning("Failed to resolve %s: %s", name, e)
                continue
            if term_id is not None:
                ids.append({"id": term_id})
        return ids

    async def find_by_sku(self, sku: str) -> dict[str, Any] | None:
        found = await self._request("GET", "products", params={"sku": sku})
        return found[0] if found else None

    async def upload(self, payload: dict[str, Any]) -> int | str | None:
        """Create the product described by ``payload`` and return its remote id.

        An existing product with the same SKU is a fatal conflict when it is
        published; otherwise it is force-deleted before creating the new one.
        """
        validate_payload(payload)
        sku = payload["sku"]

        existing = await self.find_by_sku(sku)
        if existing:
            if existing.get("status") == "publish":
                raise FatalConflictError(f"Product with SKU {sku} already exists and is published")
            await self._request("DELETE", f"products/{existing['id']}", params={"force": "true"})
            logger.info("Deleted existing unpublished product with SKU %s", sku)
            await self._sleep(self.config.duplicate_settle_seconds)

        body = dict(payload)
        body["categories"] = await self._resolve_terms(
            payload.get("categories", []), self.get_or_create_category
        )
        body["tags"] = await self._resolve_terms(payload.get("tags", []), self.get_or_create_tag)

        created = await self._request("POST", "products", json=body)
        remote_id = created.get("id") if isinstance(created, dict) else None
        logger.info("Uploaded product %s (SKU: %s, ID: %s)", payload.get("name"), sku, remote_id)
        return remote_id

    def filter_by_category(self, products: list[ProductRecord]) -> list[ProductRecord]:
        """Keep products with at least one category in ``filter_categories``."""
        wanted = {c.lower() for c in self.config.filter_categories}
        if not wanted:
            return list(products)
        return [p for p in products if any(c.lower() in wanted for c in p.categories)]
