"""Structured product extraction backed by an OpenAI JSON-mode chat completion."""

import json
import logging

from openai import AsyncOpenAI
from pydantic import ValidationError

from catalog_crawler.config import LLMConfig
from catalog_crawler.errors import TransientAPIError
from catalog_crawler.models import PageRecord, ProductRecord

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You extract product data from web page content for an online catalog. "
    "Reply with a single JSON object and nothing else. "
    "Use only facts present in the content; leave unknown values null or empty."
)

PRODUCT_SCHEMA = """{
  "name": "full product name including model number",
  "brand": "product brand or manufacturer",
  "sku": "product SKU or model code",
  "description": "full product description (HTML allowed)",
  "short_description": "brief description under 160 characters",
  "price": {"current": number, "regular": number, "sale": number},
  "stock_status": "current stock status",
  "images": [{"src": "absolute image URL", "alt": "image alt text"}],
  "specifications": {
    "technical": ["technical specification lines"],
    "features": ["product features"],
    "additional": {"label": "value"}
  },
  "documents": {"datasheet": "URL", "manual": "URL", "certificates": ["URL"]},
  "categories": ["category"],
  "tags": ["tag"]
}"""


def build_prompt(record: PageRecord, category_choices: list[str]) -> str:
    """Build the user prompt for one page."""
    choices = ", ".join(category_choices)
    return (
        "Extract product information from this page and return it as JSON with this shape:\n"
        f"{PRODUCT_SCHEMA}\n\n"
        "If categories are not explicitly found, analyze the product details and classify it "
        f"into ONE of these categories: {choices}. "
        "If no tags are found, generate relevant tags based on the product's features and "
        "specifications.\n\n"
        f"Page URL: {record.url}\n"
        f"Page title: {record.title}\n"
        f"Content:\n{record.page_content}"
    )


class ProductExtractor:
    """Turn a leaf PageRecord into a ProductRecord with one model call.

    Retries are not done here; callers wrap ``process`` in a RetryPolicy so
    rate limits raised by the OpenAI client are classified in one place.
    """

    def __init__(self, config: LLMConfig | None = None, client: AsyncOpenAI | None = None):
        self.config = config or LLMConfig()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.config.resolved_api_key())
        return self._client

    def is_product_page(self, record: PageRecord) -> bool:
        marker = self.config.product_url_marker
        return not marker or marker.lower() in record.url.lower()

    async def process(self, record: PageRecord) -> ProductRecord | None:
        """Extract a product from ``record``; ``None`` if the page holds none."""
        if not self.is_product_page(record):
            logger.info("Not a product page: %s", record.url)
            return None

        logger.info("Processing product page: %s", record.url)
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(record, self.config.category_choices)},
            ],
            response_format={"type": "json_object"},
            temperature=self.config.temperature,
            max_tokens=self.config.max_output_tokens,
        )
        content = response.choices[0].message.content or ""

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise TransientAPIError(f"Model returned invalid JSON for {record.url}: {e}") from e

        if not isinstance(data, dict) or not data.get("name"):
            logger.warning("Failed to extract data from: %s", record.url)
            return None

        data["source_url"] = record.url
        try:
            product = ProductRecord.model_validate(data)
        except ValidationError as e:
            logger.warning("Extracted data for %s did not validate: %s", record.url, e)
            return None

        logger.info("Extracted product: %s", product.name)
        return product
