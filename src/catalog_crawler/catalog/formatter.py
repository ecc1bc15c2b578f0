"""Map extracted product records onto the WooCommerce product payload."""

from typing import Any

from catalog_crawler.errors import ProductValidationError
from catalog_crawler.models import ProductRecord, ProductSpecifications

REQUIRED_FIELDS = ("name", "sku", "regular_price")


def format_price(value: float | None) -> str:
    """WooCommerce expects prices as strings."""
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def _specifications_meta(specs: ProductSpecifications) -> dict[str, Any]:
    formatted: dict[str, Any] = {}
    if specs.technical:
        formatted["technical"] = specs.technical
    if specs.features:
        formatted["features"] = specs.features
    if specs.additional:
        formatted["additional"] = specs.additional
    return formatted


def format_product(product: ProductRecord) -> dict[str, Any]:
    """Build the ``POST /products`` body for ``product``.

    Categories and tags are emitted as ``{"name": ...}`` and resolved to ids by
    the publisher. Stock status is always ``instock``; the extracted value is
    kept in ``meta_data`` as ``original_stock_status``.
    """
    price = product.price
    specs = product.specifications

    attributes: list[dict[str, Any]] = []
    if product.brand:
        attributes.append({"name": "Brand", "visible": True, "options": [product.brand]})
    if specs.technical:
        attributes.append(
            {"name": "Technical Specifications", "visible": True, "options": specs.technical}
        )
    if specs.features:
        attributes.append({"name": "Features", "visible": True, "options": specs.features})

    meta_data: list[dict[str, Any]] = [
        {"key": "specifications", "value": _specifications_meta(specs)},
        {"key": "documents", "value": product.documents.model_dump(exclude_none=True)},
    ]
    if specs.additional:
        meta_data.append({"key": "additional_specifications", "value": specs.additional})
    meta_data.append({"key": "price_history", "value": price.model_dump()})
    meta_data.append({"key": "original_stock_status", "value": product.stock_status})
    if product.source_url:
        meta_data.append({"key": "source_url", "value": product.source_url})

    return {
        "name": product.name,
        "type": "simple",
        "regular_price": format_price(price.regular) or format_price(price.current),
        "sale_price": format_price(price.sale),
        "description": product.description,
        "short_description": product.short_description,
        "categories": [{"name": name} for name in product.categories if name],
        "tags": [{"name": name} for name in product.tags if name],
        "images": [{"src": image.src, "alt": image.alt} for image in product.images if image.src],
        "sku": product.sku or "",
        "stock_status": "instock",
        "attributes": attributes,
        "meta_data": meta_data,
    }


def validate_payload(payload: dict[str, Any]) -> None:
    """Raise ProductValidationError if a field required for publishing is empty."""
    missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
    if missing:
        raise ProductValidationError(
            f"Product {payload.get('name') or 'unknown'} is missing required fields: "
            + ", ".join(missing)
        )
