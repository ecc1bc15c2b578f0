# File: tests/test_extractors.py
import pytest

from catalog_crawler.errors import ParseError
from catalog_crawler.extractor import EnfoldExtractor, ExtractorRegistry, WooCommerceExtractor

ENFOLD_CATEGORY = """
<html><body>
  <div class="entry-content-wrapper">
    <a href="/portfolio-item/hybrid-inverter-5kw/">Hybrid 5kW</a>
    <a href="https://solar.example.com/portfolio-item/lithium-battery/#gallery">Battery</a>
    <a href="/portfolio-item/hybrid-inverter-5kw/">Hybrid 5kW again</a>
    <a href="/contact/">Contact</a>
    <a href="mailto:info@example.com">Mail</a>
  </div>
</body></html>
"""

ENFOLD_PRODUCT = """
<html><body>
  <div class="entry-content-wrapper">
    <h3 class="av-special-heading-tag">Installation guide</h3>
    <h1 class="av-special-heading-tag">Hybrid Inverter 5kW</h1>
    <div class="iconbox_content">
      <div class="iconbox_content_title">Efficiency</div>
      <div class="iconbox_content_container">97.6% peak efficiency</div>
    </div>
    <div class="iconbox_content">
      <div class="iconbox_content_container">Wi-Fi monitoring</div>
    </div>
    <table class="avia-data-table">
      <tr><th>Rated power</th><td>5000 W</td></tr>
      <tr><td>Battery voltage</td><td>48 V</td></tr>
    </table>
  </div>
</body></html>
"""

WOO_SHOP = """
<html><body class="woocommerce">
  <ul class="products">
    <li><a href="https://shop.example.com/product/deep-cycle-200ah/">Deep cycle</a></li>
    <li><a href="/product/mppt-charger-60a/?ref=list">MPPT</a></li>
    <li><a href="/product-category/batteries/">Batteries</a></li>
  </ul>
</body></html>
"""

WOO_PRODUCT = """
<html><head><title>Shop | MPPT 60A</title></head><body>
  <div class="product type-product">
    <div class="woocommerce-product-gallery"><img src="/img/mppt.jpg" alt="MPPT"></div>
    <div class="summary">
      <h1 class="product_title">MPPT Charge Controller 60A</h1>
      <p class="price">R 2,499.00</p>
    </div>
    <div class="woocommerce-tabs">
      <div id="tab-additional_information"><table><tr><th>Weight</th><td>3 kg</td></tr></table></div>
      <section class="related products"><a href="/product/other/">Other</a></section>
    </div>
  </div>
</body></html>
"""


def test_enfold_category_page_collects_portfolio_links():
    record = EnfoldExtractor().extract(ENFOLD_CATEGORY, "https://solar.example.com/products/")

    assert record.is_leaf is False
    assert record.discovered_links == (
        "https://solar.example.com/portfolio-item/hybrid-inverter-5kw/",
        "https://solar.example.com/portfolio-item/lithium-battery/",
    )


def test_enfold_product_page():
    url = "https://solar.example.com/portfolio-item/hybrid-inverter-5kw/"
    record = EnfoldExtractor().extract(ENFOLD_PRODUCT, url)

    assert record.is_leaf is True
    assert record.title == "Hybrid Inverter 5kW"
    assert "Efficiency: 97.6% peak efficiency" in record.page_content
    assert "Wi-Fi monitoring" in record.page_content
    assert "Rated power: 5000 W" in record.page_content
    assert "Battery voltage: 48 V" in record.page_content
    assert record.discovered_links == ()


def test_enfold_page_without_wrapper_is_not_a_product():
    record = EnfoldExtractor().extract("<html><body><p>404</p></body></html>", "https://x.com/")

    assert record.is_leaf is False
    assert record.discovered_links == ()


def test_woocommerce_shop_page_collects_product_links():
    record = WooCommerceExtractor().extract(WOO_SHOP, "https://shop.example.com/shop/")

    assert record.is_leaf is False
    assert record.discovered_links == (
        "https://shop.example.com/product/deep-cycle-200ah/",
        "https://shop.example.com/product/mppt-charger-60a/?ref=list",
    )


def test_woocommerce_product_page_drops_related_products():
    record = WooCommerceExtractor().extract(WOO_PRODUCT, "https://shop.example.com/product/mppt-charger-60a/")

    assert record.is_leaf is True
    assert record.title == "MPPT Charge Controller 60A"
    assert "R 2,499.00" in record.page_content
    assert "Weight" in record.page_content
    assert "/product/other/" not in record.page_content


def test_empty_document_raises_parse_error():
    with pytest.raises(ParseError):
        WooCommerceExtractor().extract("   ", "https://shop.example.com/")


def test_link_marker_override():
    record = WooCommerceExtractor(link_marker="/product-category/").extract(
        WOO_SHOP, "https://shop.example.com/shop/"
    )

    assert record.discovered_links == ("https://shop.example.com/product-category/batteries/",)


def test_registry_selects_by_name():
    assert isinstance(ExtractorRegistry.get("Enfold"), EnfoldExtractor)
    assert isinstance(ExtractorRegistry.get("woocommerce"), WooCommerceExtractor)
    assert ExtractorRegistry.get("shopify") is None
    assert {cls.name for cls in ExtractorRegistry.list_extractors()} >= {"enfold", "woocommerce"}
