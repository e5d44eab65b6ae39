"""Tests for JustBats product-page parsing."""

from decimal import Decimal

from battracker.ingest.justbats import parse_price_text, parse_product_page

URL = "https://www.justbats.com/product/2024-demarini-voodoo-one-bbcor-baseball-bat"

INDIVIDUAL_PRICING = """
<html><body>
<h1 class="product-title">2024 DeMarini Voodoo One BBCOR Baseball Bat: WBD2462010</h1>
<div class="radio-wrapper radio-button">
  <input type="radio" name="size" value="1" data-quantity="5">
  <span class="name">31" (-3)</span><span class="option-price">$349.95</span>
</div>
<div class="radio-wrapper radio-button">
  <input type="radio" name="size" value="2" data-quantity="0">
  <span class="name">32" (-3)</span><span class="option-price">$329.95</span>
</div>
<div class="radio-wrapper radio-button">
  <input type="radio" name="size" value="3" data-quantity="2">
  <span class="name">Used 32" (-3)</span><span class="option-price">$199.95</span>
</div>
<div class="radio-wrapper radio-button">
  <input type="radio" name="size" value="4" data-quantity="1">
  <span class="name">Refurbished 33" (-3)</span><span class="option-price">$219.95</span>
</div>
<table>
  <tr><th>Swing Weight</th><td><a href="/swing-weight">Balanced</a></td></tr>
</table>
<div class="product-main-image">
  <img src="https://d1.cloudfront.net/images/logo.png">
  <img src="https://d1.cloudfront.net/images/products/voodoo-one.jpg">
</div>
</body></html>
"""

MAIN_PRICE = """
<html><body>
<div class="product-price">$299.95</div>
<div class="radio-wrapper radio-button">
  <input type="radio" name="size" value="1" data-quantity="3">
  <span class="name">30" (-10)</span>
</div>
<div class="radio-wrapper radio-button">
  <input type="radio" name="size" value="2">
  <span class="name">31" (-10)</span>
</div>
<div class="product-details"><table><tr><td>Model: CBX10-24</td></tr></table></div>
</body></html>
"""

DISCONTINUED = """
<html><body>
<div class="discontinued-label">Discontinued</div>
<div class="price">$279.95</div>
<div class="radio-wrapper radio-button">
  <input type="radio" name="size" value="1" data-quantity="4">
  <span class="name">32" (-3)</span>
</div>
</body></html>
"""


def test_parse_price_text():
    assert parse_price_text("$349.95") == Decimal("349.95")
    assert parse_price_text("$1,199.95") == Decimal("1199.95")
    assert parse_price_text("$299.95 - $349.95") == Decimal("299.95")
    assert parse_price_text("Call for price") is None
    assert parse_price_text("") is None


def test_individual_option_prices():
    """Each new-condition option becomes a row with its own price and stock."""
    page = parse_product_page(INDIVIDUAL_PRICING, URL)

    assert page.url == URL
    assert [row.size_text for row in page.rows] == ['31" (-3)', '32" (-3)']
    assert [row.price for row in page.rows] == [Decimal("349.95"), Decimal("329.95")]
    assert [row.in_stock for row in page.rows] == [True, False]
    assert not page.discontinued


def test_product_details():
    page = parse_product_page(INDIVIDUAL_PRICING, URL)

    assert page.model_number == "WBD2462010"
    assert page.swing_weight == "Balanced"
    assert page.image_url == "https://d1.cloudfront.net/images/products/voodoo-one.jpg"


def test_main_price_applies_to_all_sizes():
    """Options without their own price take the product price."""
    page = parse_product_page(MAIN_PRICE, URL)

    assert [row.size_text for row in page.rows] == ['30" (-10)', '31" (-10)']
    assert all(row.price == Decimal("299.95") for row in page.rows)
    assert all(row.in_stock for row in page.rows)
    assert page.model_number == "CBX10-24"


def test_discontinued_page():
    """Discontinued products parse with every row out of stock."""
    page = parse_product_page(DISCONTINUED, URL)

    assert page.discontinued
    assert not page.in_stock
    assert [row.in_stock for row in page.rows] == [False]
    assert page.rows[0].price == Decimal("279.95")


def test_page_without_options():
    """A page with only a product price has no size rows and no model details."""
    page = parse_product_page('<html><body><span class="price">$89.95</span></body></html>', URL)

    assert page.rows == []
    assert page.in_stock
    assert page.model_number is None
    assert page.swing_weight is None
    assert page.image_url is None


def test_out_of_stock_availability_banner():
    """A page-level out-of-stock banner marks the page unavailable."""
    html = MAIN_PRICE.replace(
        "<body>", '<body><div class="availability">Out of Stock</div>', 1
    )

    page = parse_product_page(html, URL)

    assert not page.discontinued
    assert not page.in_stock
    assert len(page.rows) == 2
