"""JustBats product-page source: Playwright rendering, selectolax parsing."""

import asyncio
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from selectolax.parser import HTMLParser, Node

from battracker.config import settings
from battracker.ingest.base import NetworkError, PageSource, ScrapedPage, ScrapedRow
from battracker.metrics import record_source_request

logger = logging.getLogger(__name__)

OPTION_SELECTOR = ".radio-wrapper.radio-button"
OPTION_NAME_SELECTOR = '.name, span[class*="name"]'
OPTION_PRICE_SELECTOR = '.option-price, span[class*="price"]'
MAIN_PRICE_SELECTOR = ".price, .product-price, .cost, .amount, [data-price]"
AVAILABILITY_SELECTOR = ".availability, .stock-status, .in-stock, .out-of-stock"
DISCONTINUED_SELECTOR = ".discontinued-label, .discontinued"
IMAGE_SELECTORS = [
    ".product-main-image img",
    ".main-image img",
    ".swiper-slide-active img",
    ".swiper-slide img",
    ".photos-swiper img",
    'img[src*="cloudfront.net/images/products"]',
]
IMAGE_EXCLUDES = ("logo", "badge", "bat-bros", "placeholder")
SKIPPED_CONDITIONS = ("used", "refurbished")
BROKEN_URL_MARKERS = ("ERR_NAME_NOT_RESOLVED", "404", "Page not found")

_PRICE = re.compile(r"(\d[\d,]*(?:\.\d+)?)")
_MODEL_LABEL = re.compile(r"(?:model|item\s*#|sku|part\s*#):\s*([A-Z0-9-]+)", re.I)
_SWING_WEIGHT = re.compile(r"swing\s*weight:\s*([^,\n]+)", re.I)


class PageLoadError(NetworkError):
    """Page failed to load properly."""

    def __init__(self, url: str, reason: str, broken: bool = False):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to load {url}: {reason}", broken=broken)


def parse_price_text(text: Optional[str]) -> Optional[Decimal]:
    """First price in a display string like '$349.95' or '$299.95 - $349.95'."""
    if not text:
        return None
    match = _PRICE.search(text.split(" - ")[0])
    if not match:
        return None
    try:
        return Decimal(match.group(1).replace(",", ""))
    except InvalidOperation:
        return None


def _text(node: Optional[Node]) -> str:
    return node.text(strip=True) if node is not None else ""


def _is_skipped_condition(text: str) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in SKIPPED_CONDITIONS)


def _option_in_stock(wrapper: Node) -> bool:
    radio = wrapper.css_first('input[type="radio"]')
    if radio is None:
        return True
    return radio.attributes.get("data-quantity") != "0"


def _main_price(parser: HTMLParser) -> Optional[Decimal]:
    for node in parser.css(MAIN_PRICE_SELECTOR):
        text = _text(node)
        if "$" in text:
            price = parse_price_text(text)
            if price is not None:
                return price
    return None


def _is_discontinued(parser: HTMLParser) -> bool:
    if parser.css_first(DISCONTINUED_SELECTOR) is not None:
        return True
    body = parser.body
    return body is not None and "DISCONTINUED" in body.text()


def extract_model_number(parser: HTMLParser) -> Optional[str]:
    for heading in parser.css("h1, h2, h3, h4, .product-title, .bat-properties"):
        text = _text(heading)
        lowered = text.lower()
        if ("bat properties" in lowered or "baseball bat:" in lowered) and ":" in text:
            candidate = text.rsplit(":", 1)[1].strip()
            if 2 < len(candidate) < 20:
                return candidate

    for cell in parser.css(".product-details td, .specifications td, .product-info td"):
        match = _MODEL_LABEL.search(_text(cell))
        if match:
            return match.group(1).strip()

    node = parser.css_first("[data-model], [data-sku]")
    if node is not None:
        return node.attributes.get("data-model") or node.attributes.get("data-sku")
    return None


def extract_swing_weight(parser: HTMLParser) -> Optional[str]:
    for row in parser.css("tr"):
        header = row.css_first("th")
        data = row.css_first("td")
        if header is None or data is None:
            continue
        if "swing weight" in _text(header).lower():
            link = data.css_first("a")
            value = _text(link) if link is not None else _text(data)
            if value:
                return value

    for dl in parser.css("dl"):
        for dt, dd in zip(dl.css("dt"), dl.css("dd")):
            if "swing weight" in _text(dt).lower() and _text(dd):
                return _text(dd)

    for section in parser.css(".product-details, .specifications, .product-info"):
        match = _SWING_WEIGHT.search(section.text(separator="\n"))
        if match:
            return match.group(1).strip()
    return None


def extract_image_url(parser: HTMLParser) -> Optional[str]:
    for selector in IMAGE_SELECTORS:
        for img in parser.css(selector):
            src = img.attributes.get("src") or ""
            if "http" not in src or "products" not in src:
                continue
            if any(marker in src for marker in IMAGE_EXCLUDES):
                continue
            return src
    return None


def parse_product_page(html: str, url: str = "") -> ScrapedPage:
    """
    Parse a rendered JustBats product page.

    Used and refurbished options are skipped. When no option carries its own
    price, the main product price applies to every size.

    Args:
        html: Rendered page HTML
        url: Page URL

    Returns:
        ScrapedPage with one row per new-condition size option
    """
    parser = HTMLParser(html)
    discontinued = _is_discontinued(parser)

    options = []
    for wrapper in parser.css(OPTION_SELECTOR):
        if _is_skipped_condition(wrapper.text()):
            continue
        size_text = _text(wrapper.css_first(OPTION_NAME_SELECTOR))
        price_text = _text(wrapper.css_first(OPTION_PRICE_SELECTOR))
        if not size_text:
            continue
        options.append((size_text, price_text, _option_in_stock(wrapper)))

    main_price = _main_price(parser)
    individual_pricing = any(price_text for _, price_text, _ in options)

    rows = []
    for size_text, price_text, in_stock in options:
        if individual_pricing:
            if not price_text:
                continue
            price = parse_price_text(price_text)
        else:
            if main_price is None:
                continue
            price = main_price
        rows.append(
            ScrapedRow(size_text=size_text, price=price, in_stock=in_stock and not discontinued)
        )

    availability = _text(parser.css_first(AVAILABILITY_SELECTOR)).lower()
    page_in_stock = not discontinued and not (
        "out of stock" in availability or "unavailable" in availability
    )

    return ScrapedPage(
        url=url,
        rows=rows,
        discontinued=discontinued,
        in_stock=page_in_stock,
        model_number=extract_model_number(parser),
        swing_weight=extract_swing_weight(parser),
        image_url=extract_image_url(parser),
    )


class JustBatsPageSource(PageSource):
    """Render JustBats product pages in a headless browser."""

    name = "justbats"

    def __init__(self):
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def _get_context(self) -> BrowserContext:
        if self._context is None:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=settings.headless_browser
            )
            self._context = await self._browser.new_context(
                user_agent=settings.browser_user_agent,
                viewport={"width": 1366, "height": 768},
                extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
            )
        return self._context

    async def close(self):
        """Close browser resources."""
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def scrape(self, url: str) -> ScrapedPage:
        context = await self._get_context()
        page: Optional[Page] = None
        try:
            page = await context.new_page()
            try:
                response = await page.goto(
                    url,
                    wait_until="domcontentloaded",
                    timeout=settings.justbats_page_timeout_ms,
                )
            except PlaywrightTimeoutError as e:
                record_source_request(self.name, "page", "timeout")
                raise PageLoadError(url, "Navigation timeout") from e
            except PlaywrightError as e:
                record_source_request(self.name, "page", "error")
                reason = str(e)
                broken = any(marker in reason for marker in BROKEN_URL_MARKERS)
                raise PageLoadError(url, reason, broken=broken) from e

            if response is not None and response.status == 404:
                record_source_request(self.name, "page", "404")
                raise PageLoadError(url, "HTTP 404", broken=True)
            if response is not None and response.status >= 400:
                record_source_request(self.name, "page", str(response.status))
                raise PageLoadError(url, f"HTTP {response.status}")

            # Size options render after the initial document
            await asyncio.sleep(settings.justbats_settle_delay_ms / 1000)
            html = await page.content()
            record_source_request(self.name, "page", "ok")
        finally:
            if page is not None:
                await page.close()

        scraped = parse_product_page(html, url)
        logger.info(
            f"Scraped {len(scraped.rows)} size options from {url}"
            f"{' (discontinued)' if scraped.discontinued else ''}"
        )
        return scraped
