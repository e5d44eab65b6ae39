"""Amazon Product Advertising API (PA-API 5) listing source."""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from battracker.config import settings
from battracker.ingest.base import NetworkError, ProductSource, RawListing
from battracker.ingest.rate_limiter import RateLimiter, rate_limiter
from battracker.metrics import record_source_request

logger = logging.getLogger(__name__)

SERVICE = "ProductAdvertisingAPI"
TARGET_PREFIX = "com.amazon.paapi5.v1.ProductAdvertisingAPIv1."
PATHS = {
    "SearchItems": "/paapi5/searchitems",
    "GetItems": "/paapi5/getitems",
    "GetVariations": "/paapi5/getvariations",
}

RESOURCES = [
    "ItemInfo.Title",
    "ItemInfo.Features",
    "Offers.Listings.Price",
    "Offers.Listings.Availability.Message",
    "Offers.Listings.Availability.Type",
    "Images.Primary.Large",
    "CustomerReviews.Count",
    "CustomerReviews.StarRating",
]
VARIATION_RESOURCES = RESOURCES + ["VariationSummary.VariationDimension"]

IN_STOCK_TYPES = {"Now", "Preorder", "Backorder"}


def affiliate_url(asin: str, partner_tag: Optional[str] = None) -> str:
    tag = partner_tag or settings.amazon_partner_tag
    return f"https://www.amazon.com/dp/{asin}?tag={tag}"


def build_search_terms(model: Any) -> list[str]:
    """Keyword searches for a bat model, most specific first."""
    return [
        f"{model.brand} {model.series} {model.year} {model.certification} baseball bat",
        f"{model.brand} {model.series} {model.certification} baseball bat",
        f"{model.brand} {model.series} baseball bat",
    ]


def _sign(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def sign_request(
    access_key: str,
    secret_key: str,
    host: str,
    region: str,
    path: str,
    target: str,
    payload: str,
    now: Optional[datetime] = None,
) -> dict[str, str]:
    """
    Build AWS Signature Version 4 headers for a PA-API call.

    Returns:
        Request headers including ``Authorization``
    """
    now = now or datetime.now(timezone.utc)
    amz_date = now.strftime("%Y%m%dT%H%M%SZ")
    date_stamp = amz_date[:8]

    headers = {
        "content-encoding": "amz-1.0",
        "content-type": "application/json; charset=utf-8",
        "host": host,
        "x-amz-date": amz_date,
        "x-amz-target": TARGET_PREFIX + target,
    }
    signed_headers = ";".join(sorted(headers))
    canonical_headers = "".join(f"{k}:{headers[k]}\n" for k in sorted(headers))
    canonical_request = "\n".join(
        [
            "POST",
            path,
            "",
            canonical_headers,
            signed_headers,
            hashlib.sha256(payload.encode("utf-8")).hexdigest(),
        ]
    )

    credential_scope = f"{date_stamp}/{region}/{SERVICE}/aws4_request"
    string_to_sign = "\n".join(
        [
            "AWS4-HMAC-SHA256",
            amz_date,
            credential_scope,
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )

    k_date = _sign(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_signing = _sign(_sign(_sign(k_date, region), SERVICE), "aws4_request")
    signature = hmac.new(k_signing, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    headers["authorization"] = (
        f"AWS4-HMAC-SHA256 Credential={access_key}/{credential_scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )
    return headers


def parse_item(item: dict[str, Any], partner_tag: Optional[str] = None) -> RawListing:
    """Convert a PA-API item into a RawListing."""
    asin = item.get("ASIN", "")
    item_info = item.get("ItemInfo") or {}
    title = (item_info.get("Title") or {}).get("DisplayValue", "")
    features = (item_info.get("Features") or {}).get("DisplayValues") or []

    variation_attributes = {
        attr["Name"]: attr["Value"]
        for attr in item.get("VariationAttributes") or []
        if attr.get("Name") and attr.get("Value") is not None
    }

    listings = (item.get("Offers") or {}).get("Listings") or []
    price = None
    availability = "unknown"
    in_stock = False
    if listings:
        offer = listings[0]
        price = (offer.get("Price") or {}).get("Amount")
        availability_info = offer.get("Availability") or {}
        availability = availability_info.get("Message") or availability
        availability_type = availability_info.get("Type")
        if availability_type:
            in_stock = availability_type in IN_STOCK_TYPES
        else:
            in_stock = price is not None

    image_url = (((item.get("Images") or {}).get("Primary") or {}).get("Large") or {}).get("URL")

    reviews = item.get("CustomerReviews") or {}
    rating = (reviews.get("StarRating") or {}).get("Value")

    return RawListing(
        id=asin,
        title=title,
        features=list(features),
        attributes=dict(variation_attributes),
        variation_attributes=variation_attributes,
        price=price,
        in_stock=in_stock,
        availability=availability,
        url=item.get("DetailPageURL") or affiliate_url(asin, partner_tag),
        image_url=image_url,
        rating=float(rating) if rating is not None else None,
        review_count=reviews.get("Count"),
    )


class AmazonProductSource(ProductSource):
    """PA-API client for GetItems, GetVariations and SearchItems."""

    name = "amazon"

    def __init__(
        self,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        partner_tag: Optional[str] = None,
        limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_key = access_key or settings.amazon_access_key
        self.secret_key = secret_key or settings.amazon_secret_key
        self.partner_tag = partner_tag or settings.amazon_partner_tag
        self.host = settings.amazon_host
        self.region = settings.amazon_region
        self.marketplace = settings.amazon_marketplace
        self.limiter = limiter or rate_limiter
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=f"https://{self.host}",
                timeout=settings.amazon_request_timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _base_payload(self) -> dict[str, Any]:
        return {
            "PartnerTag": self.partner_tag,
            "PartnerType": "Associates",
            "Marketplace": self.marketplace,
        }

    async def _request(self, target: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Sign and send one PA-API request.

        Raises:
            NetworkError: On transport failure or an error response
        """
        path = PATHS[target]
        body = json.dumps(payload)
        headers = sign_request(
            self.access_key,
            self.secret_key,
            self.host,
            self.region,
            path,
            target,
            body,
        )

        client = await self._get_client()
        try:
            response = await client.post(path, content=body, headers=headers)
        except httpx.HTTPError as e:
            record_source_request(self.name, target, "error")
            raise NetworkError(f"{target} request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code != 200:
            errors = data.get("Errors") or [{}]
            code = errors[0].get("Code", "")
            if code == "NoResults":
                record_source_request(self.name, target, "empty")
                return {}
            record_source_request(self.name, target, str(response.status_code))
            message = errors[0].get("Message", "Unknown error")
            raise NetworkError(f"{target} API error ({response.status_code}): {message}")

        record_source_request(self.name, target, "ok")
        return data

    async def get_items_by_identifier(self, identifiers: list[str]) -> list[RawListing]:
        if not identifiers:
            return []
        payload = {**self._base_payload(), "ItemIds": identifiers, "Resources": RESOURCES}
        data = await self._request("GetItems", payload)
        items = (data.get("ItemsResult") or {}).get("Items") or []
        logger.info(f"GetItems returned {len(items)} of {len(identifiers)} ASINs")
        return [parse_item(item, self.partner_tag) for item in items]

    async def get_variations(self, seed_id: str) -> list[RawListing]:
        listings: dict[str, RawListing] = {}
        page = 1

        while True:
            if page > 1:
                await self.limiter.acquire(self.name, settings.amazon_min_request_interval)

            payload = {
                **self._base_payload(),
                "ASIN": seed_id,
                "Resources": VARIATION_RESOURCES,
                "ItemPage": page,
            }
            try:
                data = await self._request("GetVariations", payload)
            except NetworkError:
                if not listings:
                    raise
                logger.warning(
                    f"GetVariations page {page} failed for {seed_id}, "
                    f"keeping {len(listings)} variations"
                )
                break

            result = data.get("VariationsResult") or {}
            items = result.get("Items") or []
            if not items:
                break

            for item in items:
                listing = parse_item(item, self.partner_tag)
                listings.setdefault(listing.id, listing)

            page_count = (result.get("VariationSummary") or {}).get("PageCount") or 1
            if page >= page_count:
                break
            page += 1

        logger.info(f"GetVariations found {len(listings)} unique variations for {seed_id}")
        return list(listings.values())

    async def search(self, keywords: str, brand: Optional[str] = None) -> list[RawListing]:
        payload = {
            **self._base_payload(),
            "Keywords": keywords,
            "Resources": RESOURCES,
            "SearchIndex": "SportsAndOutdoors",
            "BrowseNodeId": settings.amazon_browse_node_id,
            "ItemCount": 10,
            "ItemPage": 1,
            "SortBy": "Relevance",
        }
        if brand:
            payload["Brand"] = brand

        data = await self._request("SearchItems", payload)
        items = (data.get("SearchResult") or {}).get("Items") or []
        logger.info(f"SearchItems returned {len(items)} products for {keywords!r}")
        return [parse_item(item, self.partner_tag) for item in items]
