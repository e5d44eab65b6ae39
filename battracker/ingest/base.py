"""Source interfaces for listing data."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


class NetworkError(Exception):
    """Raised when a source request fails (timeout, DNS, non-2xx, protocol error)."""

    def __init__(self, message: str, broken: bool = False):
        super().__init__(message)
        # True when the target itself is gone (404, unresolvable host)
        self.broken = broken


@dataclass
class RawListing:
    """A product listing as returned by a retailer source."""

    id: str
    title: str
    features: list[str] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    variation_attributes: dict[str, str] = field(default_factory=dict)
    price: Any = None
    in_stock: bool = True
    availability: str = "unknown"
    url: Optional[str] = None
    image_url: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None


@dataclass
class ScrapedRow:
    """One size option on a retailer product page."""

    size_text: str
    price: Any = None
    in_stock: bool = True


@dataclass
class ScrapedPage:
    """A retailer product page reduced to size rows and model details."""

    url: str
    rows: list[ScrapedRow] = field(default_factory=list)
    discontinued: bool = False
    in_stock: bool = True
    model_number: Optional[str] = None
    swing_weight: Optional[str] = None
    image_url: Optional[str] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow()


class ProductSource(ABC):
    """Abstract base class for API-backed listing sources."""

    name: str = "source"

    @abstractmethod
    async def get_items_by_identifier(self, identifiers: list[str]) -> list[RawListing]:
        """
        Fetch listings by external identifier.

        Args:
            identifiers: At most one batch of identifiers (e.g. 10 ASINs)

        Returns:
            Listings found, in no particular order

        Raises:
            NetworkError: If the request fails
        """
        pass

    @abstractmethod
    async def get_variations(self, seed_id: str) -> list[RawListing]:
        """
        Fetch every variation of a parent listing, paginating until exhausted.

        Returns:
            Listings de-duplicated by identifier
        """
        pass

    @abstractmethod
    async def search(self, keywords: str, brand: Optional[str] = None) -> list[RawListing]:
        """Keyword search, optionally restricted to a brand."""
        pass

    async def close(self) -> None:
        pass


class PageSource(ABC):
    """Abstract base class for rendered product-page sources."""

    name: str = "page"

    @abstractmethod
    async def scrape(self, url: str) -> ScrapedPage:
        """
        Render and parse a product page.

        Raises:
            NetworkError: If the page fails to load. ``broken`` is set when the
                URL itself is dead.
        """
        pass

    async def close(self) -> None:
        pass
