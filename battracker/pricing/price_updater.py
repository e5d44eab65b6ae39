"""Validate and apply price observations per (variant, retailer)."""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from battracker.db.store import CatalogStore, StorageError
from battracker.metrics import price_rejections_total, record_price_write

logger = logging.getLogger(__name__)

MIN_PRICE = Decimal("0")
MAX_PRICE = Decimal("999999.99")
MAX_CHANGE_PERCENTAGE = Decimal("999999.99")
# Differences at or below this are the same price
PRICE_TOLERANCE = Decimal("0.01")
CENTS = Decimal("0.01")


class PriceValidationError(Exception):
    """Raised when an observed price is not a usable number."""

    pass


class PriceAction(str, Enum):
    """What applying an observation did."""

    INSERTED = "inserted"
    TOUCHED = "touched"
    UPDATED = "updated"
    REJECTED = "rejected"
    FAILED = "failed"

    def __bool__(self) -> bool:
        return self in (PriceAction.INSERTED, PriceAction.TOUCHED, PriceAction.UPDATED)


@dataclass
class PriceObservation:
    """A price/stock reading for one variant from one source."""

    price: Any
    in_stock: bool = True
    source_url: Optional[str] = None


def validate_price(value: Any) -> Decimal:
    """
    Validate a raw price and round it to cents.

    Args:
        value: Number, Decimal or numeric string

    Returns:
        Price rounded to 2 decimals

    Raises:
        PriceValidationError: If the value is not finite or is outside [0, 999999.99]
    """
    if value is None or isinstance(value, bool):
        raise PriceValidationError(f"Not a price: {value!r}")

    if isinstance(value, float) and not math.isfinite(value):
        raise PriceValidationError(f"Non-finite price: {value!r}")

    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise PriceValidationError(f"Not a price: {value!r}") from e

    if not price.is_finite():
        raise PriceValidationError(f"Non-finite price: {value!r}")
    if price < MIN_PRICE or price > MAX_PRICE:
        raise PriceValidationError(f"Price out of range: {price}")

    return price.quantize(CENTS, rounding=ROUND_HALF_UP)


def change_percentage(old: Decimal, new: Decimal) -> Optional[Decimal]:
    """Percent change from old to new, rounded and clamped; None from a zero price."""
    if old == 0:
        return None
    pct = ((new - old) / old * 100).quantize(CENTS, rounding=ROUND_HALF_UP)
    return max(-MAX_CHANGE_PERCENTAGE, min(MAX_CHANGE_PERCENTAGE, pct))


class PriceUpdater:
    """Idempotent price upsert that keeps the previous price and the change."""

    def __init__(self, store: CatalogStore, retailer_name: str = ""):
        self.store = store
        self.retailer_name = retailer_name

    async def apply_observation(
        self,
        variant_id: int,
        retailer_id: int,
        observation: PriceObservation,
        now: Optional[datetime] = None,
    ) -> PriceAction:
        """
        Apply one observation.

        Inserts a first price, only touches the timestamp and stock flag when the
        price is unchanged (within 0.01), and otherwise moves the current price
        into previous_price.

        Returns:
            PriceAction; truthy when the observation was applied
        """
        try:
            price = validate_price(observation.price)
        except PriceValidationError as e:
            logger.warning(f"Rejected price for variant {variant_id}: {e}")
            price_rejections_total.labels(retailer=self.retailer_name).inc()
            return PriceAction.REJECTED

        now = now or datetime.utcnow()
        in_stock = bool(observation.in_stock)

        try:
            existing = await self.store.get_price(variant_id, retailer_id)

            if existing is None:
                await self.store.insert_price(
                    variant_id, retailer_id, price, in_stock, observation.source_url, now
                )
                action = PriceAction.INSERTED

            elif abs(Decimal(existing.price) - price) <= PRICE_TOLERANCE:
                await self.store.touch_price(existing.id, in_stock, now)
                action = PriceAction.TOUCHED

            else:
                old_price = Decimal(existing.price)
                await self.store.update_price(
                    existing.id,
                    price=price,
                    previous_price=old_price,
                    change_percentage=change_percentage(old_price, price),
                    in_stock=in_stock,
                    product_url=observation.source_url,
                    now=now,
                )
                logger.info(f"Variant {variant_id} price ${old_price} -> ${price}")
                action = PriceAction.UPDATED

        except StorageError as e:
            logger.error(f"Failed to write price for variant {variant_id}: {e}")
            return PriceAction.FAILED

        record_price_write(self.retailer_name, action.value)
        return action
