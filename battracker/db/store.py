"""Canonical catalog store: bat models, variants, prices and retailers.

Every method opens its own session and commits on exit, so each variant or
price write is an independent unit. Callers receive plain records rather than
ORM instances and never hold a session across network calls.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from battracker.db.models import BatModel, BatVariant, Price, Retailer

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the store rejects a read or write."""

    pass


@dataclass
class PriceRecord:
    """A (variant, retailer) price row."""

    id: int
    variant_id: int
    retailer_id: int
    retailer_name: str
    price: Decimal
    previous_price: Optional[Decimal]
    in_stock: bool
    last_updated: datetime
    price_change_percentage: Optional[Decimal] = None
    product_url: Optional[str] = None


@dataclass
class VariantRecord:
    """A bat variant with its current prices."""

    id: int
    model_id: int
    length: str
    weight: Optional[str]
    drop: Optional[str]
    asin: Optional[str] = None
    product_url: Optional[str] = None
    prices: list[PriceRecord] = field(default_factory=list)


@dataclass
class ModelRecord:
    """A bat model with its variants, as read at the start of a run."""

    id: int
    brand: str
    series: str
    year: int
    certification: str
    material: Optional[str] = None
    construction: Optional[str] = None
    barrel_size: Optional[str] = None
    amazon_asin: Optional[str] = None
    justbats_product_url: Optional[str] = None
    url_status: str = "active"
    model_number: Optional[str] = None
    swing_weight: Optional[str] = None
    image_url: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    variants: list[VariantRecord] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.brand} {self.series} {self.year}"


# Fields the pipelines may write back onto a bat model
ENRICHABLE_MODEL_FIELDS = {
    "amazon_asin",
    "url_status",
    "url_last_verified",
    "model_number",
    "swing_weight",
    "image_url",
    "rating",
    "review_count",
}


def _price_record(price: Price) -> PriceRecord:
    return PriceRecord(
        id=price.id,
        variant_id=price.bat_variant_id,
        retailer_id=price.retailer_id,
        retailer_name=price.retailer.name if price.retailer else "",
        price=price.price,
        previous_price=price.previous_price,
        in_stock=price.in_stock,
        last_updated=price.last_updated,
        price_change_percentage=price.price_change_percentage,
        product_url=price.product_url,
    )


def _variant_record(variant: BatVariant, with_prices: bool = True) -> VariantRecord:
    return VariantRecord(
        id=variant.id,
        model_id=variant.bat_model_id,
        length=variant.length,
        weight=variant.weight,
        drop=variant.drop,
        asin=variant.asin,
        product_url=variant.amazon_product_url,
        prices=[_price_record(p) for p in variant.prices] if with_prices else [],
    )


def _model_record(model: BatModel) -> ModelRecord:
    return ModelRecord(
        id=model.id,
        brand=model.brand,
        series=model.series,
        year=model.year,
        certification=model.certification,
        material=model.material,
        construction=model.construction,
        barrel_size=model.barrel_size,
        amazon_asin=model.amazon_asin,
        justbats_product_url=model.justbats_product_url,
        url_status=model.url_status,
        model_number=model.model_number,
        swing_weight=model.swing_weight,
        image_url=model.image_url,
        rating=model.rating,
        review_count=model.review_count,
        variants=[_variant_record(v) for v in model.variants],
    )


class CatalogStore:
    """Read/write access to the bat catalog."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self):
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise StorageError(str(e)) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_models(
        self,
        with_justbats_url: bool = False,
        model_ids: Optional[list[int]] = None,
    ) -> list[ModelRecord]:
        """
        Load bat models joined with variants and prices.

        Args:
            with_justbats_url: Only models with an active JustBats product URL
            model_ids: Restrict to these model IDs

        Returns:
            Models ordered by ID
        """
        query = (
            select(BatModel)
            .options(
                selectinload(BatModel.variants)
                .selectinload(BatVariant.prices)
                .selectinload(Price.retailer)
            )
            .order_by(BatModel.id)
        )
        if with_justbats_url:
            query = query.where(
                BatModel.justbats_product_url.is_not(None),
                BatModel.url_status == "active",
            )
        if model_ids:
            query = query.where(BatModel.id.in_(model_ids))

        async with self._session() as db:
            result = await db.execute(query)
            return [_model_record(m) for m in result.scalars().all()]

    async def find_retailer_id(self, name_fragment: str) -> Optional[int]:
        """Find a retailer whose name contains the fragment (case-insensitive)."""
        async with self._session() as db:
            result = await db.execute(
                select(Retailer.id)
                .where(func.lower(Retailer.name).contains(name_fragment.lower()))
                .order_by(Retailer.id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def get_or_create_retailer(
        self,
        name: str,
        website: Optional[str] = None,
        affiliate_base_url: Optional[str] = None,
    ) -> int:
        """Return the retailer ID for a name, creating the retailer if missing."""
        retailer_id = await self.find_retailer_id(name)
        if retailer_id is not None:
            return retailer_id

        async with self._session() as db:
            retailer = Retailer(name=name, website=website, affiliate_base_url=affiliate_base_url)
            db.add(retailer)
            await db.flush()
            logger.info(f"Created retailer {name} with ID {retailer.id}")
            return retailer.id

    async def find_variant(
        self, model_id: int, length: str, drop: Optional[str]
    ) -> Optional[VariantRecord]:
        """Find a model's variant by exact (length, drop)."""
        query = select(BatVariant).where(
            BatVariant.bat_model_id == model_id,
            BatVariant.length == length,
        )
        if drop is None:
            query = query.where(BatVariant.drop.is_(None))
        else:
            query = query.where(BatVariant.drop == drop)

        async with self._session() as db:
            result = await db.execute(query.order_by(BatVariant.id).limit(1))
            variant = result.scalar_one_or_none()
            return _variant_record(variant, with_prices=False) if variant else None

    async def get_price(self, variant_id: int, retailer_id: int) -> Optional[PriceRecord]:
        """Get the price row for a (variant, retailer) pair."""
        async with self._session() as db:
            result = await db.execute(
                select(Price)
                .options(selectinload(Price.retailer))
                .where(Price.bat_variant_id == variant_id, Price.retailer_id == retailer_id)
            )
            price = result.scalar_one_or_none()
            return _price_record(price) if price else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_variant(
        self,
        model_id: int,
        length: str,
        weight: Optional[str],
        drop: Optional[str],
        asin: Optional[str] = None,
        product_url: Optional[str] = None,
    ) -> int:
        """Insert a new variant and return its ID."""
        async with self._session() as db:
            variant = BatVariant(
                bat_model_id=model_id,
                length=length,
                weight=weight,
                drop=drop,
                asin=asin,
                amazon_product_url=product_url,
            )
            db.add(variant)
            await db.flush()
            return variant.id

    async def attach_variant_identifier(
        self, variant_id: int, asin: str, product_url: Optional[str] = None
    ) -> bool:
        """
        Set a variant's external identifier unless one is already stored.

        Returns:
            True if the identifier was written
        """
        async with self._session() as db:
            result = await db.execute(
                update(BatVariant)
                .where(BatVariant.id == variant_id, BatVariant.asin.is_(None))
                .values(asin=asin, amazon_product_url=product_url)
            )
            return result.rowcount > 0

    async def insert_price(
        self,
        variant_id: int,
        retailer_id: int,
        price: Decimal,
        in_stock: bool,
        product_url: Optional[str],
        now: datetime,
    ) -> int:
        async with self._session() as db:
            row = Price(
                bat_variant_id=variant_id,
                retailer_id=retailer_id,
                price=price,
                previous_price=None,
                in_stock=in_stock,
                product_url=product_url,
                last_updated=now,
            )
            db.add(row)
            await db.flush()
            return row.id

    async def touch_price(self, price_id: int, in_stock: bool, now: datetime) -> None:
        async with self._session() as db:
            await db.execute(
                update(Price)
                .where(Price.id == price_id)
                .values(in_stock=in_stock, last_updated=now)
            )

    async def update_price(
        self,
        price_id: int,
        price: Decimal,
        previous_price: Decimal,
        change_percentage: Optional[Decimal],
        in_stock: bool,
        product_url: Optional[str],
        now: datetime,
    ) -> None:
        values: dict[str, Any] = {
            "price": price,
            "previous_price": previous_price,
            "price_change_percentage": change_percentage,
            "price_change_date": now,
            "in_stock": in_stock,
            "last_updated": now,
        }
        if product_url:
            values["product_url"] = product_url

        async with self._session() as db:
            await db.execute(update(Price).where(Price.id == price_id).values(**values))

    async def set_stock_for_model(self, model_id: int, retailer_id: int, in_stock: bool) -> int:
        """Set the stock flag on every price of a model at one retailer."""
        variant_ids = select(BatVariant.id).where(BatVariant.bat_model_id == model_id)
        async with self._session() as db:
            result = await db.execute(
                update(Price)
                .where(Price.retailer_id == retailer_id, Price.bat_variant_id.in_(variant_ids))
                .values(in_stock=in_stock)
            )
            return result.rowcount

    async def enrich_model(self, model_id: int, **fields: Any) -> None:
        """Write enrichment fields (rating, image, verified timestamp, ...) onto a model."""
        unknown = set(fields) - ENRICHABLE_MODEL_FIELDS
        if unknown:
            raise ValueError(f"Not enrichable: {', '.join(sorted(unknown))}")
        if not fields:
            return

        async with self._session() as db:
            await db.execute(update(BatModel).where(BatModel.id == model_id).values(**fields))

    async def mark_url_broken(self, model_id: int) -> None:
        await self.enrich_model(
            model_id, url_status="broken", url_last_verified=datetime.utcnow()
        )
