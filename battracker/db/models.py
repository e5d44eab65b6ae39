"""SQLAlchemy database models."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Retailer(Base):
    """A store that sells bats (Amazon, JustBats, Dick's)."""

    __tablename__ = "retailers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    affiliate_base_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    prices: Mapped[list["Price"]] = relationship("Price", back_populates="retailer")


class BatModel(Base):
    """Canonical bat identity, entered manually and enriched by the pipelines."""

    __tablename__ = "bat_models"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    brand: Mapped[str] = mapped_column(String(64), nullable=False)
    series: Mapped[str] = mapped_column(String(128), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    certification: Mapped[str] = mapped_column(String(32), nullable=False)  # BBCOR, USSSA, USA Baseball
    material: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    construction: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    barrel_size: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # Seed ASIN used to bootstrap variant discovery on Amazon
    amazon_asin: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # JustBats product page
    justbats_product_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url_status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)
    url_last_verified: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Enrichment
    model_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    swing_weight: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    review_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    variants: Mapped[list["BatVariant"]] = relationship(
        "BatVariant", back_populates="bat_model", order_by="BatVariant.id"
    )


class BatVariant(Base):
    """A length/drop combination of a bat model."""

    __tablename__ = "bat_variants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    bat_model_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bat_models.id"), nullable=False
    )
    length: Mapped[str] = mapped_column(String(16), nullable=False)  # e.g. 32"
    weight: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)  # e.g. 29 oz
    drop: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)  # e.g. -3
    asin: Mapped[Optional[str]] = mapped_column(String(16), nullable=True, index=True)
    amazon_product_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    bat_model: Mapped["BatModel"] = relationship("BatModel", back_populates="variants")
    prices: Mapped[list["Price"]] = relationship(
        "Price", back_populates="bat_variant", order_by="Price.id"
    )

    __table_args__ = (
        UniqueConstraint("bat_model_id", "length", "drop", name="uq_variant_model_length_drop"),
    )


class Price(Base):
    """Current price of a variant at one retailer, with the previous price kept."""

    __tablename__ = "prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    bat_variant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bat_variants.id"), nullable=False
    )
    retailer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("retailers.id"), nullable=False
    )
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    previous_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    in_stock: Mapped[bool] = mapped_column(default=True, nullable=False)
    product_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    price_change_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    # Numeric(8, 2) tops out at 999999.99; callers clamp before writing
    price_change_percentage: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(8, 2), nullable=True
    )

    bat_variant: Mapped["BatVariant"] = relationship("BatVariant", back_populates="prices")
    retailer: Mapped["Retailer"] = relationship("Retailer", back_populates="prices")

    __table_args__ = (
        UniqueConstraint("bat_variant_id", "retailer_id", name="uq_price_variant_retailer"),
    )
