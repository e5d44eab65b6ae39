"""Read-only bat catalog routes for the comparison UI."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from battracker.api.deps import get_catalog_store
from battracker.db.store import CatalogStore, ModelRecord, StorageError
from battracker.ingest.amazon import affiliate_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bats", tags=["bats"])

RETAILER_KEYS = ("amazon", "dicks", "justbats")
DEFAULT_RATING = 4.0


class VariantView(BaseModel):
    length: str
    drop: Optional[str]
    asin: Optional[str]
    price: dict[str, float]
    stock: dict[str, bool]


class BatView(BaseModel):
    id: int
    brand: str
    series: str
    year: int
    model_number: str = Field(serialization_alias="modelNumber")
    swing_weight: Optional[str] = Field(serialization_alias="swingWeight")
    certification: str
    material: Optional[str]
    construction: Optional[str]
    barrel_size: Optional[str] = Field(serialization_alias="barrelSize")
    image: Optional[str]
    amazon_affiliate_url: Optional[str]
    justbats_product_url: Optional[str]
    variants: List[VariantView]
    rating: float
    reviews: int


def retailer_key(name: str) -> Optional[str]:
    """Map a retailer name to the UI's price column."""
    lowered = name.lower()
    if "amazon" in lowered:
        return "amazon"
    if "dick" in lowered:
        return "dicks"
    if "justbats" in lowered:
        return "justbats"
    return None


def build_catalog_view(models: list[ModelRecord]) -> list[BatView]:
    """
    Shape models for the comparison UI.

    Variants without any price are left out, and so are models left with no
    variants.
    """
    bats = []
    for model in models:
        variants = []
        for variant in model.variants:
            if not variant.prices:
                continue
            price = {key: 0.0 for key in RETAILER_KEYS}
            stock = {key: False for key in RETAILER_KEYS}
            for row in variant.prices:
                key = retailer_key(row.retailer_name)
                if key is None:
                    continue
                price[key] = float(row.price)
                stock[key] = row.in_stock
            variants.append(
                VariantView(
                    length=variant.length,
                    drop=variant.drop,
                    asin=variant.asin,
                    price=price,
                    stock=stock,
                )
            )

        if not variants:
            continue

        bats.append(
            BatView(
                id=model.id,
                brand=model.brand,
                series=model.series,
                year=model.year,
                model_number=model.model_number or str(model.id),
                swing_weight=model.swing_weight,
                certification=model.certification,
                material=model.material,
                construction=model.construction,
                barrel_size=model.barrel_size,
                image=model.image_url,
                amazon_affiliate_url=affiliate_url(model.amazon_asin) if model.amazon_asin else None,
                justbats_product_url=model.justbats_product_url,
                variants=variants,
                rating=model.rating or DEFAULT_RATING,
                reviews=model.review_count or 0,
            )
        )
    return bats


@router.get("", response_model=List[BatView], response_model_by_alias=True)
async def list_bats(
    brand: Optional[str] = Query(None, description="Filter by brand"),
    certification: Optional[str] = Query(None, description="Filter by certification"),
    store: CatalogStore = Depends(get_catalog_store),
):
    """List bat models with at least one priced variant."""
    try:
        models = await store.load_models()
    except StorageError as e:
        logger.error(f"Failed to load bat catalog: {e}")
        raise HTTPException(status_code=503, detail="Catalog unavailable")

    if brand:
        models = [m for m in models if m.brand.lower() == brand.lower()]
    if certification:
        models = [m for m in models if m.certification.lower() == certification.lower()]

    return build_catalog_view(models)
