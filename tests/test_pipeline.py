"""End-to-end tests for the API-backed price pipeline."""

from decimal import Decimal
from typing import Optional

import pytest

from battracker.db.store import StorageError
from battracker.ingest.base import NetworkError, ProductSource, RawListing
from battracker.worker.pipeline import PipelineOrchestrator

TITLE = "2024 DeMarini Voodoo One BBCOR Baseball Bat"


def _bat(asin, size_name, price, title=TITLE, **kwargs):
    return RawListing(
        id=asin,
        title=title,
        features=["Composite barrel", "Balanced swing"],
        attributes={"size_name": size_name},
        variation_attributes={"size_name": size_name},
        price=price,
        in_stock=True,
        url=f"https://www.amazon.com/dp/{asin}",
        **kwargs,
    )


class FakeProductSource(ProductSource):
    """In-memory product source that records every call."""

    name = "amazon"

    def __init__(self, items=None, variations=None, searches=None, fail=False):
        self.items = {listing.id: listing for listing in items or []}
        self.variations = variations or {}
        self.searches = searches or {}
        self.fail = fail
        self.calls: list[tuple] = []

    async def get_items_by_identifier(self, identifiers: list[str]) -> list[RawListing]:
        self.calls.append(("get_items", tuple(identifiers)))
        if self.fail:
            raise NetworkError("connection refused")
        return [self.items[i] for i in identifiers if i in self.items]

    async def get_variations(self, seed_id: str) -> list[RawListing]:
        self.calls.append(("get_variations", seed_id))
        if self.fail:
            raise NetworkError("connection refused")
        return list(self.variations.get(seed_id, []))

    async def search(self, keywords: str, brand: Optional[str] = None) -> list[RawListing]:
        self.calls.append(("search", keywords))
        if self.fail:
            raise NetworkError("connection refused")
        return list(self.searches.get(keywords, []))


SEED = _bat("B0SEED", '32"/29 oz', 399.95)
VARIATIONS = [
    _bat("B0V31", '31"/28 oz', 399.95),
    SEED,
    _bat("B0V33", '33"/30 oz', 379.95),
]


def _pipeline(store, source, limiter):
    return PipelineOrchestrator(
        store,
        source,
        limiter=limiter,
        min_request_interval=5.0,
        model_delay=2.0,
        search_term_delay=0.5,
    )


@pytest.mark.asyncio
async def test_seed_variations_create_variants_and_prices(store, make_model, limiter, fake_clock):
    """A seeded model gets one variant and one price per discovered size."""
    model_id = await make_model(amazon_asin="B0SEED")
    source = FakeProductSource(items=[SEED], variations={"B0SEED": VARIATIONS})

    stats = await _pipeline(store, source, limiter).run()

    assert stats.processed == 1
    assert stats.variants_created == 3
    assert stats.prices_added == 3
    assert stats.errors == 0

    model = (await store.load_models())[0]
    assert model.id == model_id
    sizes = {(v.length, v.weight, v.drop): v for v in model.variants}
    assert set(sizes) == {
        ('31"', "28 oz", "-3"),
        ('32"', "29 oz", "-3"),
        ('33"', "30 oz", "-3"),
    }
    for variant in model.variants:
        assert len(variant.prices) == 1
        assert variant.prices[0].retailer_name == "Amazon"
    assert sizes[('33"', "30 oz", "-3")].prices[0].price == Decimal("379.95")
    assert sizes[('32"', "29 oz", "-3")].asin == "B0SEED"

    # get_items then get_variations, the second spaced by the request interval
    assert [call[0] for call in source.calls] == ["get_items", "get_variations"]
    assert fake_clock.sleeps == [5.0]


@pytest.mark.asyncio
async def test_second_run_refreshes_stored_identifiers(store, make_model, limiter):
    """Variants with stored ASINs are re-priced without re-matching."""
    await make_model(amazon_asin="B0SEED")
    source = FakeProductSource(items=VARIATIONS, variations={"B0SEED": VARIATIONS})
    await _pipeline(store, source, limiter).run()

    source.items["B0V33"] = _bat("B0V33", '33"/30 oz', 349.95)
    source.calls.clear()
    stats = await _pipeline(store, source, limiter).run()

    assert stats.processed == 1
    assert stats.variants_created == 0
    assert stats.prices_updated == 1
    assert stats.prices_unchanged == 2
    assert [call[0] for call in source.calls] == ["get_items"]

    variant = next(v for v in (await store.load_models())[0].variants if v.asin == "B0V33")
    assert variant.prices[0].price == Decimal("349.95")
    assert variant.prices[0].previous_price == Decimal("379.95")


@pytest.mark.asyncio
async def test_search_fallback_stops_at_first_good_term(store, make_model, limiter):
    """Without a seed, search terms run until one reaches the threshold."""
    await make_model()
    gloves = RawListing(id="B0GLOVE", title="DeMarini Batting Gloves", price=29.99)
    source = FakeProductSource(
        searches={
            "DeMarini Voodoo 2024 BBCOR baseball bat": [gloves],
            "DeMarini Voodoo BBCOR baseball bat": VARIATIONS,
        }
    )

    stats = await _pipeline(store, source, limiter).run()

    assert stats.processed == 1
    assert stats.variants_created == 3
    assert [call for call in source.calls if call[0] == "search"] == [
        ("search", "DeMarini Voodoo 2024 BBCOR baseball bat"),
        ("search", "DeMarini Voodoo BBCOR baseball bat"),
    ]
    model = (await store.load_models())[0]
    assert model.amazon_asin == "B0V31"


@pytest.mark.asyncio
async def test_weak_matches_are_skipped(store, make_model, limiter):
    """A model whose best candidate is below the threshold is skipped."""
    await make_model()
    gloves = RawListing(id="B0GLOVE", title="DeMarini Batting Gloves", price=29.99)
    source = FakeProductSource(searches={"DeMarini Voodoo baseball bat": [gloves]})

    stats = await _pipeline(store, source, limiter).run()

    assert stats.skipped == 1
    assert stats.processed == 0
    assert len([call for call in source.calls if call[0] == "search"]) == 3
    assert (await store.load_models())[0].variants == []


@pytest.mark.asyncio
async def test_nothing_found_is_skipped(store, make_model, limiter):
    await make_model()

    stats = await _pipeline(store, FakeProductSource(), limiter).run()

    assert stats.skipped == 1
    assert stats.errors == 0


@pytest.mark.asyncio
async def test_model_failure_does_not_stop_run(store, make_model, limiter, fake_clock):
    """Network failures are counted per model and the run continues."""
    await make_model(amazon_asin="B0SEED")
    await make_model(series="Meta", amazon_asin="B0META")

    stats = await _pipeline(store, FakeProductSource(fail=True), limiter).run()

    assert stats.errors == 2
    assert stats.processed == 0
    # Politeness pause between the two models
    assert 2.0 in fake_clock.sleeps


@pytest.mark.asyncio
async def test_limit_and_model_filter(store, make_model, limiter):
    first = await make_model(amazon_asin="B0SEED")
    second = await make_model(series="Meta")
    source = FakeProductSource(items=[SEED], variations={"B0SEED": VARIATIONS})

    stats = await _pipeline(store, source, limiter).run(model_ids=[second])
    assert stats.skipped == 1

    stats = await _pipeline(store, source, limiter).run(limit=1)
    assert stats.processed == 1
    assert first == (await store.load_models())[0].id


@pytest.mark.asyncio
async def test_enriches_model_from_single_match(store, make_model, limiter):
    """A single matched listing writes its rating and image onto the model."""
    await make_model(amazon_asin="B0ONLY")
    only = _bat(
        "B0ONLY",
        '32"/29 oz',
        299.95,
        rating=4.6,
        review_count=87,
        image_url="https://m.media-amazon.com/images/I/voodoo.jpg",
    )
    source = FakeProductSource(items=[only])

    stats = await _pipeline(store, source, limiter).run()

    assert stats.processed == 1
    model = (await store.load_models())[0]
    assert model.rating == pytest.approx(4.6)
    assert model.review_count == 87
    assert model.image_url == "https://m.media-amazon.com/images/I/voodoo.jpg"


class _UnavailableStore:
    async def load_models(self, **kwargs):
        raise StorageError("connection refused")


@pytest.mark.asyncio
async def test_unloadable_catalog_fails_run(limiter):
    """Failing to load the model list ends the run with an error."""
    pipeline = _pipeline(_UnavailableStore(), FakeProductSource(), limiter)

    with pytest.raises(StorageError):
        await pipeline.run()
