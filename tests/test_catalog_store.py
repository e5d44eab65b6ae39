"""Tests for the catalog store."""

import pytest

from battracker.db.store import StorageError


@pytest.mark.asyncio
async def test_retailer_lookup_is_case_insensitive_substring(store):
    retailer_id = await store.get_or_create_retailer("JustBats", website="https://www.justbats.com")

    assert await store.find_retailer_id("justbats") == retailer_id
    assert await store.find_retailer_id("Bats") == retailer_id
    assert await store.find_retailer_id("amazon") is None
    assert await store.get_or_create_retailer("JustBats") == retailer_id


@pytest.mark.asyncio
async def test_find_variant_by_length_and_drop(store, make_model):
    model_id = await make_model()
    variant_id = await store.create_variant(model_id, '32"', "29 oz", "-3")
    await store.create_variant(model_id, '32"', "22 oz", "-10")

    found = await store.find_variant(model_id, '32"', "-3")

    assert found.id == variant_id
    assert found.weight == "29 oz"
    assert await store.find_variant(model_id, '33"', "-3") is None


@pytest.mark.asyncio
async def test_duplicate_variant_rejected(store, make_model):
    """(model, length, drop) is unique."""
    model_id = await make_model()
    await store.create_variant(model_id, '32"', "29 oz", "-3")

    with pytest.raises(StorageError):
        await store.create_variant(model_id, '32"', "29 oz", "-3")


@pytest.mark.asyncio
async def test_attach_identifier_only_once(store, make_model):
    model_id = await make_model()
    variant_id = await store.create_variant(model_id, '32"', "29 oz", "-3")

    assert await store.attach_variant_identifier(variant_id, "B0A", "https://www.amazon.com/dp/B0A")
    assert not await store.attach_variant_identifier(variant_id, "B0B")

    variant = await store.find_variant(model_id, '32"', "-3")
    assert variant.asin == "B0A"


@pytest.mark.asyncio
async def test_enrich_model(store, make_model):
    model_id = await make_model()

    await store.enrich_model(model_id, model_number="WBD2462010", rating=4.7)

    model = (await store.load_models(model_ids=[model_id]))[0]
    assert model.model_number == "WBD2462010"
    assert model.rating == pytest.approx(4.7)


@pytest.mark.asyncio
async def test_enrich_model_rejects_identity_fields(store, make_model):
    """Brand, series and the other identity fields are never overwritten."""
    model_id = await make_model()

    with pytest.raises(ValueError):
        await store.enrich_model(model_id, brand="Easton")


@pytest.mark.asyncio
async def test_load_models_with_product_url(store, make_model):
    with_url = await make_model(justbats_product_url="https://www.justbats.com/product/voodoo")
    await make_model(series="Meta")

    models = await store.load_models(with_justbats_url=True)

    assert [m.id for m in models] == [with_url]
