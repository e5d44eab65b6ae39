"""Shared fixtures: in-memory catalog database, fake clock, model factory."""

from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from battracker.db.models import Base, BatModel
from battracker.db.store import CatalogStore
from battracker.ingest.rate_limiter import RateLimiter

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Monotonic clock that only moves when something sleeps or advances it."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
async def session_factory():
    """Fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def store(session_factory) -> CatalogStore:
    return CatalogStore(session_factory)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(fake_clock) -> RateLimiter:
    return RateLimiter(clock=fake_clock, sleep=fake_clock.sleep)


@pytest.fixture
def make_model(session_factory):
    """Insert a bat model and return its ID."""

    async def _make_model(
        brand: str = "DeMarini",
        series: str = "Voodoo",
        year: int = 2024,
        certification: str = "BBCOR",
        material: str = "Composite",
        amazon_asin: Optional[str] = None,
        justbats_product_url: Optional[str] = None,
        **fields,
    ) -> int:
        async with session_factory() as db:
            model = BatModel(
                brand=brand,
                series=series,
                year=year,
                certification=certification,
                material=material,
                construction="2-Piece",
                barrel_size='2 5/8"',
                amazon_asin=amazon_asin,
                justbats_product_url=justbats_product_url,
                **fields,
            )
            db.add(model)
            await db.commit()
            return model.id

    return _make_model
