"""FastAPI dependencies."""

from battracker.db.session import AsyncSessionLocal
from battracker.db.store import CatalogStore


def get_catalog_store() -> CatalogStore:
    """Dependency for the catalog store."""
    return CatalogStore(AsyncSessionLocal)
