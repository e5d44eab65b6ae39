"""Background tasks that run the price pipelines."""

import asyncio
import logging
from typing import Optional

from battracker.db.session import AsyncSessionLocal
from battracker.db.store import CatalogStore, StorageError
from battracker.ingest.amazon import AmazonProductSource
from battracker.ingest.justbats import JustBatsPageSource
from battracker.worker.page_pipeline import PageScrapePipeline
from battracker.worker.pipeline import PipelineOrchestrator, RunStats

logger = logging.getLogger(__name__)


class TaskRunner:
    """
    Runner for scheduled pipeline runs.

    A lock per pipeline keeps a slow run from overlapping the next trigger.
    A failed run is logged and picked up again at the next scheduled time.
    """

    def __init__(self):
        self.store = CatalogStore(AsyncSessionLocal)
        self._locks = {"amazon": asyncio.Lock(), "justbats": asyncio.Lock()}

    async def run_amazon_pipeline(
        self, model_ids: Optional[list[int]] = None, limit: Optional[int] = None
    ) -> Optional[RunStats]:
        """Refresh Amazon prices for all bat models."""
        if self._locks["amazon"].locked():
            logger.info("Amazon run already in progress, skipping")
            return None

        async with self._locks["amazon"]:
            source = AmazonProductSource()
            try:
                pipeline = PipelineOrchestrator(self.store, source)
                stats = await pipeline.run(model_ids=model_ids, limit=limit)
            except StorageError as e:
                logger.error(f"Amazon run aborted, could not load bat models: {e}")
                return None
            finally:
                await source.close()

        self._log_summary("Amazon", stats)
        return stats

    async def run_justbats_pipeline(
        self, model_ids: Optional[list[int]] = None, limit: Optional[int] = None
    ) -> Optional[RunStats]:
        """Refresh JustBats prices for models with a product URL."""
        if self._locks["justbats"].locked():
            logger.info("JustBats run already in progress, skipping")
            return None

        async with self._locks["justbats"]:
            source = JustBatsPageSource()
            try:
                pipeline = PageScrapePipeline(self.store, source)
                stats = await pipeline.run(model_ids=model_ids, limit=limit)
            except StorageError as e:
                logger.error(f"JustBats run aborted, could not load bat models: {e}")
                return None
            finally:
                await source.close()

        self._log_summary("JustBats", stats)
        return stats

    @staticmethod
    def _log_summary(name: str, stats: RunStats) -> None:
        logger.info(
            f"{name} summary: processed={stats.processed} added={stats.prices_added} "
            f"updated={stats.prices_updated} unchanged={stats.prices_unchanged} "
            f"variants_created={stats.variants_created} skipped={stats.skipped} "
            f"errors={stats.errors}"
        )


task_runner = TaskRunner()
