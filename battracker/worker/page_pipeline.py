"""Per-model price refresh from retailer product pages (JustBats)."""

import logging
import time
from datetime import datetime
from typing import Optional

from battracker.config import settings
from battracker.db.store import CatalogStore, ModelRecord, StorageError
from battracker.ingest.base import NetworkError, PageSource, RawListing, ScrapedPage
from battracker.ingest.rate_limiter import RateLimiter, rate_limiter
from battracker.match.extractor import TextExtractor, text_extractor
from battracker.match.reconciler import VariantReconciler
from battracker.match.scorer import MatchResult, authoritative_match
from battracker.metrics import pipeline_run_duration_seconds, record_model_outcome
from battracker.pricing.price_updater import PriceUpdater
from battracker.worker.pipeline import MatchError, RunStats

logger = logging.getLogger(__name__)


class PageScrapePipeline:
    """
    Refresh prices for models that carry a retailer product URL.

    The URL identifies the product, so every parsed size row is a match; rows
    whose size text cannot be parsed are dropped.
    """

    def __init__(
        self,
        store: CatalogStore,
        source: PageSource,
        extractor: TextExtractor = text_extractor,
        limiter: Optional[RateLimiter] = None,
        retailer_name: str = "JustBats",
        min_model_delay: Optional[float] = None,
        max_model_delay: Optional[float] = None,
    ):
        self.store = store
        self.source = source
        self.extractor = extractor
        self.limiter = limiter or rate_limiter
        self.retailer_name = retailer_name
        self.min_model_delay = (
            settings.justbats_min_model_delay if min_model_delay is None else min_model_delay
        )
        self.max_model_delay = (
            settings.justbats_max_model_delay if max_model_delay is None else max_model_delay
        )
        self.reconciler = VariantReconciler(store, source=source.name)
        self.price_updater = PriceUpdater(store, retailer_name=retailer_name)
        self.retailer_id: Optional[int] = None
        self.stats = RunStats()

    async def run(self, model_ids: Optional[list[int]] = None, limit: Optional[int] = None) -> RunStats:
        """
        Scrape every model with an active product URL.

        Raises:
            StorageError: If the model list cannot be loaded
        """
        started = time.monotonic()
        self.stats = RunStats()

        models = await self.store.load_models(with_justbats_url=True, model_ids=model_ids)
        if limit:
            models = models[:limit]
        logger.info(f"Starting {self.source.name} run over {len(models)} bat models")

        self.retailer_id = await self.store.get_or_create_retailer(
            self.retailer_name, website="https://www.justbats.com"
        )

        for model in models:
            await self.limiter.acquire_with_interval(
                self.source.name, self.min_model_delay, self.max_model_delay
            )
            await self.process_model(model)

        pipeline_run_duration_seconds.labels(source=self.source.name).observe(
            time.monotonic() - started
        )
        logger.info(f"{self.source.name} run complete: {self.stats.as_dict()}")
        return self.stats

    async def process_model(self, model: ModelRecord) -> None:
        """Process one model; errors are counted, never raised."""
        log_extra = {"source": self.source.name, "model_id": model.id}
        logger.info(f"Processing {model.label} at {model.justbats_product_url}", extra=log_extra)
        try:
            outcome = await self._process(model)
        except MatchError as e:
            logger.info(f"Skipping {model.label}: {e}", extra=log_extra)
            self.stats.skipped += 1
            outcome = "skipped"
        except NetworkError as e:
            logger.warning(f"Failed to load page for {model.label}: {e}", extra=log_extra)
            if e.broken:
                try:
                    await self.store.mark_url_broken(model.id)
                    logger.info(f"Marked product URL broken for model {model.id}", extra=log_extra)
                except StorageError as se:
                    logger.error(
                        f"Failed to mark URL broken for model {model.id}: {se}", extra=log_extra
                    )
            self.stats.errors += 1
            outcome = "error"
        except Exception as e:
            logger.error(f"Failed to process {model.label}: {e}", exc_info=True, extra=log_extra)
            self.stats.errors += 1
            outcome = "error"
        record_model_outcome(self.source.name, outcome)

    async def _process(self, model: ModelRecord) -> str:
        page = await self.source.scrape(model.justbats_product_url)

        if page.discontinued:
            count = await self.store.set_stock_for_model(model.id, self.retailer_id, False)
            logger.info(f"{model.label} discontinued, marked {count} prices out of stock")
            await self._enrich(model, page)
            self.stats.processed += 1
            return "updated"

        candidates = self._candidates(model, page)
        if not candidates:
            raise MatchError("no parseable size options on page")

        reconciled = await self.reconciler.reconcile(model.id, candidates)
        self.stats.variants_created += reconciled.variants_created
        self.stats.errors += reconciled.failures
        for entry in reconciled.entries:
            action = await self.price_updater.apply_observation(
                entry.variant_id, self.retailer_id, entry.observation
            )
            self.stats.record_price(action)

        await self._enrich(model, page)
        self.stats.processed += 1
        return "updated"

    def _candidates(self, model: ModelRecord, page: ScrapedPage) -> list[MatchResult]:
        candidates = []
        for row in page.rows:
            size = self.extractor.parse_size_text(row.size_text)
            if size is None:
                logger.debug(f"Unparsed size option {row.size_text!r} for {model.label}")
                continue

            listing = RawListing(
                id="",
                title=f"{model.brand} {model.series} {model.year} {row.size_text}",
                price=row.price,
                in_stock=row.in_stock and page.in_stock,
                url=page.url,
            )
            info = self.extractor.extract(listing)
            info.sizes = [size]
            candidates.append(authoritative_match(listing, info, "Retailer product page"))
        return candidates

    async def _enrich(self, model: ModelRecord, page: ScrapedPage) -> None:
        fields = {"url_last_verified": datetime.utcnow()}
        if page.model_number:
            fields["model_number"] = page.model_number
        if page.swing_weight:
            fields["swing_weight"] = page.swing_weight
        if page.image_url and not model.image_url:
            fields["image_url"] = page.image_url
        await self.store.enrich_model(model.id, **fields)
