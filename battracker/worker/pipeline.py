"""Per-model price refresh pipeline for API-backed sources (Amazon)."""

import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from battracker.config import settings
from battracker.db.store import CatalogStore, ModelRecord
from battracker.ingest.base import NetworkError, ProductSource, RawListing
from battracker.ingest.amazon import affiliate_url, build_search_terms
from battracker.ingest.rate_limiter import RateLimiter, rate_limiter
from battracker.match.extractor import TextExtractor, text_extractor
from battracker.match.grouper import ColorwayGrouper, colorway_grouper
from battracker.match.reconciler import ReconcileResult, VariantReconciler
from battracker.match.scorer import MATCH_THRESHOLD, MatchResult, MatchScorer, match_scorer
from battracker.metrics import pipeline_run_duration_seconds, record_model_outcome
from battracker.pricing.price_updater import PriceAction, PriceObservation, PriceUpdater

logger = logging.getLogger(__name__)


class MatchError(Exception):
    """Raised when no candidate reaches the match threshold for a model."""

    pass


@dataclass
class RunStats:
    """Counters for one pipeline run."""

    processed: int = 0
    prices_updated: int = 0
    prices_added: int = 0
    prices_unchanged: int = 0
    variants_created: int = 0
    errors: int = 0
    skipped: int = 0

    def record_price(self, action: PriceAction) -> None:
        if action is PriceAction.INSERTED:
            self.prices_added += 1
        elif action is PriceAction.UPDATED:
            self.prices_updated += 1
        elif action is PriceAction.TOUCHED:
            self.prices_unchanged += 1
        elif action is PriceAction.FAILED:
            self.errors += 1

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class Discovery:
    """Candidate listings for a model and where they came from."""

    listings: list[RawListing]
    origin: str  # "seed", "search" or "none"


# (best_score, best_results) accumulated over search terms
SearchFold = tuple[int, list[MatchResult]]


class PipelineOrchestrator:
    """
    Refresh prices for every bat model from a product source.

    Per model: discover candidate listings, score them, keep the seed's colorway
    group, reconcile sizes to variants and apply prices. A model-level failure
    is counted and the run continues; only failing to load the model list ends
    the run.
    """

    def __init__(
        self,
        store: CatalogStore,
        source: ProductSource,
        extractor: TextExtractor = text_extractor,
        scorer: MatchScorer = match_scorer,
        grouper: ColorwayGrouper = colorway_grouper,
        limiter: Optional[RateLimiter] = None,
        retailer_name: str = "Amazon",
        min_request_interval: Optional[float] = None,
        model_delay: Optional[float] = None,
        search_term_delay: Optional[float] = None,
    ):
        self.store = store
        self.source = source
        self.extractor = extractor
        self.scorer = scorer
        self.grouper = grouper
        self.limiter = limiter or rate_limiter
        self.retailer_name = retailer_name
        self.min_request_interval = (
            settings.amazon_min_request_interval
            if min_request_interval is None
            else min_request_interval
        )
        self.model_delay = settings.model_delay_seconds if model_delay is None else model_delay
        self.search_term_delay = (
            settings.search_term_delay_seconds if search_term_delay is None else search_term_delay
        )
        self.reconciler = VariantReconciler(store, source=source.name)
        self.price_updater = PriceUpdater(store, retailer_name=retailer_name)
        self.retailer_id: Optional[int] = None
        self.stats = RunStats()

    async def run(self, model_ids: Optional[list[int]] = None, limit: Optional[int] = None) -> RunStats:
        """
        Process every bat model sequentially.

        Args:
            model_ids: Restrict the run to these models
            limit: Process at most this many models

        Returns:
            RunStats for the run

        Raises:
            StorageError: If the model list cannot be loaded
        """
        started = time.monotonic()
        self.stats = RunStats()

        models = await self.store.load_models(model_ids=model_ids)
        if limit:
            models = models[:limit]
        logger.info(f"Starting {self.source.name} run over {len(models)} bat models")

        self.retailer_id = await self.store.get_or_create_retailer(
            self.retailer_name,
            website="https://www.amazon.com",
            affiliate_base_url=affiliate_url("{asin}"),
        )

        for index, model in enumerate(models):
            if index > 0:
                await self.limiter.pause(self.model_delay)
            await self.process_model(model)

        pipeline_run_duration_seconds.labels(source=self.source.name).observe(
            time.monotonic() - started
        )
        logger.info(f"{self.source.name} run complete: {self.stats.as_dict()}")
        return self.stats

    async def process_model(self, model: ModelRecord) -> None:
        """Process one model; errors are counted, never raised."""
        log_extra = {"source": self.source.name, "model_id": model.id}
        logger.info(
            f"Processing {model.label} {model.certification} (model {model.id})", extra=log_extra
        )
        try:
            outcome = await self._process(model)
        except MatchError as e:
            logger.info(f"Skipping {model.label}: {e}", extra=log_extra)
            self.stats.skipped += 1
            outcome = "skipped"
        except Exception as e:
            logger.error(f"Failed to process {model.label}: {e}", exc_info=True, extra=log_extra)
            self.stats.errors += 1
            outcome = "error"
        record_model_outcome(self.source.name, outcome)

    async def _process(self, model: ModelRecord) -> str:
        if await self._refresh_stored(model):
            self.stats.processed += 1
            return "updated"

        discovery = await self.discover(model)
        if not discovery.listings:
            raise MatchError("no candidate listings found")

        results = self.scorer.rank([self._score(listing, model) for listing in discovery.listings])
        best = results[0]
        logger.info(
            f"Best match for {model.label}: {best.listing.title!r} "
            f"score={best.score} ({', '.join(best.reasons)})"
        )
        if best.score < MATCH_THRESHOLD:
            raise MatchError(f"best score {best.score} below {MATCH_THRESHOLD}")

        if discovery.origin == "search" and not model.amazon_asin:
            await self.store.enrich_model(model.id, amazon_asin=best.listing.id)
            logger.info(f"Stored discovered seed {best.listing.id} for {model.label}")

        grouping = self.grouper.group(results, seed_id=model.amazon_asin or best.listing.id)
        logger.info(
            f"{len(grouping.selected)} of {len(results)} candidates in group "
            f"{grouping.selected_key!r} ({grouping.strategy})"
        )

        reconciled = await self.reconciler.reconcile(model.id, grouping.selected)
        await self._apply_prices(reconciled)

        matched = [c for c in grouping.selected if c.is_match]
        if len(matched) == 1:
            await self._enrich_from_listing(model, matched[0])

        self.stats.processed += 1
        return "updated"

    def _score(self, listing: RawListing, model: ModelRecord) -> MatchResult:
        return self.scorer.score(listing, self.extractor.extract(listing), model)

    async def _call(self, operation, *args) -> list[RawListing]:
        await self.limiter.acquire(self.source.name, self.min_request_interval)
        return await operation(*args)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def _refresh_stored(self, model: ModelRecord) -> bool:
        """
        Price variants that already carry an identifier, without re-matching.

        Returns:
            True if at least one stored listing was found
        """
        by_asin: dict[str, list[int]] = {}
        for variant in model.variants:
            if variant.asin:
                by_asin.setdefault(variant.asin, []).append(variant.id)
        if not by_asin:
            return False

        asins = list(by_asin)
        listings: list[RawListing] = []
        batch_size = settings.amazon_batch_size
        for start in range(0, len(asins), batch_size):
            chunk = asins[start : start + batch_size]
            try:
                listings.extend(await self._call(self.source.get_items_by_identifier, chunk))
            except NetworkError as e:
                logger.warning(f"Stored ASIN lookup failed for {model.label}: {e}")

        if not listings:
            logger.info(f"No stored ASINs answered for {model.label}, falling back to discovery")
            return False

        for listing in listings:
            observation = PriceObservation(
                price=listing.price, in_stock=listing.in_stock, source_url=listing.url
            )
            for variant_id in by_asin.get(listing.id, []):
                action = await self.price_updater.apply_observation(
                    variant_id, self.retailer_id, observation
                )
                self.stats.record_price(action)

        logger.info(f"Refreshed {len(listings)} stored listings for {model.label}")
        return True

    async def discover(self, model: ModelRecord) -> Discovery:
        """
        Find candidate listings: seed variations first, then keyword search.

        Raises:
            NetworkError: If every discovery path failed on the network
        """
        seed_error: Optional[NetworkError] = None
        if model.amazon_asin:
            try:
                listings = await self._seed_listings(model.amazon_asin)
                if listings:
                    return Discovery(listings, "seed")
            except NetworkError as e:
                logger.warning(f"Seed lookup failed for {model.label}: {e}")
                seed_error = e

        try:
            best_score, best_results = await self._search_fold(model)
        except NetworkError:
            if seed_error is not None:
                raise seed_error
            raise

        if not best_results:
            return Discovery([], "none")
        logger.info(f"Search fallback for {model.label} best score {best_score}")
        return Discovery([r.listing for r in best_results], "search")

    async def _seed_listings(self, seed_id: str) -> list[RawListing]:
        seed = await self._call(self.source.get_items_by_identifier, [seed_id])
        variations = await self._call(self.source.get_variations, seed_id)

        listings: dict[str, RawListing] = {}
        for listing in [*seed, *variations]:
            listings.setdefault(listing.id, listing)
        return list(listings.values())

    async def _search_fold(self, model: ModelRecord) -> SearchFold:
        """
        Run the search terms in order, keeping the result set with the best top
        score. Stops at the first set whose best score reaches the threshold.
        """
        fold: SearchFold = (0, [])
        errors: list[NetworkError] = []

        for index, keywords in enumerate(build_search_terms(model)):
            if fold[0] >= MATCH_THRESHOLD:
                break
            if index > 0:
                await self.limiter.pause(self.search_term_delay)
            try:
                listings = await self._call(self.source.search, keywords, model.brand)
            except NetworkError as e:
                logger.warning(f"Search {keywords!r} failed: {e}")
                errors.append(e)
                continue

            ranked = self.scorer.rank([self._score(listing, model) for listing in listings])
            if ranked:
                fold = _keep_better(fold, (ranked[0].score, ranked))

        if not fold[1] and errors:
            raise errors[-1]
        return fold

    # ------------------------------------------------------------------
    # Pricing and enrichment
    # ------------------------------------------------------------------

    async def _apply_prices(self, reconciled: ReconcileResult) -> None:
        self.stats.variants_created += reconciled.variants_created
        self.stats.errors += reconciled.failures
        for entry in reconciled.entries:
            action = await self.price_updater.apply_observation(
                entry.variant_id, self.retailer_id, entry.observation
            )
            self.stats.record_price(action)

    async def _enrich_from_listing(self, model: ModelRecord, result: MatchResult) -> None:
        fields = {"url_last_verified": datetime.utcnow()}
        if result.info.rating is not None:
            fields["rating"] = result.info.rating
        if result.info.review_count is not None:
            fields["review_count"] = result.info.review_count
        if result.info.image_url and not model.image_url:
            fields["image_url"] = result.info.image_url
        await self.store.enrich_model(model.id, **fields)


def _keep_better(current: SearchFold, candidate: SearchFold) -> SearchFold:
    """Replace the accumulated result only on a strictly better top score."""
    return candidate if candidate[0] > current[0] else current
