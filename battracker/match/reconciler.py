"""Map matched listings onto a model's variants, creating missing ones."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from battracker.db.store import CatalogStore
from battracker.ingest.base import RawListing
from battracker.match.scorer import MatchResult
from battracker.match.size_parser import SizeVariant
from battracker.metrics import variants_created_total
from battracker.pricing.price_updater import PriceObservation

logger = logging.getLogger(__name__)


@dataclass
class ReconciledEntry:
    """A variant resolved from a candidate size, with the price to apply."""

    variant_id: int
    size: SizeVariant
    observation: PriceObservation
    created: bool = False


@dataclass
class ReconcileResult:
    entries: list[ReconciledEntry] = field(default_factory=list)
    variants_created: int = 0
    failures: int = 0
    discarded: int = 0


class VariantReconciler:
    """
    Resolve candidate sizes to variants keyed by (length, drop).

    The store is re-queried for every size entry, so a variant created for one
    candidate is found by the next instead of being duplicated.
    """

    def __init__(self, store: CatalogStore, source: str = ""):
        self.store = store
        self.source = source

    async def reconcile(self, model_id: int, candidates: list[MatchResult]) -> ReconcileResult:
        """
        Reconcile matched candidates for one model.

        Candidates that are not matches are discarded. Each size entry is
        resolved on its own: a failure for one size is logged and counted, and
        the candidate's other sizes and the remaining candidates still run.

        Args:
            model_id: Canonical bat model ID
            candidates: Scored listings, usually one colorway group

        Returns:
            ReconcileResult with one entry per (candidate, variant)
        """
        result = ReconcileResult()

        for candidate in candidates:
            if not candidate.is_match:
                result.discarded += 1
                continue
            if not candidate.info.sizes:
                logger.debug(f"No size info for listing {candidate.listing.id}")
                result.discarded += 1
                continue

            listing = candidate.listing
            info = candidate.info
            observation = PriceObservation(
                price=info.price, in_stock=info.in_stock, source_url=listing.url
            )
            seen_variant_ids: set[int] = set()

            for size in info.sizes:
                if not size.length:
                    continue

                try:
                    entry = await self._resolve_size(model_id, listing, size, observation)
                except Exception as e:
                    logger.error(
                        f"Failed to reconcile size {size.length} ({size.drop}) of listing "
                        f"{listing.id} for model {model_id}: {e}"
                    )
                    result.failures += 1
                    continue

                if entry.variant_id in seen_variant_ids:
                    continue
                seen_variant_ids.add(entry.variant_id)
                result.entries.append(entry)
                if entry.created:
                    result.variants_created += 1

        return result

    async def _resolve_size(
        self,
        model_id: int,
        listing: RawListing,
        size: SizeVariant,
        observation: PriceObservation,
    ) -> ReconciledEntry:
        identifier: Optional[str] = listing.id or None

        variant = await self.store.find_variant(model_id, size.length, size.drop)
        if variant is not None:
            if identifier and not variant.asin:
                await self.store.attach_variant_identifier(variant.id, identifier, listing.url)
            return ReconciledEntry(variant_id=variant.id, size=size, observation=observation)

        variant_id = await self.store.create_variant(
            model_id,
            length=size.length,
            weight=size.weight,
            drop=size.drop,
            asin=identifier,
            product_url=listing.url if identifier else None,
        )
        variants_created_total.labels(source=self.source).inc()
        logger.info(
            f"Created variant {size.length} {size.weight} ({size.drop}) for model {model_id}"
        )
        return ReconciledEntry(
            variant_id=variant_id, size=size, observation=observation, created=True
        )
