"""Match scoring between extracted listings and canonical bat models."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from battracker.ingest.base import RawListing
from battracker.match.extractor import BatInfo

logger = logging.getLogger(__name__)

MATCH_THRESHOLD = 70

BRAND_POINTS = 30
SERIES_POINTS = 30
YEAR_EXACT_POINTS = 20
YEAR_ADJACENT_POINTS = 10
CERTIFICATION_POINTS = 15
MATERIAL_POINTS = 5
TITLE_POINTS = 5
RELEVANCE_POINTS = 5
HIGH_RELEVANCE = 80


class MatchTarget(Protocol):
    """Canonical model fields the scorer compares against."""

    brand: str
    series: str
    year: int
    certification: str
    material: Optional[str]


@dataclass
class MatchResult:
    """A listing scored against a bat model."""

    listing: RawListing
    info: BatInfo
    score: int
    reasons: list[str] = field(default_factory=list)
    is_match: bool = False


class MatchScorer:
    """Additive rule-based scorer; a listing matches at MATCH_THRESHOLD points."""

    def score(self, listing: RawListing, info: BatInfo, target: MatchTarget) -> MatchResult:
        """
        Score an extracted listing against a canonical model.

        Args:
            listing: The raw listing
            info: Fields extracted from the listing
            target: Canonical bat model

        Returns:
            MatchResult with score, human-readable reasons and match flag
        """
        score = 0
        reasons: list[str] = []

        if info.brand and target.brand and info.brand.lower() == target.brand.lower():
            score += BRAND_POINTS
            reasons.append("Brand match")

        if target.series and target.series.lower() in (info.series or "").lower():
            score += SERIES_POINTS
            reasons.append("Series match")

        if info.year == target.year:
            score += YEAR_EXACT_POINTS
            reasons.append("Year match")
        elif target.year is not None and abs(info.year - target.year) == 1:
            score += YEAR_ADJACENT_POINTS
            reasons.append("Year close")

        if (
            info.certification
            and target.certification
            and info.certification.lower() == target.certification.lower()
        ):
            score += CERTIFICATION_POINTS
            reasons.append("Certification match")

        if info.material and target.material and info.material.lower() == target.material.lower():
            score += MATERIAL_POINTS
            reasons.append("Material match")

        if "baseball bat" in info.title.lower():
            score += TITLE_POINTS
            reasons.append("Title mentions baseball bat")

        if info.relevance_score >= HIGH_RELEVANCE:
            score += RELEVANCE_POINTS
            reasons.append("High relevance")

        return MatchResult(
            listing=listing,
            info=info,
            score=score,
            reasons=reasons,
            is_match=score >= MATCH_THRESHOLD,
        )

    def rank(self, results: list[MatchResult]) -> list[MatchResult]:
        """Stable sort by score, best first."""
        return sorted(results, key=lambda r: r.score, reverse=True)


def authoritative_match(listing: RawListing, info: BatInfo, reason: str) -> MatchResult:
    """A match asserted by the source itself (a known product URL or identifier)."""
    return MatchResult(listing=listing, info=info, score=100, reasons=[reason], is_match=True)


# Global scorer instance
match_scorer = MatchScorer()
