"""Group matched listings into product families so colorways stay apart."""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from battracker.match.scorer import MatchResult
from battracker.match.tables import DEFAULT_TABLES, ExtractorTables

logger = logging.getLogger(__name__)

MIN_SERIES_KEY_LENGTH = 4
MIN_SERIES_GROUPS = 2

_DROP_PATTERNS = (
    re.compile(r"\(\s*-\s*\d+\s*\)"),
    re.compile(r"\bdrop\s*-?\s*\d+\b"),
    re.compile(r"(?<![\w])-\s*\d+\b"),
)
_SIZE_PATTERNS = (
    re.compile(r"\d+\s+\d+/\d+\s*[\"'”″]?"),
    re.compile(r"\d+(?:\.\d+)?\s*(?:[\"'”″]|-?\s*inch(?:es)?\b|in\b|(?:oz|ounces?)\b\.?)"),
    re.compile(r"\d+/\d+"),
)
_YEAR_PATTERN = re.compile(r"\b20\d\d\b")
_NON_WORD = re.compile(r"[^a-z0-9\s]+")
_NUMBER = re.compile(r"\b\d+\b")
_SPACES = re.compile(r"\s+")


@dataclass
class GroupingResult:
    """Candidate groups plus the group picked for the model."""

    groups: dict[str, list[MatchResult]]
    strategy: str
    selected_key: Optional[str] = None
    selected: list[MatchResult] = field(default_factory=list)


def is_colorway_match(
    a: Optional[str], b: Optional[str], tables: ExtractorTables = DEFAULT_TABLES
) -> bool:
    """Equal colorways, or both plain standard colors."""
    a = (a or "standard").lower()
    b = (b or "standard").lower()
    if a == b:
        return True
    return a in tables.standard_colorways and b in tables.standard_colorways


class ColorwayGrouper:
    """
    Partition listings into product families.

    Series grouping is tried first: each title is stripped of colorway words,
    sizes, years, certifications, drops and brand names, and the remainder is
    the group key. When fewer than two meaningful keys appear, listings are
    grouped by normalized colorway instead.
    """

    def __init__(self, tables: ExtractorTables = DEFAULT_TABLES):
        self.tables = tables
        self._strip_patterns = [re.compile(p, re.I) for p in tables.two_tone_patterns]
        self._strip_patterns += [
            re.compile(r"\b" + re.escape(c) + r"\b", re.I) for c in tables.special_colorways
        ]
        self._strip_patterns += [re.compile(p, re.I) for p, _ in tables.certifications]
        self._strip_patterns += [
            re.compile(r"\b" + re.escape(b) + r"\b", re.I) for b in tables.brand_names
        ]
        self._stop_words = tables.filler_words | tables.standard_color_names

    def series_key(self, title: str) -> str:
        """Residual series text of a title, lower-cased."""
        text = (title or "").lower()
        for pattern in self._strip_patterns:
            text = pattern.sub(" ", text)
        for pattern in _DROP_PATTERNS:
            text = pattern.sub(" ", text)
        text = _YEAR_PATTERN.sub(" ", text)
        for pattern in _SIZE_PATTERNS:
            text = pattern.sub(" ", text)
        text = _NON_WORD.sub(" ", text)
        text = _NUMBER.sub(" ", text)
        words = [w for w in text.split() if w not in self._stop_words]
        return _SPACES.sub(" ", " ".join(words)).strip()

    def group(self, candidates: list[MatchResult], seed_id: Optional[str] = None) -> GroupingResult:
        """
        Group candidates and select the model's family.

        Args:
            candidates: Scored listings
            seed_id: Known-good listing identifier; its group is selected

        Returns:
            GroupingResult with all groups and the selected one
        """
        if not candidates:
            return GroupingResult(groups={}, strategy="none")

        groups = self._group_by_series(candidates)
        meaningful = [k for k in groups if len(k) >= MIN_SERIES_KEY_LENGTH]
        if len(meaningful) >= MIN_SERIES_GROUPS:
            strategy = "series"
        else:
            groups = self._group_by_colorway(candidates)
            strategy = "colorway"

        selected_key = self._select(groups, seed_id)
        logger.debug(
            f"Grouped {len(candidates)} candidates by {strategy} into {len(groups)} groups, "
            f"selected {selected_key!r}"
        )
        return GroupingResult(
            groups=groups,
            strategy=strategy,
            selected_key=selected_key,
            selected=groups.get(selected_key, []),
        )

    def _group_by_series(self, candidates: list[MatchResult]) -> dict[str, list[MatchResult]]:
        groups: dict[str, list[MatchResult]] = {}
        for candidate in candidates:
            groups.setdefault(self.series_key(candidate.info.title), []).append(candidate)
        return groups

    def _group_by_colorway(self, candidates: list[MatchResult]) -> dict[str, list[MatchResult]]:
        groups: dict[str, list[MatchResult]] = {}
        for candidate in candidates:
            colorway = candidate.info.colorway or "standard"
            key = next(
                (k for k in groups if is_colorway_match(k, colorway, self.tables)),
                colorway,
            )
            groups.setdefault(key, []).append(candidate)
        return groups

    @staticmethod
    def _select(groups: dict[str, list[MatchResult]], seed_id: Optional[str]) -> Optional[str]:
        if seed_id:
            for key, members in groups.items():
                if any(m.listing.id == seed_id for m in members):
                    return key

        best_key = None
        best_size = 0
        for key, members in groups.items():
            if len(members) > best_size:
                best_key, best_size = key, len(members)
        return best_key


# Global grouper instance
colorway_grouper = ColorwayGrouper()
