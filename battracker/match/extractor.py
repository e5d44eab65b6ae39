"""Bat attribute extraction from retailer listing text."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from battracker.ingest.base import RawListing
from battracker.match.size_parser import (
    SizeVariant,
    parse_attribute_sizes,
    parse_size_text,
)
from battracker.match.tables import DEFAULT_TABLES, ExtractorTables

logger = logging.getLogger(__name__)

DEFAULT_CERTIFICATION = "BBCOR"
DEFAULT_MATERIAL = "Alloy"
DEFAULT_CONSTRUCTION = "1-Piece"
DEFAULT_BARREL_SIZE = '2 5/8"'
DEFAULT_COLORWAY = "standard"
UNKNOWN = "Unknown"


@dataclass
class BatInfo:
    """Fields extracted from one listing."""

    brand: str
    series: str
    year: int
    certification: str
    material: str
    construction: str
    barrel_size: str
    colorway: str
    title: str
    sizes: list[SizeVariant] = field(default_factory=list)
    price: Any = None
    in_stock: bool = True
    availability: str = "unknown"
    image_url: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    relevance_score: int = 0


class TextExtractor:
    """
    Extract brand, series, year, certification and sizes from bat listings.

    Every sub-extractor falls back to a neutral default; ``extract`` never raises
    on malformed listing text.
    """

    YEAR_PATTERN = re.compile(r"\b(20[23]\d)\b")
    BARREL_PATTERN = re.compile(r'(\d+(?:\.\d+)?(?:\s+\d+/\d+)?)\s*(?:inch|")\s*barrel', re.I)
    SERIES_BEFORE_CERT_PATTERN = re.compile(
        r"\b([A-Z][A-Za-z]+(?:\s+[A-Z][A-Za-z]+)?)\s+(?:BBCOR|USSSA|USA)\b"
    )

    def __init__(self, tables: ExtractorTables = DEFAULT_TABLES):
        self.tables = tables
        self._series_pattern = re.compile(
            r"\b("
            + "|".join(
                re.escape(s) for s in sorted(tables.series_keywords, key=len, reverse=True)
            )
            + r")\b",
            re.I,
        )
        self._cert_patterns = [
            (re.compile(pattern, re.I), cert) for pattern, cert in tables.certifications
        ]
        self._two_tone_patterns = [re.compile(p, re.I) for p in tables.two_tone_patterns]
        self._special_patterns = [
            (re.compile(r"\b" + re.escape(c) + r"\b", re.I), c) for c in tables.special_colorways
        ]

    def extract(self, listing: RawListing) -> BatInfo:
        """
        Extract bat information from a listing.

        Args:
            listing: Raw listing from a retailer source

        Returns:
            BatInfo with defaults filled in where the text is silent
        """
        title = listing.title or ""
        features = [f for f in (listing.features or []) if isinstance(f, str)]
        full_text = " ".join([title, *features])
        attributes = dict(listing.attributes or {})

        brand = self.extract_brand(full_text, title)
        certification = self.extract_certification(full_text)

        sizes = parse_attribute_sizes(attributes, title, certification)
        if not sizes and listing.variation_attributes:
            combined = " ".join(str(v) for v in listing.variation_attributes.values())
            size = parse_size_text(combined)
            if size is not None:
                sizes = [size]

        return BatInfo(
            brand=brand,
            series=self.extract_series(title, brand),
            year=self.extract_year(full_text),
            certification=certification,
            material=self.extract_material(full_text),
            construction=self.extract_construction(full_text),
            barrel_size=self.extract_barrel_size(full_text),
            colorway=self.extract_colorway(title, attributes, listing.variation_attributes),
            title=title,
            sizes=sizes,
            price=listing.price,
            in_stock=listing.in_stock,
            availability=listing.availability,
            image_url=listing.image_url,
            rating=listing.rating,
            review_count=listing.review_count,
            relevance_score=self.relevance_score(title, features, full_text),
        )

    def extract_brand(self, text: str, title: str = "") -> str:
        lowered = text.lower()
        for needle, brand in self.tables.brands:
            if needle in lowered:
                return brand

        tokens = title.split()
        if tokens and len(tokens[0]) > 3 and not tokens[0].isdigit():
            return tokens[0]
        return UNKNOWN

    def extract_series(self, title: str, brand: str = "") -> str:
        match = self._series_pattern.search(title)
        if match:
            keyword = match.group(1).lower()
            for series in self.tables.series_keywords:
                if series.lower() == keyword:
                    return series

        brand_words = {w.lower() for w in brand.split()}
        for match in self.SERIES_BEFORE_CERT_PATTERN.finditer(title):
            words = [w for w in match.group(1).split() if w.lower() not in brand_words]
            if words:
                return " ".join(words)

        return self._first_meaningful_token(title, brand_words)

    def _first_meaningful_token(self, title: str, brand_words: set[str]) -> str:
        for token in title.split():
            word = token.strip("()[],.:;|\"'")
            lowered = word.lower()
            if lowered in brand_words:
                continue
            if any(p.search(word) for p, _ in self._cert_patterns) or self.YEAR_PATTERN.match(word):
                break
            if len(word) <= 3 or not word.isalpha():
                continue
            if lowered in self.tables.filler_words:
                continue
            return word
        return UNKNOWN

    def extract_year(self, text: str) -> int:
        match = self.YEAR_PATTERN.search(text)
        if match:
            return int(match.group(1))
        return datetime.utcnow().year

    def extract_certification(self, text: str) -> str:
        for pattern, cert in self._cert_patterns:
            if pattern.search(text):
                return cert
        return DEFAULT_CERTIFICATION

    def extract_material(self, text: str) -> str:
        lowered = text.lower()
        if "composite" in lowered:
            return "Composite"
        if "alloy" in lowered or "aluminum" in lowered:
            return "Alloy"
        if "hybrid" in lowered:
            return "Hybrid"
        if "wood" in lowered:
            return "Wood"
        return DEFAULT_MATERIAL

    def extract_construction(self, text: str) -> str:
        lowered = text.lower()
        if "two piece" in lowered or "2-piece" in lowered or "2 piece" in lowered:
            return "2-Piece"
        if "one piece" in lowered or "1-piece" in lowered or "1 piece" in lowered:
            return "1-Piece"
        if "three piece" in lowered or "3-piece" in lowered or "3 piece" in lowered:
            return "3-Piece"
        return DEFAULT_CONSTRUCTION

    def extract_barrel_size(self, text: str) -> str:
        match = self.BARREL_PATTERN.search(text)
        if match:
            return f'{match.group(1)}"'
        return DEFAULT_BARREL_SIZE

    def extract_colorway(
        self,
        title: str,
        attributes: Optional[dict[str, Any]] = None,
        variation_attributes: Optional[dict[str, str]] = None,
    ) -> str:
        """
        Normalize a listing's colorway.

        Special editions ('pool party', 'blackout', ...) keep their name; two-tone
        finishes and plain colors collapse to 'standard'.
        """
        for pattern, colorway in self._special_patterns:
            if pattern.search(title):
                return colorway

        for pattern in self._two_tone_patterns:
            if pattern.search(title):
                return DEFAULT_COLORWAY

        color = (attributes or {}).get("color_name")
        if not color and variation_attributes:
            color = variation_attributes.get("color_name")
        if color and isinstance(color, str):
            lowered = color.strip().lower()
            if lowered in self.tables.standard_color_names:
                return DEFAULT_COLORWAY
            return lowered

        return DEFAULT_COLORWAY

    def parse_size_text(self, text: Optional[str]) -> Optional[SizeVariant]:
        """Parse a retailer size label such as ``31" (-8)``."""
        return parse_size_text(text)

    def relevance_score(self, title: str, features: list[str], full_text: str) -> int:
        """How strongly a listing looks like a baseball bat (0-100)."""
        lowered = full_text.lower()
        score = 0
        if "baseball bat" in lowered:
            score += 20
        if any(pattern.search(lowered) for pattern, _ in self._cert_patterns):
            score += 15
        if "composite" in lowered or "alloy" in lowered:
            score += 10
        if "drop" in lowered or "(-" in lowered:
            score += 10
        if any(needle in lowered for needle in self.tables.brand_names):
            score += 25
        if 20 < len(title) < 150:
            score += 10
        if len(features) > 2:
            score += 5
        return min(score, 100)


# Global extractor instance
text_extractor = TextExtractor()
