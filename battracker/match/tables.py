"""Keyword tables used by the text extractor and colorway grouper.

Tables are immutable; pass a modified copy (``dataclasses.replace``) to the
extractor to change them.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ExtractorTables:
    """Lookup configuration for bat text extraction."""

    # (lower-case needle, canonical brand)
    brands: tuple[tuple[str, str], ...] = (
        ("louisville slugger", "Louisville Slugger"),
        ("easton", "Easton"),
        ("rawlings", "Rawlings"),
        ("demarini", "DeMarini"),
        ("marucci", "Marucci"),
        ("victus", "Victus"),
        ("combat", "Combat"),
        ("wilson", "Wilson"),
    )

    # (regex, canonical certification); first hit wins
    certifications: tuple[tuple[str, str], ...] = (
        (r"\bbbcor\b", "BBCOR"),
        (r"\busssa\b", "USSSA"),
        (r"\busa\s+baseball\b", "USA Baseball"),
        (r"\busab\b", "USA Baseball"),
    )

    series_keywords: tuple[str, ...] = (
        "Atlas",
        "Meta",
        "Ghost",
        "Velo",
        "CAT",
        "Beast",
        "Select",
        "Omaha",
        "Prime",
        "Big Barrel",
        "PowerDrive",
        "5150",
        "Threat",
        "Dude Perfect",
        "Voodoo",
        "Goods",
        "Zen",
        "Hype",
        "Quatro",
        "Icon",
        "Hype Fire",
        "Maxum",
        "Torq",
    )

    # Words that never name a series
    filler_words: frozenset[str] = frozenset(
        {
            "baseball",
            "bat",
            "bats",
            "inch",
            "inches",
            "oz",
            "ounce",
            "ounces",
            "youth",
            "adult",
            "senior",
            "league",
            "composite",
            "alloy",
            "hybrid",
            "wood",
            "piece",
            "barrel",
            "drop",
            "with",
            "and",
            "for",
            "the",
            "new",
        }
    )

    special_colorways: tuple[str, ...] = (
        "pool party",
        "fire ice",
        "blackout",
        "whiteout",
        "stealth",
        "glow",
        "electric",
        "neon",
        "ghost",
        "platinum",
        "gold",
        "silver",
        "cosmic",
        "galaxy",
        "vapor",
        "phantom",
        "carbon",
        "chrome",
        "flame",
        "ice",
        "storm",
        "thunder",
        "lightning",
        "sunset",
    )

    # Two-tone finishes that are still the standard product
    two_tone_patterns: tuple[str, ...] = (
        r"white\s*\|\s*snow\s+camo",
        r"black\s*\|\s*silver",
        r"red\s*\|\s*white",
        r"blue\s*\|\s*white",
        r"navy\s*\|\s*gold",
        r"gr[ae]y\s*\|\s*black",
        r"orange\s*\|\s*black",
        r"green\s*\|\s*white",
        r"yellow\s*\|\s*black",
        r"purple\s*\|\s*white",
        r"maroon\s*\|\s*white",
        r"royal\s*\|\s*white",
        r"scarlet\s*\|\s*gray",
        r"carbon\s*\|\s*red",
        r"matte\s*\|\s*\w+",
        r"glossy\s*\|\s*\w+",
        r"\w+\s*\|\s*camo",
        r"\w+\s*\|\s*fade",
        r"\w+\s*\|\s*burst",
    )

    # color_name attribute values that mean "the standard product"
    standard_color_names: frozenset[str] = frozenset(
        {
            "orange",
            "black",
            "white",
            "red",
            "blue",
            "green",
            "yellow",
            "gray",
            "grey",
            "silver",
            "natural",
            "standard",
            "default",
            "primary",
            "navy",
            "royal",
            "maroon",
            "purple",
            "gold",
            "brown",
            "pink",
        }
    )

    # Colorways treated as interchangeable when grouping
    standard_colorways: frozenset[str] = frozenset(
        {
            "standard",
            "orange",
            "black",
            "white",
            "red",
            "blue",
            "green",
            "gray",
            "grey",
            "silver",
            "natural",
            "default",
            "primary",
        }
    )

    @property
    def brand_names(self) -> tuple[str, ...]:
        return tuple(needle for needle, _ in self.brands)


DEFAULT_TABLES = ExtractorTables()
