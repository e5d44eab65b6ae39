"""Tests for bat attribute extraction."""

from dataclasses import replace
from datetime import datetime

from battracker.ingest.base import RawListing
from battracker.match.extractor import TextExtractor, text_extractor
from battracker.match.size_parser import SizeVariant
from battracker.match.tables import DEFAULT_TABLES


def _listing(title, **kwargs):
    return RawListing(id=kwargs.pop("id", "B0TEST"), title=title, **kwargs)


def test_extract_core_fields():
    """Brand, series, year and certification come from the title."""
    info = text_extractor.extract(_listing("2024 DeMarini Voodoo BBCOR baseball bat"))

    assert info.brand == "DeMarini"
    assert info.series == "Voodoo"
    assert info.year == 2024
    assert info.certification == "BBCOR"


def test_extract_defaults():
    """Silent text falls back to neutral defaults."""
    info = text_extractor.extract(_listing("Easton Hype Baseball Bat"))

    assert info.year == datetime.utcnow().year
    assert info.certification == "BBCOR"
    assert info.material == "Alloy"
    assert info.construction == "1-Piece"
    assert info.barrel_size == '2 5/8"'
    assert info.colorway == "standard"


def test_extract_material_and_construction_from_features():
    """Features contribute to the searchable text."""
    info = text_extractor.extract(
        _listing(
            "Louisville Slugger Atlas BBCOR Baseball Bat",
            features=["Two piece composite design", "2.75 inch barrel"],
        )
    )

    assert info.brand == "Louisville Slugger"
    assert info.series == "Atlas"
    assert info.material == "Composite"
    assert info.construction == "2-Piece"
    assert info.barrel_size == '2.75"'


def test_extract_barrel_with_fraction():
    assert text_extractor.extract_barrel_size('Rawlings Icon 2 5/8" Barrel BBCOR') == '2 5/8"'


def test_certification_variants():
    assert text_extractor.extract_certification("Marucci CAT X USSSA -10") == "USSSA"
    assert text_extractor.extract_certification("Easton Hype Fire USA Baseball Bat") == "USA Baseball"
    assert text_extractor.extract_certification("Rawlings Icon USAB -10") == "USA Baseball"


def test_series_before_certification():
    """Unknown series are taken from the words before the certification."""
    assert text_extractor.extract_series("Victus Vandal BBCOR Baseball Bat", "Victus") == "Vandal"


def test_series_first_meaningful_token():
    """Without keywords or a certification, the first real word is the series."""
    assert text_extractor.extract_series("Axe Bat Avenge Pro 2024 Baseball", "Unknown") == "Avenge"


def test_unknown_brand():
    assert text_extractor.extract_brand("2024 bat", "2024 bat") == "Unknown"


def test_colorway_special_and_standard():
    """Special editions keep their name; two-tone and plain colors are standard."""
    assert text_extractor.extract_colorway("DeMarini Meta Pool Party BBCOR") == "pool party"
    assert text_extractor.extract_colorway("Easton Hype Fire Red | White USSSA") == "standard"
    assert text_extractor.extract_colorway("Easton Hype", {"color_name": "Orange"}) == "standard"
    assert (
        text_extractor.extract_colorway("Easton Hype", None, {"color_name": "Sunburst Teal"})
        == "sunburst teal"
    )


def test_sizes_from_attributes():
    """Structured size attributes produce a size list."""
    info = text_extractor.extract(
        _listing(
            "2024 DeMarini Voodoo One BBCOR Baseball Bat",
            attributes={"size_name": '32"/29 oz'},
        )
    )
    assert info.sizes == [SizeVariant('32"', "29 oz", "-3")]


def test_sizes_from_variation_attributes():
    """Variation values are parsed when attributes carry no size."""
    info = text_extractor.extract(
        _listing(
            "Marucci CAT X USSSA Baseball Bat",
            variation_attributes={"size": '29" (-10)'},
        )
    )
    assert info.sizes == [SizeVariant('29"', "19 oz", "-10")]


def test_malformed_listing_does_not_raise():
    """Empty titles and junk features degrade to defaults."""
    info = text_extractor.extract(RawListing(id="X", title="", features=[None, 5]))

    assert info.brand == "Unknown"
    assert info.series == "Unknown"
    assert info.sizes == []


def test_relevance_score():
    """Bat-like listings score higher than unrelated ones."""
    bat = text_extractor.extract(_listing("2024 DeMarini Voodoo BBCOR baseball bat"))
    glove = text_extractor.extract(_listing("Leather fielding glove"))

    assert bat.relevance_score == 70
    assert glove.relevance_score < bat.relevance_score


def test_custom_tables():
    """A modified table set changes what the extractor recognizes."""
    tables = replace(DEFAULT_TABLES, brands=DEFAULT_TABLES.brands + (("axe", "Axe"),))
    extractor = TextExtractor(tables)

    assert extractor.extract_brand("Axe Avenge Pro USSSA") == "Axe"
    assert text_extractor.extract_brand("Axe Avenge Pro USSSA", "Axe Avenge Pro USSSA") == "Unknown"


def test_title_length_bonus_bounds():
    """Only titles strictly between 20 and 150 characters earn the length bonus."""
    assert text_extractor.relevance_score("x" * 20, [], "x" * 20) == 0
    assert text_extractor.relevance_score("x" * 21, [], "x" * 21) == 10
    assert text_extractor.relevance_score("x" * 150, [], "x" * 150) == 0
