"""Tests for bat size-string parsing."""

import pytest

from battracker.match.size_parser import (
    SizeVariant,
    parse_attribute_sizes,
    parse_length_weight_oz,
    parse_paren_drop,
    parse_size_text,
    size_from_length_drop,
    size_from_length_weight,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ('31" (-8)', SizeVariant('31"', "23 oz", "-8")),
        ('29" 26 oz.', SizeVariant('29"', "26 oz", "-3")),
        ('30"/27 oz', SizeVariant('30"', "27 oz", "-3")),
        ('28" 18 OZ', SizeVariant('28"', "18 oz", "-10")),
        ("33' | -3", SizeVariant('33"', "30 oz", "-3")),
        ("33-inch | -3", SizeVariant('33"', "30 oz", "-3")),
        ("2 5/8' Barrel | 33' | -3", SizeVariant('33"', "30 oz", "-3")),
        ("32in/29oz", SizeVariant('32"', "29 oz", "-3")),
        ("34/31 |", SizeVariant('34"', "31 oz", "-3")),
        ("31 Inch", SizeVariant('31"', "21 oz", "-10")),
    ],
)
def test_parse_size_text_formats(text, expected):
    """Each retailer size format parses to the same normalized shape."""
    assert parse_size_text(text) == expected


def test_parse_size_text_unrecognized():
    """Unparseable or empty text yields no size."""
    assert parse_size_text("Standard") is None
    assert parse_size_text("") is None
    assert parse_size_text(None) is None


def test_out_of_bounds_rejected():
    """Sizes outside 24-36 in or 15-35 oz are rejected."""
    assert parse_length_weight_oz('40" 30 oz') is None
    assert parse_size_text('40" 30 oz') is None
    assert size_from_length_weight(32, 12) is None
    assert size_from_length_drop(20, 5) is None


def test_strategies_are_independent():
    """A strategy only recognizes its own format."""
    assert parse_paren_drop('30"/27 oz') is None
    assert parse_length_weight_oz('31" (-8)') is None
    assert parse_paren_drop('31" (-8)') == SizeVariant('31"', "23 oz", "-8")


def test_fractional_length():
    """Half-inch lengths keep their fraction."""
    size = size_from_length_weight(30.5, 20.5)
    assert size.length == '30.5"'
    assert size.weight == "20.5 oz"
    assert size.drop == "-10"


def test_attribute_sizes_drop_and_length():
    """Structured drop and length give one size."""
    sizes = parse_attribute_sizes(
        {"bat_drop_ratio": "-3", "item_length_numeric": 32},
        title="2024 DeMarini Voodoo BBCOR Baseball Bat",
        certification="BBCOR",
    )
    assert sizes == [SizeVariant('32"', "29 oz", "-3")]


def test_attribute_sizes_drop_from_title():
    """Drop falls back to a -N token in the title."""
    sizes = parse_attribute_sizes(
        {"size_name": "31 Inch"},
        title="Marucci CAT X Connect USSSA -10 Baseball Bat",
        certification="USSSA",
    )
    assert sizes == [SizeVariant('31"', "21 oz", "-10")]


def test_attribute_sizes_bbcor_default_drop():
    """BBCOR bats without a drop token assume -3."""
    sizes = parse_attribute_sizes(
        {"size_name": "33 inch"},
        title="Easton Hype Fire BBCOR Baseball Bat",
        certification="BBCOR",
    )
    assert sizes == [SizeVariant('33"', "30 oz", "-3")]


def test_attribute_sizes_parse_size_name():
    """Without a drop, size_name is parsed as a size string."""
    sizes = parse_attribute_sizes(
        {"size_name": '30"/27 oz'},
        title="Rawlings Icon USA Baseball Bat",
        certification="USA Baseball",
    )
    assert sizes == [SizeVariant('30"', "27 oz", "-3")]


def test_attribute_sizes_empty():
    assert parse_attribute_sizes({}, title="Bat", certification="USSSA") == []
