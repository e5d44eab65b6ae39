"""Size-string parsing for bat variants.

Retailers describe the same size many ways (``30"/27 oz``, ``31" (-8)``,
``33-inch | -3``, ``32in/29oz``). Each format is handled by a small pure
strategy; ``parse_size_text`` tries them in order and returns the first result
inside the physical bounds of a bat.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

MIN_LENGTH_IN = 24
MAX_LENGTH_IN = 36
MIN_WEIGHT_OZ = 15
MAX_WEIGHT_OZ = 35

# Drop assumed when only a length is given (youth USSSA sizing)
DEFAULT_LENGTH_ONLY_DROP = 10
BBCOR_DROP = 3

_NUM = r"(\d+(?:\.\d+)?)"
_INCH_MARK = "[\"'”″]"


@dataclass(frozen=True)
class SizeVariant:
    """A normalized bat size, e.g. length '32"', weight '29 oz', drop '-3'."""

    length: str
    weight: Optional[str]
    drop: Optional[str]


def _fmt(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return f"{value:g}"


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.search(_NUM, str(value))
    return float(match.group(1)) if match else None


def in_bounds(length: float, weight: float) -> bool:
    return MIN_LENGTH_IN <= length <= MAX_LENGTH_IN and MIN_WEIGHT_OZ <= weight <= MAX_WEIGHT_OZ


def size_from_length_weight(length: float, weight: float) -> Optional[SizeVariant]:
    """Build a size from length (in) and weight (oz); None when out of bounds."""
    if not in_bounds(length, weight):
        return None
    return SizeVariant(
        length=f'{_fmt(length)}"',
        weight=f"{_fmt(weight)} oz",
        drop=_fmt(weight - length),
    )


def size_from_length_drop(length: float, drop: float) -> Optional[SizeVariant]:
    """Build a size from length (in) and drop magnitude; None when out of bounds."""
    drop = abs(drop)
    weight = length - drop
    if not in_bounds(length, weight):
        return None
    return SizeVariant(
        length=f'{_fmt(length)}"',
        weight=f"{_fmt(weight)} oz",
        drop=f"-{_fmt(drop)}" if drop else "0",
    )


# ----------------------------------------------------------------------
# Strategies
# ----------------------------------------------------------------------

SizeStrategy = Callable[[str], Optional[SizeVariant]]

_LENGTH_WEIGHT_OZ = re.compile(_NUM + _INCH_MARK + r"\s*[/\-]?\s*" + _NUM + r"\s*oz", re.I)
_PAREN_DROP = re.compile(_NUM + _INCH_MARK + r"\s*\(\s*-\s*(\d+)\s*\)")
_BARREL_PIPE_DROP = re.compile(r"barrel\s*\|\s*(\d+)" + _INCH_MARK + r"\s*\|\s*-\s*(\d+)", re.I)
_PIPE_DROP = re.compile(_NUM + _INCH_MARK + r"\s*\|\s*-\s*(\d+)")
_INCH_PIPE_DROP = re.compile(r"(\d+)\s*-\s*inch\s*\|\s*-\s*(\d+)", re.I)
_IN_OZ = re.compile(_NUM + r"\s*in\s*[/\-]\s*" + _NUM + r"\s*oz", re.I)
_SLASH_PIPE = re.compile(_NUM + r"\s*[/\-]\s*" + _NUM + r"\s*\|")
_LENGTH_ONLY = re.compile(_NUM + r"\s*inch", re.I)


def parse_length_weight_oz(text: str) -> Optional[SizeVariant]:
    """``30"/27 oz``, ``28" 18 OZ``, ``29" 26 oz.``"""
    match = _LENGTH_WEIGHT_OZ.search(text)
    if match:
        return size_from_length_weight(float(match.group(1)), float(match.group(2)))
    return None


def parse_paren_drop(text: str) -> Optional[SizeVariant]:
    """``31" (-8)``"""
    match = _PAREN_DROP.search(text)
    if match:
        return size_from_length_drop(float(match.group(1)), float(match.group(2)))
    return None


def parse_barrel_pipe_drop(text: str) -> Optional[SizeVariant]:
    """``2 5/8' Barrel | 33' | -3``"""
    match = _BARREL_PIPE_DROP.search(text)
    if match:
        return size_from_length_drop(float(match.group(1)), float(match.group(2)))
    return None


def parse_pipe_drop(text: str) -> Optional[SizeVariant]:
    """``33' | -3``"""
    match = _PIPE_DROP.search(text)
    if match:
        return size_from_length_drop(float(match.group(1)), float(match.group(2)))
    return None


def parse_inch_pipe_drop(text: str) -> Optional[SizeVariant]:
    """``33-inch | -3``"""
    match = _INCH_PIPE_DROP.search(text)
    if match:
        return size_from_length_drop(float(match.group(1)), float(match.group(2)))
    return None


def parse_in_oz(text: str) -> Optional[SizeVariant]:
    """``32in/29oz``"""
    match = _IN_OZ.search(text)
    if match:
        return size_from_length_weight(float(match.group(1)), float(match.group(2)))
    return None


def parse_slash_pipe(text: str) -> Optional[SizeVariant]:
    """``34/31 |``"""
    match = _SLASH_PIPE.search(text)
    if match:
        return size_from_length_weight(float(match.group(1)), float(match.group(2)))
    return None


def parse_length_only(text: str) -> Optional[SizeVariant]:
    """``31 Inch``; youth USSSA drop assumed."""
    match = _LENGTH_ONLY.search(text)
    if match:
        return size_from_length_drop(float(match.group(1)), DEFAULT_LENGTH_ONLY_DROP)
    return None


SIZE_STRATEGIES: tuple[SizeStrategy, ...] = (
    parse_length_weight_oz,
    parse_paren_drop,
    parse_barrel_pipe_drop,
    parse_pipe_drop,
    parse_inch_pipe_drop,
    parse_in_oz,
    parse_slash_pipe,
    parse_length_only,
)


def parse_size_text(
    text: Optional[str],
    strategies: tuple[SizeStrategy, ...] = SIZE_STRATEGIES,
) -> Optional[SizeVariant]:
    """
    Parse a free-form size string.

    Args:
        text: Size text such as ``31" (-8)`` or ``32in/29oz``
        strategies: Ordered parsers; the first in-bounds result wins

    Returns:
        SizeVariant, or None if no strategy recognized the text
    """
    if not text:
        return None
    for strategy in strategies:
        result = strategy(text)
        if result is not None:
            return result
    logger.debug(f"Unrecognized size text: {text!r}")
    return None


# ----------------------------------------------------------------------
# Structured attributes
# ----------------------------------------------------------------------

_TITLE_DROP = re.compile(r"-\s?(\d{1,2})\b")
_SIZE_NAME_LENGTH = re.compile(r"(\d+)\s*inch", re.I)


def drop_from_title(title: str, certification: Optional[str]) -> Optional[float]:
    """Drop magnitude from a ``-N`` title token, else -3 for BBCOR bats."""
    match = _TITLE_DROP.search(title or "")
    if match:
        return float(match.group(1))
    if certification == "BBCOR":
        return float(BBCOR_DROP)
    return None


def parse_attribute_sizes(
    attributes: dict[str, Any],
    title: str = "",
    certification: Optional[str] = None,
) -> list[SizeVariant]:
    """
    Sizes from structured listing attributes.

    ``bat_drop_ratio`` and ``item_length_numeric`` (or a length inside
    ``size_name``) give a single size; the drop falls back to the title.
    When no length is available, ``size_name`` is parsed as a size string.
    """
    attributes = attributes or {}

    drop = _to_float(attributes.get("bat_drop_ratio"))
    if drop is None:
        drop = drop_from_title(title, certification)

    size_name = attributes.get("size_name")
    length = _to_float(attributes.get("item_length_numeric"))
    if length is None and size_name:
        match = _SIZE_NAME_LENGTH.search(str(size_name))
        if match:
            length = float(match.group(1))

    if length is not None and drop is not None:
        size = size_from_length_drop(length, drop)
        if size is not None:
            return [size]

    if size_name:
        size = parse_size_text(str(size_name))
        if size is not None:
            return [size]

    return []
