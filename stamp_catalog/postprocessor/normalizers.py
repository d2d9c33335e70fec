"""
Field Normalizers Module.

Permissive normalization of catalog field values. Every function here
accepts arbitrary decoded JSON (``Any``) and returns either a clean
value or None / an empty list. Nothing in this module raises: values
outside the taxonomy, palette or identifier pattern are treated as
absent so that a partial model answer can still be merged.

The strict counterparts used on caller input live in validators.py.
"""

import math
import re
from typing import Any, List, Optional

from stamp_catalog.taxonomy import (
    COLOR_PALETTE,
    FOREVER_FACE_VALUE,
    MAX_COLORS,
    MAX_NAME_LENGTH,
    MAX_THEME_TAGS,
    MAX_YEAR,
    MIN_YEAR,
    THEME_TAXONOMY,
)

IDENTIFIER_PATTERN = re.compile(r'^[A-Z0-9-]{1,20}$')


def normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace runs to single spaces."""
    return re.sub(r'\s+', ' ', text.lower()).strip()


def normalize_confidence(value: Any) -> float:
    """
    Clamp a reported confidence into [0, 1].

    Non-numeric values, booleans and NaN become 0.

    Example:
        >>> normalize_confidence(1.4)
        1.0
        >>> normalize_confidence("0.9")
        0.0
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def normalize_identifier(value: Any) -> Optional[str]:
    """Trimmed, uppercased catalog identifier, or None if it breaks the pattern."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip().upper()
    if not trimmed:
        return None
    if not IDENTIFIER_PATTERN.match(trimmed):
        return None
    return trimmed


def normalize_face_value(value: Any) -> Optional[str]:
    """
    Normalize a face value string.

    Any mention of "forever" collapses to the canonical forever token.

    Example:
        >>> normalize_face_value(" Forever ")
        "78c"
        >>> normalize_face_value("25c")
        "25c"
    """
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if "forever" in trimmed.lower():
        return FOREVER_FACE_VALUE
    return trimmed


def normalize_theme(value: Any) -> Optional[str]:
    """Exact taxonomy member, or None."""
    if isinstance(value, str) and value in THEME_TAXONOMY:
        return value
    return None


def normalize_name(value: Any) -> Optional[str]:
    """Trimmed display name capped at MAX_NAME_LENGTH characters."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return trimmed[:MAX_NAME_LENGTH]


def normalize_year(value: Any) -> Optional[int]:
    """Integer year within the catalog range, or None."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value < MIN_YEAR or value > MAX_YEAR:
        return None
    return value


def normalize_colors(value: Any) -> List[str]:
    """
    Keep palette colors in their given order, dropping duplicates
    and anything unrecognized, and truncate to MAX_COLORS.

    Example:
        >>> normalize_colors(["blue", "teal", "BLUE", " gold "])
        ["BLUE", "GOLD"]
    """
    if not isinstance(value, list):
        return []

    colors: List[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        color = item.strip().upper()
        if color in COLOR_PALETTE and color not in colors:
            colors.append(color)

    return colors[:MAX_COLORS]


def normalize_theme_tag(value: str) -> str:
    """Uppercase a tag and replace whitespace runs with underscores."""
    return re.sub(r'\s+', '_', value.strip().upper())


def normalize_theme_tags(values: List[str]) -> List[str]:
    """
    Normalize, de-duplicate (preserving order) and cap theme tags.

    Example:
        >>> normalize_theme_tags(["animals", "big cats", "ANIMALS"])
        ["ANIMALS", "BIG_CATS"]
    """
    tags: List[str] = []
    for value in values:
        tag = normalize_theme_tag(value)
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:MAX_THEME_TAGS]


def split_csv(value: str) -> List[str]:
    """Split a comma-separated string, dropping empty items."""
    return [item.strip() for item in value.split(',') if item.strip()]


def primary_theme(theme_tags: List[str]) -> Optional[str]:
    """First tag that is a taxonomy theme, or None."""
    for tag in theme_tags:
        if tag in THEME_TAXONOMY:
            return tag
    return None
