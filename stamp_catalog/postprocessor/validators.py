"""
Caller Input Validators Module.

Strict validation of field values supplied by external callers
(intake requests and manual review edits). Unlike the normalizers,
these raise ValidationError instead of silently dropping a value, so
that bad input is rejected before it reaches the stamp table or the
job queue.

Example:
    >>> edit = validate_stamp_edit({"scottNumber": "c10", "dominantColors": "blue, gold"})
    >>> edit.identifier
    "C10"
    >>> edit.dominant_colors
    ["BLUE", "GOLD"]
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from stamp_catalog.taxonomy import COLOR_PALETTE, MAX_COLORS, MAX_YEAR, MIN_YEAR
from stamp_catalog.utils.exceptions import ValidationError
from stamp_catalog.utils.logger import get_logger
from .normalizers import (
    normalize_face_value,
    normalize_identifier,
    normalize_theme,
    normalize_theme_tags,
    normalize_year,
    split_csv,
)

# Initialize module logger
logger = get_logger(__name__)


class _Unset:
    """Marker for a field the caller did not send."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

# Payload keys accepted from callers, mapped to StampEdit attributes
EDIT_KEYS = {
    "name": "name",
    "year": "year",
    "scottNumber": "identifier",
    "identifier": "identifier",
    "faceValue": "face_value",
    "face_value": "face_value",
    "theme": "theme",
    "themeTags": "theme_tags",
    "theme_tags": "theme_tags",
    "dominantColors": "dominant_colors",
    "dominant_colors": "dominant_colors",
}


@dataclass
class StampEdit:
    """
    A validated manual review edit.

    Attributes left as UNSET were not part of the request and must not
    be touched; None means the caller explicitly cleared the field.
    """
    name: Any = UNSET
    year: Any = UNSET
    identifier: Any = UNSET
    face_value: Any = UNSET
    theme: Any = UNSET
    theme_tags: Any = UNSET
    dominant_colors: Any = UNSET

    def provided(self) -> Dict[str, Any]:
        """Fields present in the edit, including explicit clears."""
        return {
            name: value
            for name, value in self.__dict__.items()
            if value is not UNSET
        }


@dataclass
class IntakeFields:
    """Validated caller values that accompany a new stamp image."""
    name: Optional[str] = None
    identifier: Optional[str] = None
    face_value: Optional[str] = None
    theme_tags: List[str] = field(default_factory=list)


def validate_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("name", value, "must be a non-empty string")
    return value.strip()


def validate_year(value: Any) -> int:
    year = normalize_year(value)
    if year is None:
        raise ValidationError("year", value, f"must be an integer between {MIN_YEAR} and {MAX_YEAR}")
    return year


def validate_identifier(value: Any) -> str:
    identifier = normalize_identifier(value)
    if identifier is None:
        raise ValidationError("Scott number", value, "must match [A-Z0-9-]{1,20}")
    return identifier


def validate_face_value(value: Any) -> str:
    face_value = normalize_face_value(value)
    if face_value is None:
        raise ValidationError("face value", value, "must be a non-empty string")
    return face_value


def validate_theme(value: Any) -> str:
    theme = normalize_theme(value)
    if theme is None:
        raise ValidationError("theme", value, "not in the theme taxonomy")
    return theme


def validate_theme_tags(value: Any) -> List[str]:
    """
    Accept a comma-separated string or a list of strings.

    Returns:
        Normalized, de-duplicated tags (at most 12).

    Raises:
        ValidationError: If the value is not a string/list of strings
            or yields no tags.
    """
    items = _as_items("theme tags", value)
    tags = normalize_theme_tags(items)
    if not tags:
        raise ValidationError("theme tags", value, "no usable tags")
    return tags


def validate_dominant_colors(value: Any) -> List[str]:
    """
    Accept a comma-separated string or a list of palette colors.

    More than five distinct colors, or any color outside the palette,
    rejects the whole value.

    Raises:
        ValidationError: With the list of allowed colors in the message.
    """
    reason = f"use comma-separated colors from: {', '.join(COLOR_PALETTE)}"
    items = [item.upper() for item in _as_items("colors", value)]

    colors: List[str] = []
    for item in items:
        if item not in colors:
            colors.append(item)

    if not colors or len(colors) > MAX_COLORS:
        raise ValidationError("colors", value, reason)
    if any(color not in COLOR_PALETTE for color in colors):
        raise ValidationError("colors", value, reason)
    return colors


def _as_items(field_name: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return split_csv(value)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item.strip() for item in value if item.strip()]
    raise ValidationError(field_name, value, "must be a string or list of strings")


_FIELD_VALIDATORS = {
    "name": validate_name,
    "year": validate_year,
    "identifier": validate_identifier,
    "face_value": validate_face_value,
    "theme": validate_theme,
    "theme_tags": validate_theme_tags,
    "dominant_colors": validate_dominant_colors,
}


def validate_stamp_edit(payload: Dict[str, Any]) -> StampEdit:
    """
    Validate a manual review edit payload.

    Absent keys stay UNSET. An explicit None clears the field, except
    for the name, which cannot be cleared.

    Args:
        payload: Decoded JSON object from the caller.

    Returns:
        StampEdit with validated values.

    Raises:
        ValidationError: On the first invalid field, or if the payload
            is not an object.
    """
    if not isinstance(payload, dict):
        raise ValidationError("body", payload, "must be a JSON object")

    edit = StampEdit()
    for key, raw in payload.items():
        attr = EDIT_KEYS.get(key)
        if attr is None:
            logger.debug(f"Ignoring unknown edit key: {key}")
            continue

        if raw is None and attr != "name":
            setattr(edit, attr, None)
            continue

        setattr(edit, attr, _FIELD_VALIDATORS[attr](raw))

    return edit


def validate_intake_fields(
    name: Optional[str] = None,
    identifier: Optional[str] = None,
    face_value: Optional[str] = None,
    themes: Union[List[str], None] = None,
    custom_themes: Optional[str] = None,
) -> IntakeFields:
    """
    Validate the optional values a caller sends along with new images.

    Blank strings count as "not supplied". Selected themes and the
    free-form custom theme string are merged into one tag list.

    Raises:
        ValidationError: If a supplied identifier or tag list is invalid.
    """
    fields = IntakeFields()

    if name and name.strip():
        fields.name = name.strip()
    if identifier and identifier.strip():
        fields.identifier = validate_identifier(identifier)
    if face_value and face_value.strip():
        fields.face_value = validate_face_value(face_value)

    raw_tags = list(themes or [])
    if custom_themes and custom_themes.strip():
        raw_tags.extend(split_csv(custom_themes))
    if raw_tags:
        fields.theme_tags = validate_theme_tags(raw_tags)

    return fields
