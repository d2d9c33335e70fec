"""
Post-Processing Module for the Stamp Catalog Extraction Service.

This module provides:
    - Permissive normalizers for model output (invalid -> absent)
    - Strict validators for caller input (invalid -> ValidationError)
"""

from .normalizers import (
    normalize_colors,
    normalize_confidence,
    normalize_face_value,
    normalize_identifier,
    normalize_name,
    normalize_theme,
    normalize_text,
    primary_theme,
)
from .validators import (
    UNSET,
    IntakeFields,
    StampEdit,
    validate_intake_fields,
    validate_stamp_edit,
)

__all__ = [
    'normalize_colors',
    'normalize_confidence',
    'normalize_face_value',
    'normalize_identifier',
    'normalize_name',
    'normalize_theme',
    'normalize_text',
    'primary_theme',
    'UNSET',
    'IntakeFields',
    'StampEdit',
    'validate_intake_fields',
    'validate_stamp_edit',
]
