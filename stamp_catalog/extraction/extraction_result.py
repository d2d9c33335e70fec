"""
Extraction Result Data Classes.

This module defines the data structures exchanged between the two
extraction sources and the merge engine.

Classes:
    FieldValue: One value paired with its confidence
    ExtractionCandidate: One source's proposed catalog fields
    MergedExtraction: The reconciled result written onto a stamp
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class FieldValue:
    """
    A single extracted value with the confidence of its source.

    Example:
        >>> FieldValue("C10", 0.84)
        FieldValue(value='C10', confidence=0.84)
    """
    value: Optional[str] = None
    confidence: float = 0.0

    @property
    def present(self) -> bool:
        return self.value is not None

    @classmethod
    def empty(cls) -> 'FieldValue':
        return cls(None, 0.0)


@dataclass(frozen=True)
class ExtractionCandidate:
    """
    Candidate catalog fields proposed by one extraction source.

    The heuristic text parser never produces colors or a name; the
    vision classifier may produce all fields.

    Attributes:
        identifier: Catalog (Scott) number, uppercase
        face_value: Face value string, "78c" for forever stamps
        theme: One theme from the taxonomy
        colors: Up to five palette colors, most prominent first
        colors_confidence: Confidence for the whole color list
        name: Concise display title
        source: Which extractor produced the candidate
    """
    identifier: FieldValue = field(default_factory=FieldValue.empty)
    face_value: FieldValue = field(default_factory=FieldValue.empty)
    theme: FieldValue = field(default_factory=FieldValue.empty)
    colors: Tuple[str, ...] = ()
    colors_confidence: float = 0.0
    name: Optional[str] = None
    source: str = "unknown"

    @property
    def is_empty(self) -> bool:
        """True when the candidate proposes nothing at all."""
        return not (
            self.identifier.present
            or self.face_value.present
            or self.theme.present
            or self.colors
            or self.name
        )


@dataclass(frozen=True)
class MergedExtraction:
    """
    The reconciled extraction attached to a stamp record.

    Invariant: every confidence is 0 when its value is absent.

    Example:
        >>> merged.identifier, merged.confidence_identifier
        ('C10', 0.84)
        >>> merged.needs_review
        False
    """
    identifier: Optional[str] = None
    confidence_identifier: float = 0.0
    face_value: Optional[str] = None
    confidence_face_value: float = 0.0
    theme: Optional[str] = None
    confidence_theme: float = 0.0
    colors: Tuple[str, ...] = ()
    confidence_colors: float = 0.0
    name: Optional[str] = None
    needs_review: bool = True

    @property
    def filled_any(self) -> bool:
        """True if at least one catalog field or the name was filled."""
        return any((self.name, self.identifier, self.face_value, self.theme))

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary format.

        Returns:
            Dictionary representation of the merged extraction.
        """
        return {
            'name': self.name,
            'identifier': self.identifier,
            'confidence_identifier': self.confidence_identifier,
            'face_value': self.face_value,
            'confidence_face_value': self.confidence_face_value,
            'theme': self.theme,
            'confidence_theme': self.confidence_theme,
            'colors': list(self.colors),
            'confidence_colors': self.confidence_colors,
            'needs_review': self.needs_review,
        }
