"""
Merge Engine Module.

Reconciles the heuristic candidate and the (optional) vision candidate
into one MergedExtraction and derives the human-review flag.

Rules per field:
    - identifier, face value: heuristic wins when present, else vision
    - theme: vision wins when its confidence is at least the heuristic's,
      or when the heuristic found no theme
    - colors: vision only; an empty list always has confidence 0
    - name: vision only

Review is required when identifier, face value or theme is missing or
below the review threshold. Colors are advisory and never gate review.
"""

from typing import Optional

from stamp_catalog.taxonomy import REVIEW_THRESHOLD
from .extraction_result import ExtractionCandidate, FieldValue, MergedExtraction


def _prefer_heuristic(heuristic: FieldValue, vision: FieldValue) -> FieldValue:
    if heuristic.present:
        return heuristic
    if vision.present:
        return vision
    return FieldValue.empty()


def _choose_theme(heuristic: FieldValue, vision: FieldValue) -> FieldValue:
    # Ties go to vision
    if vision.present and vision.confidence >= heuristic.confidence:
        return vision
    if not heuristic.present and vision.present:
        return vision
    return heuristic


def _settled(field_value: FieldValue) -> FieldValue:
    """Force confidence to 0 for an absent value."""
    if not field_value.present:
        return FieldValue.empty()
    return field_value


def needs_human_review(
    identifier: FieldValue,
    face_value: FieldValue,
    theme: FieldValue,
    threshold: float = REVIEW_THRESHOLD
) -> bool:
    """True if any gating field is missing or below the threshold."""
    for field_value in (identifier, face_value, theme):
        if not field_value.present or field_value.confidence < threshold:
            return True
    return False


def merge_candidates(
    heuristic: ExtractionCandidate,
    vision: Optional[ExtractionCandidate],
    threshold: float = REVIEW_THRESHOLD
) -> MergedExtraction:
    """
    Merge both sources into one extraction.

    Pure and deterministic: merging the same pair twice yields equal
    results.

    Args:
        heuristic: Candidate from the heuristic text parser.
        vision: Candidate from the vision classifier, or None when the
            classifier was disabled or returned nothing usable.
        threshold: Minimum confidence that avoids review.

    Returns:
        MergedExtraction with the review flag set.

    Example:
        >>> merged = merge_candidates(parse_ocr_text(""), None)
        >>> merged.needs_review
        True
    """
    vision = vision or ExtractionCandidate(source="vision")

    identifier = _settled(_prefer_heuristic(heuristic.identifier, vision.identifier))
    face_value = _settled(_prefer_heuristic(heuristic.face_value, vision.face_value))
    theme = _settled(_choose_theme(heuristic.theme, vision.theme))

    colors = tuple(vision.colors)
    colors_confidence = vision.colors_confidence if colors else 0.0

    return MergedExtraction(
        identifier=identifier.value,
        confidence_identifier=identifier.confidence,
        face_value=face_value.value,
        confidence_face_value=face_value.confidence,
        theme=theme.value,
        confidence_theme=theme.confidence,
        colors=colors,
        confidence_colors=colors_confidence,
        name=vision.name,
        needs_review=needs_human_review(identifier, face_value, theme, threshold),
    )
