"""
Heuristic Text Parser Module.

Turns raw OCR text into an ExtractionCandidate using regular
expressions and keyword lists. Every recognized field gets a fixed
confidence that reflects how reliable its pattern has proven to be.

The parser is a pure function of its input: no I/O, no configuration.

Example:
    >>> candidate = parse_ocr_text("Scott #C10  25c  Bald eagle")
    >>> candidate.identifier
    FieldValue(value='C10', confidence=0.84)
"""

import re

from stamp_catalog.postprocessor.normalizers import normalize_text
from stamp_catalog.taxonomy import FOREVER_FACE_VALUE, THEME_KEYWORDS, THEME_TAXONOMY
from .extraction_result import ExtractionCandidate, FieldValue

SOURCE_NAME = "heuristic"

# Fixed confidences per pattern
CONFIDENCE_LABELED_IDENTIFIER = 0.84
CONFIDENCE_BARE_IDENTIFIER = 0.72
CONFIDENCE_FOREVER = 0.90
CONFIDENCE_CURRENCY = 0.82
CONFIDENCE_THEME_KEYWORD = 0.80

LABELED_IDENTIFIER_PATTERN = re.compile(
    r'\bscott\s*#?\s*([a-z]{0,3}\d{1,4}[a-z]{0,3})\b',
    re.IGNORECASE
)
BARE_IDENTIFIER_PATTERN = re.compile(
    r'\b([a-z]{0,2}\d{1,4}[a-z]{0,2})\b',
    re.IGNORECASE
)
# Plain years and small numbers are too ambiguous to be catalog numbers
AMBIGUOUS_NUMBER_PATTERN = re.compile(r'^(?:\d{4}|\d{1,2})$')

FOREVER_PATTERN = re.compile(r'\bforever\b', re.IGNORECASE)
CURRENCY_PATTERN = re.compile(
    r'(\$\s?\d+(?:\.\d{1,2})?(?!\d)'
    r'|\b\d+\s?(?:cents?\b|dollars?\b|c\b|¢))',
    re.IGNORECASE
)


def parse_identifier(text: str) -> FieldValue:
    """
    Find a catalog identifier.

    A "Scott #" label wins; otherwise the first bare alphanumeric
    token is used unless it is a plain 4-digit or 1-2 digit number.
    """
    labeled = LABELED_IDENTIFIER_PATTERN.search(text)
    if labeled:
        return FieldValue(labeled.group(1).upper(), CONFIDENCE_LABELED_IDENTIFIER)

    bare = BARE_IDENTIFIER_PATTERN.search(text)
    if not bare:
        return FieldValue.empty()

    token = bare.group(1).upper()
    if AMBIGUOUS_NUMBER_PATTERN.match(token):
        return FieldValue.empty()
    return FieldValue(token, CONFIDENCE_BARE_IDENTIFIER)


def parse_face_value(text: str) -> FieldValue:
    """Find a face value; the word "forever" beats any currency token."""
    if FOREVER_PATTERN.search(text):
        return FieldValue(FOREVER_FACE_VALUE, CONFIDENCE_FOREVER)

    match = CURRENCY_PATTERN.search(text)
    if not match:
        return FieldValue.empty()
    value = re.sub(r'\s+', ' ', match.group(1)).strip()
    return FieldValue(value, CONFIDENCE_CURRENCY)


def parse_theme(text: str) -> FieldValue:
    """First keyword hit, scanning themes in taxonomy order."""
    normalized = normalize_text(text)
    for theme in THEME_TAXONOMY:
        for keyword in THEME_KEYWORDS[theme]:
            if keyword in normalized:
                return FieldValue(theme, CONFIDENCE_THEME_KEYWORD)
    return FieldValue.empty()


def parse_ocr_text(raw_text: str) -> ExtractionCandidate:
    """
    Parse raw recognized text into a candidate.

    Colors are never produced here: text cannot convey them reliably.

    Args:
        raw_text: OCR output, possibly empty.

    Returns:
        ExtractionCandidate with source "heuristic".
    """
    raw_text = raw_text or ""
    return ExtractionCandidate(
        identifier=parse_identifier(raw_text),
        face_value=parse_face_value(raw_text),
        theme=parse_theme(raw_text),
        source=SOURCE_NAME,
    )
