# tests/test_heuristic_parser.py
from __future__ import annotations

import pytest

from stamp_catalog.extraction.heuristic_parser import (
    parse_face_value,
    parse_identifier,
    parse_ocr_text,
    parse_theme,
)


def test_empty_text_yields_empty_candidate():
    candidate = parse_ocr_text("")
    assert candidate.identifier.value is None
    assert candidate.identifier.confidence == 0.0
    assert candidate.face_value.value is None
    assert candidate.theme.value is None
    assert candidate.colors == ()
    assert candidate.colors_confidence == 0.0
    assert candidate.source == "heuristic"


def test_none_text_is_treated_as_empty():
    assert parse_ocr_text(None).is_empty


def test_labeled_identifier_wins_over_bare_token():
    field = parse_identifier("USA 1999 scott # c10 airmail")
    assert field.value == "C10"
    assert field.confidence == 0.84


def test_labeled_identifier_without_hash():
    assert parse_identifier("Scott 3001a").value == "3001A"


def test_bare_identifier_has_lower_confidence():
    field = parse_identifier("stamp C23 airmail")
    assert field.value == "C23"
    assert field.confidence == 0.72


@pytest.mark.parametrize("text", ["2024 FOREVER", "12 flowers", "7"])
def test_year_or_small_number_is_not_an_identifier(text):
    field = parse_identifier(text)
    assert field.value is None
    assert field.confidence == 0.0


def test_only_first_bare_token_is_considered():
    # The first token is a year, so the later C10 is not used
    assert parse_identifier("1999 C10").value is None


@pytest.mark.parametrize("text", ["forever", "FOREVER USA", "Usa Forever 2020"])
def test_forever_maps_to_canonical_value(text):
    field = parse_face_value(text)
    assert field.value == "78c"
    assert field.confidence == 0.90


def test_forever_beats_currency():
    assert parse_face_value("$1 forever").value == "78c"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("USA 25c", "25c"),
        ("price $1.50 only", "$1.50"),
        ("$ 2", "$ 2"),
        ("10 cents", "10 cents"),
        ("5 dollars", "5 dollars"),
        ("3¢", "3¢"),
    ],
)
def test_currency_tokens(text, expected):
    field = parse_face_value(text)
    assert field.value == expected
    assert field.confidence == 0.82


def test_no_face_value():
    field = parse_face_value("United States")
    assert field.value is None
    assert field.confidence == 0.0


def test_theme_keyword_match():
    field = parse_theme("A  Beautiful   ROSE garden")
    assert field.value == "FLOWERS"
    assert field.confidence == 0.80


def test_theme_scans_taxonomy_in_order():
    # "bird" (ANIMALS) and "rocket" (SPACE) both present; ANIMALS comes first
    assert parse_theme("rocket and bird").value == "ANIMALS"


def test_theme_multiword_keyword_after_whitespace_collapse():
    assert parse_theme("Happy   New\nYear").value == "HOLIDAYS"


def test_full_parse():
    candidate = parse_ocr_text("Scott #C10\n25c\nOlympic games")
    assert candidate.identifier.value == "C10"
    assert candidate.face_value.value == "25c"
    assert candidate.theme.value == "SPORTS"
    assert candidate.colors == ()


def test_parser_is_deterministic():
    text = "Scott 1234 forever train"
    assert parse_ocr_text(text) == parse_ocr_text(text)
