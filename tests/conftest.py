# tests/conftest.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest

from config import ConfigurationManager
from stamp_catalog.extraction.extraction_result import ExtractionCandidate, MergedExtraction
from stamp_catalog.storage import Database, JobRepository, StampRepository

ENV_VARS = (
    "STAMP_CATALOG_CONFIG",
    "STAMP_CATALOG_DB",
    "STAMP_CATALOG_MEDIA_ROOT",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OCR_POLL_MS",
)


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture
def media_root(tmp_path) -> Path:
    root = tmp_path / "public"
    (root / "uploads").mkdir(parents=True)
    return root


@pytest.fixture
def stored_image(media_root) -> str:
    (media_root / "uploads" / "eagle.jpg").write_bytes(b"\xff\xd8fake-jpeg-bytes")
    return "/uploads/eagle.jpg"


@pytest.fixture
def db(tmp_path) -> Database:
    database = Database(tmp_path / "catalog.db")
    database.initialize()
    return database


@pytest.fixture
def stamps(db) -> StampRepository:
    return StampRepository(db)


@pytest.fixture
def jobs(db) -> JobRepository:
    return JobRepository(db)


class FakeOCR:
    def __init__(self, text: str = ""):
        self.text = text
        self.calls = 0

    def recognize_text(self, image_bytes: bytes) -> str:
        self.calls += 1
        return self.text


class FakeClassifier:
    def __init__(self, candidate: Optional[ExtractionCandidate] = None, enabled: bool = True, error=None):
        self.candidate = candidate
        self.enabled = enabled
        self.error = error
        self.ocr_texts: List[str] = []

    @property
    def is_enabled(self) -> bool:
        return self.enabled

    def classify(self, image_bytes: bytes, mime_type: str = "image/jpeg", ocr_text: str = ""):
        if not self.enabled:
            return None
        self.ocr_texts.append(ocr_text)
        if self.error is not None:
            raise self.error
        return self.candidate


class FakeExtractor:
    """Stands in for StampExtractor in worker and intake tests."""

    def __init__(self, result: Optional[MergedExtraction] = None, error=None, vision_enabled: bool = True):
        self.result = result or MergedExtraction()
        self.error = error
        self.vision_enabled = vision_enabled
        self.calls: List[tuple] = []

    def extract_image(self, image_path: str, skip_ocr: bool = False) -> MergedExtraction:
        self.calls.append((image_path, skip_ocr))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def complete_extraction() -> MergedExtraction:
    return MergedExtraction(
        identifier="C10",
        confidence_identifier=0.84,
        face_value="25c",
        confidence_face_value=0.82,
        theme="ANIMALS",
        confidence_theme=0.9,
        colors=("BLUE", "GOLD"),
        confidence_colors=0.7,
        name="Bald Eagle",
        needs_review=False,
    )
