# tests/test_extractor.py
from __future__ import annotations

import io
import struct
import zlib

import pytest
from PIL import Image

from conftest import FakeClassifier, FakeOCR
from stamp_catalog.extraction import StampExtractor
from stamp_catalog.extraction.extraction_result import ExtractionCandidate, FieldValue
from stamp_catalog.input_handler import ImageSource
from stamp_catalog.ocr_engine import OCREngine, OCRResult, OCRWord
from stamp_catalog.utils.exceptions import OCRProcessingError, VisionAPIError

VISION = ExtractionCandidate(
    theme=FieldValue("ANIMALS", 0.9),
    colors=("BLUE", "GOLD"),
    colors_confidence=0.8,
    name="Bald Eagle",
    source="vision",
)


def make_extractor(media_root, ocr=None, classifier=None, ocr_enabled=True):
    return StampExtractor(
        image_source=ImageSource(media_root),
        ocr_engine=ocr or FakeOCR(),
        classifier=classifier or FakeClassifier(),
        ocr_enabled=ocr_enabled,
    )


def test_ocr_text_feeds_parser_and_classifier(media_root, stored_image):
    ocr = FakeOCR("Scott #C10 25c")
    classifier = FakeClassifier(VISION)
    merged = make_extractor(media_root, ocr, classifier).extract_image(stored_image)

    assert classifier.ocr_texts == ["Scott #C10 25c"]
    assert merged.identifier == "C10"
    assert merged.face_value == "25c"
    assert merged.theme == "ANIMALS"
    assert merged.colors == ("BLUE", "GOLD")
    assert merged.name == "Bald Eagle"
    assert merged.needs_review is False


def test_skip_ocr_runs_vision_only(media_root, stored_image):
    ocr = FakeOCR("Scott #C10 25c")
    classifier = FakeClassifier(VISION)
    merged = make_extractor(media_root, ocr, classifier).extract_image(stored_image, skip_ocr=True)

    assert ocr.calls == 0
    assert classifier.ocr_texts == [""]
    assert merged.identifier is None
    assert merged.needs_review is True


def test_ocr_disabled_by_flag(media_root, stored_image):
    ocr = FakeOCR("Scott #C10")
    extractor = make_extractor(media_root, ocr, FakeClassifier(VISION), ocr_enabled=False)
    assert extractor.ocr_engine is None
    extractor.extract_image(stored_image)
    assert ocr.calls == 0


def test_disabled_classifier_gives_heuristic_result(media_root, stored_image):
    merged = make_extractor(
        media_root, FakeOCR("forever rocket"), FakeClassifier(enabled=False)
    ).extract_image(stored_image)

    assert merged.face_value == "78c"
    assert merged.theme == "SPACE"
    assert merged.colors == ()


def test_vision_errors_propagate(media_root, stored_image):
    extractor = make_extractor(media_root, classifier=FakeClassifier(error=VisionAPIError(500, "down")))
    with pytest.raises(VisionAPIError):
        extractor.extract_image(stored_image)


def test_mime_type_follows_extension(media_root):
    (media_root / "uploads" / "x.png").write_bytes(b"png")
    calls = []

    class RecordingClassifier(FakeClassifier):
        def classify(self, image_bytes, mime_type="image/jpeg", ocr_text=""):
            calls.append(mime_type)
            return None

    make_extractor(media_root, classifier=RecordingClassifier()).extract_image("/uploads/x.png")
    assert calls == ["image/png"]


def test_ocr_engine_degrades_to_empty_text_on_unreadable_image():
    class ExplodingBackend:
        def extract(self, image):
            raise AssertionError("backend should not be reached")

    engine = OCREngine(backend=ExplodingBackend())
    assert engine.recognize_text(b"definitely not an image") == ""
    with pytest.raises(OCRProcessingError):
        engine.extract(b"definitely not an image")


def test_ocr_engine_degrades_when_backend_fails():
    class FailingBackend:
        def extract(self, image):
            raise OCRProcessingError("image", "tesseract crashed")

    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), "white").save(buffer, format="PNG")

    assert OCREngine(backend=FailingBackend()).recognize_text(buffer.getvalue()) == ""


def png_header(width, height):
    def chunk(kind, data):
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"")


def test_oversized_image_degrades_to_empty_text():
    class ExplodingBackend:
        def extract(self, image):
            raise AssertionError("backend should not be reached")

    engine = OCREngine(backend=ExplodingBackend())
    oversized = png_header(30000, 30000)

    assert engine.recognize_text(oversized) == ""
    with pytest.raises(OCRProcessingError):
        engine.extract(oversized)


def test_oversized_image_still_runs_vision(media_root):
    (media_root / "uploads" / "huge.png").write_bytes(png_header(30000, 30000))
    vision = ExtractionCandidate(theme=FieldValue("SPACE", 0.9), source="vision")
    extractor = StampExtractor(
        image_source=ImageSource(media_root),
        ocr_engine=OCREngine(backend=object()),
        classifier=FakeClassifier(vision),
        ocr_enabled=True,
    )

    merged = extractor.extract_image("/uploads/huge.png")
    assert merged.theme == "SPACE"
    assert merged.identifier is None


def test_ocr_result_joins_words_by_line():
    result = OCRResult(words=[
        OCRWord("25c", 90.0, line_index=2),
        OCRWord("Scott", 95.0, line_index=1),
        OCRWord("#C10", 80.0, line_index=1),
    ])
    assert result.text == "Scott #C10\n25c"
    assert result.word_count == 3
    assert result.average_confidence == pytest.approx(88.333, rel=1e-3)
