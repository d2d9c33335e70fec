"""
Stamp Extractor Module.

This module provides the StampExtractor class that runs one complete
extraction for a stamp image:

    image bytes → (optional) OCR pass → heuristic parse
                → vision classification (OCR text as hint)
                → merge → MergedExtraction

OCR problems never abort an extraction; vision service errors do,
and are left for the caller (the worker marks the job FAILED).
"""

import time
from typing import Optional

from config import get_config
from stamp_catalog.input_handler import ImageSource
from stamp_catalog.ocr_engine import OCREngine
from stamp_catalog.taxonomy import REVIEW_THRESHOLD
from stamp_catalog.utils.logger import get_logger
from .extraction_result import ExtractionCandidate, MergedExtraction
from .heuristic_parser import parse_ocr_text
from .merge import merge_candidates
from .vision_classifier import VisionClassifier

# Initialize module logger
logger = get_logger(__name__)


class StampExtractor:
    """
    End-to-end field extraction for a single stamp image.

    Attributes:
        image_source: Reads stored images from the media root
        ocr_engine: OCR engine for the optional text pass (None disables it)
        classifier: Vision classifier client
        review_threshold: Minimum confidence that avoids human review

    Example:
        >>> extractor = StampExtractor()
        >>> merged = extractor.extract_image("/uploads/eagle.jpg")
        >>> print(merged.theme, merged.needs_review)
    """

    def __init__(
        self,
        image_source: Optional[ImageSource] = None,
        ocr_engine: Optional[OCREngine] = None,
        classifier: Optional[VisionClassifier] = None,
        ocr_enabled: Optional[bool] = None,
        review_threshold: Optional[float] = None
    ) -> None:
        if ocr_enabled is None:
            ocr_enabled = get_config("ocr.enabled", True)

        self.image_source = image_source or ImageSource()
        self.ocr_engine = (ocr_engine or OCREngine()) if ocr_enabled else None
        self.classifier = classifier or VisionClassifier()
        self.review_threshold = (
            review_threshold
            if review_threshold is not None
            else get_config("review.threshold", REVIEW_THRESHOLD)
        )

        logger.info(
            f"StampExtractor initialized (ocr={'on' if self.ocr_engine else 'off'}, "
            f"vision={'on' if self.classifier.is_enabled else 'off'})"
        )

    @property
    def vision_enabled(self) -> bool:
        return self.classifier.is_enabled

    def extract_image(self, image_path: str, skip_ocr: bool = False) -> MergedExtraction:
        """
        Extract catalog fields for a stored stamp image.

        Args:
            image_path: Path as stored on the stamp record.
            skip_ocr: Run the vision classifier only.

        Returns:
            MergedExtraction for the image.

        Raises:
            InputError: If the image cannot be read.
            VisionAPIError: If the vision service call fails.
        """
        image_bytes = self.image_source.read_bytes(image_path)
        mime_type = self.image_source.mime_type(image_path)
        return self.extract(image_bytes, mime_type, skip_ocr=skip_ocr)

    def extract(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
        skip_ocr: bool = False
    ) -> MergedExtraction:
        """
        Extract catalog fields from raw image bytes.

        Args:
            image_bytes: Raw image file content.
            mime_type: MIME type for the vision request.
            skip_ocr: Run the vision classifier only.

        Returns:
            MergedExtraction combining both sources.
        """
        start_time = time.time()

        raw_text = ""
        if self.ocr_engine is not None and not skip_ocr:
            raw_text = self.ocr_engine.recognize_text(image_bytes)

        heuristic = parse_ocr_text(raw_text)
        vision: Optional[ExtractionCandidate] = self.classifier.classify(
            image_bytes, mime_type, raw_text
        )

        merged = merge_candidates(heuristic, vision, self.review_threshold)

        logger.info(
            f"Extraction complete: identifier={merged.identifier or 'N/A'}, "
            f"face value={merged.face_value or 'N/A'}, theme={merged.theme or 'N/A'}, "
            f"needs review={merged.needs_review}, "
            f"time: {time.time() - start_time:.2f}s"
        )
        return merged
