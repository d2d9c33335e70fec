"""
Main OCR Engine Module.

This module provides the OCREngine class used for the optional OCR
pass of an extraction. Recognition is best-effort: a stamp whose text
cannot be read simply degrades the heuristic parser to an all-null
candidate, so recognize_text() never raises.

Usage:
    from stamp_catalog.ocr_engine import OCREngine

    engine = OCREngine()
    text = engine.recognize_text(image_bytes)
"""

import io
from typing import Optional

from PIL import Image, UnidentifiedImageError

from stamp_catalog.utils.logger import get_logger
from stamp_catalog.utils.exceptions import OCRError, OCRProcessingError
from .ocr_result import OCRResult
from .tesseract_backend import TesseractBackend

# Initialize module logger
logger = get_logger(__name__)


class OCREngine:
    """
    Unified interface for text recognition on stamp images.

    The Tesseract backend is created on first use, so a host without
    Tesseract can still run the worker with vision-only extraction.

    Attributes:
        backend_name: Name of the OCR backend
        backend: The active backend instance (None until first use)

    Example:
        >>> engine = OCREngine()
        >>> result = engine.extract(image_bytes)
        >>> print(f"Recognized {result.word_count} words")
    """

    def __init__(self, backend: Optional[TesseractBackend] = None) -> None:
        self.backend_name = "tesseract"
        self.backend = backend

    def _get_backend(self) -> TesseractBackend:
        if self.backend is None:
            self.backend = TesseractBackend()
            logger.info(f"OCR Engine initialized with backend: {self.backend_name}")
        return self.backend

    def extract(self, image_bytes: bytes) -> OCRResult:
        """
        Recognize text in an encoded image.

        Args:
            image_bytes: Raw image file content.

        Returns:
            OCRResult with recognized words.

        Raises:
            OCRError: If the image cannot be opened (including images over
                Pillow's pixel limit) or recognition fails.
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise OCRProcessingError("image", f"Failed to load image: {e}") from e

        return self._get_backend().extract(image)

    def recognize_text(self, image_bytes: bytes) -> str:
        """
        Best-effort raw text for the heuristic parser.

        Args:
            image_bytes: Raw image file content.

        Returns:
            Recognized text, or "" if recognition failed.
        """
        try:
            return self.extract(image_bytes).text
        except OCRError as e:
            logger.warning(f"OCR pass skipped: {e}")
            return ""
