"""
Tesseract OCR Backend.

This module provides OCR functionality using Tesseract (pytesseract).

Requirements:
    - Tesseract OCR installed on the system
    - pytesseract Python package
"""

import time
from typing import Dict, List

import pytesseract
from PIL import Image

from config import get_config
from stamp_catalog.utils.logger import get_logger
from stamp_catalog.utils.exceptions import OCREngineNotAvailableError, OCRProcessingError
from .ocr_result import OCRResult, OCRWord

# Initialize module logger
logger = get_logger(__name__)


class TesseractBackend:
    """
    Tesseract OCR backend implementation.

    Attributes:
        language: Tesseract language code (e.g., "eng")
        psm: Page Segmentation Mode (1-13)
        oem: OCR Engine Mode (0-3)
        extra_config: Additional Tesseract configuration

    Example:
        >>> backend = TesseractBackend()
        >>> result = backend.extract(image)
        >>> print(result.text)
    """

    def __init__(self) -> None:
        """Initialize the Tesseract backend with configuration."""
        self.language = get_config("ocr.tesseract.lang", "eng")
        self.psm = get_config("ocr.tesseract.psm", 3)
        self.oem = get_config("ocr.tesseract.oem", 3)
        self.extra_config = get_config("ocr.tesseract.config", "")

        self.version = self._check_binary()

        logger.debug(
            f"TesseractBackend initialized (lang={self.language}, "
            f"psm={self.psm}, oem={self.oem})"
        )

    def _check_binary(self) -> str:
        """
        Check that the tesseract executable can be run.

        Raises:
            OCREngineNotAvailableError: If Tesseract is not installed.
        """
        try:
            version = str(pytesseract.get_tesseract_version())
        except pytesseract.TesseractNotFoundError as e:
            raise OCREngineNotAvailableError(
                f"Tesseract OCR (not installed or not in PATH): {e}"
            ) from e
        logger.info(f"Tesseract version: {version}")
        return version

    def _build_config(self) -> str:
        """Build Tesseract configuration string."""
        config_parts = [
            f"--psm {self.psm}",
            f"--oem {self.oem}"
        ]

        if self.extra_config:
            config_parts.append(self.extra_config)

        return ' '.join(config_parts)

    def extract(self, image: Image.Image) -> OCRResult:
        """
        Recognize the words in an image.

        Args:
            image: PIL Image to process.

        Returns:
            OCRResult with words grouped by line.

        Raises:
            OCRProcessingError: If OCR processing fails.
        """
        start_time = time.time()

        try:
            if image.mode != 'RGB':
                image = image.convert('RGB')

            data = pytesseract.image_to_data(
                image,
                lang=self.language,
                config=self._build_config(),
                output_type=pytesseract.Output.DICT
            )
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            logger.error(f"OCR processing failed: {e}")
            raise OCRProcessingError("image", str(e)) from e

        words = self._parse_tesseract_output(data)
        processing_time = time.time() - start_time

        result = OCRResult(
            words=words,
            engine="tesseract",
            processing_time=processing_time,
            metadata={
                'psm': self.psm,
                'oem': self.oem,
                'tesseract_version': self.version
            }
        )

        logger.info(
            f"OCR completed: {result.word_count} words, "
            f"avg confidence: {result.average_confidence:.1f}% "
            f"({processing_time:.2f}s)"
        )

        return result

    def _parse_tesseract_output(self, data: Dict[str, List]) -> List[OCRWord]:
        """
        Parse Tesseract output into OCRWord objects.

        Args:
            data: Dictionary output from image_to_data.

        Returns:
            List of OCRWord objects.
        """
        words = []

        for i, text in enumerate(data['text']):
            if not text or not text.strip():
                continue

            conf = float(data['conf'][i])
            if conf < 0:
                conf = 0.0  # Tesseract returns -1 for non-word boxes

            # Lines are only unique within a block/paragraph
            line_key = (
                data['block_num'][i] * 10000
                + data['par_num'][i] * 100
                + data['line_num'][i]
            )

            words.append(OCRWord(
                text=text.strip(),
                confidence=conf,
                line_index=line_key
            ))

        return words
