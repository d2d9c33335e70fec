"""
OCR Engine Module for the Stamp Catalog Extraction Service.

This module provides the optional OCR pass of an extraction:
    - Raw text recognition from stamp images
    - Word-level confidences for logging

Backend:
    - Tesseract (pytesseract)
"""

from .engine import OCREngine
from .tesseract_backend import TesseractBackend
from .ocr_result import OCRResult, OCRWord

__all__ = ['OCREngine', 'TesseractBackend', 'OCRResult', 'OCRWord']
