"""
Input Handler Module for the Stamp Catalog Extraction Service.

This module provides functionality for:
    - Resolving stored stamp image paths under the media root
    - Reading image bytes for OCR and vision classification
    - Guessing MIME types for the vision data URL
"""

from .image_source import ImageSource

__all__ = ['ImageSource']
