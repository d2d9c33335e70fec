"""
Stamp Catalog Extraction Service - Source Package.

This package contains the core modules that auto-populate catalog
fields for photographed postage stamps. Each module has a single
responsibility.

Modules:
    - input_handler: Resolves stored stamp images to bytes
    - ocr_engine: Raw text recognition (Tesseract)
    - extraction: Heuristic parser, vision classifier and merge engine
    - postprocessor: Normalization and validation of field values
    - storage: SQLite stamp and job repositories
    - jobs: Job queue, intake flow and the background worker

Architecture:
    Enqueue → Claim → OCR → Heuristic Parse ┐
                          → Vision Classify ┴→ Merge → Stamp record
"""

__version__ = "1.0.0"
__author__ = "Catalog Engineering Team"

__all__ = [
    'input_handler',
    'ocr_engine',
    'extraction',
    'postprocessor',
    'storage',
    'jobs',
    'utils'
]
