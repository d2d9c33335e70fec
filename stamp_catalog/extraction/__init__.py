"""
Extraction Module for the Stamp Catalog Extraction Service.

Two independent sources propose catalog fields for a stamp image:
    - Heuristic text parser over OCR output (fixed confidences)
    - Multimodal vision classifier (model-reported confidences)

The merge engine reconciles them into one MergedExtraction and decides
whether a human has to review the result.
"""

from .extraction_result import ExtractionCandidate, FieldValue, MergedExtraction
from .heuristic_parser import parse_ocr_text
from .merge import merge_candidates, needs_human_review
from .vision_classifier import VisionClassifier, VisionConfig, has_usable_api_key
from .extractor import StampExtractor

__all__ = [
    'ExtractionCandidate',
    'FieldValue',
    'MergedExtraction',
    'parse_ocr_text',
    'merge_candidates',
    'needs_human_review',
    'VisionClassifier',
    'VisionConfig',
    'has_usable_api_key',
    'StampExtractor',
]
