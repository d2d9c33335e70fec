"""
Job Queue Module for the Stamp Catalog Extraction Service.

This module provides:
    - request_extraction / IntakeService: put stamps on the queue
    - ExtractionWorker: the background loop that drains it
"""

from .service import IntakeOutcome, IntakeService, IntakeStatus, request_extraction
from .worker import ExtractionWorker

__all__ = [
    'IntakeOutcome',
    'IntakeService',
    'IntakeStatus',
    'request_extraction',
    'ExtractionWorker',
]
