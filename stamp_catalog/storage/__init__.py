"""
Storage Module for the Stamp Catalog Extraction Service.

This module provides:
    - Database: SQLite schema and per-operation connections
    - StampRepository: Stamp records and review edits
    - JobRepository: OCR job queue with an atomic claim
"""

from .database import Database
from .models import JobStatus, OcrJob, Stamp
from .stamp_repository import StampRepository
from .job_repository import JobRepository

__all__ = [
    'Database',
    'JobStatus',
    'OcrJob',
    'Stamp',
    'StampRepository',
    'JobRepository',
]
