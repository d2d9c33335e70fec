"""
Utility Module for the Stamp Catalog Extraction Service.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Time and file helpers
"""

from .logger import setup_logger, get_logger
from .helpers import ensure_directory, get_file_extension, utc_now, to_iso, from_iso

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'get_file_extension',
    'utc_now',
    'to_iso',
    'from_iso'
]
