"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the stamp
catalog service. Using specific exceptions allows for better error
handling and more informative job error messages.

Exception Hierarchy:
    StampCatalogError (base)
    ├── InputError
    │   ├── ImageNotFoundError
    │   └── CorruptedImageError
    ├── OCRError
    │   ├── OCREngineNotAvailableError
    │   └── OCRProcessingError
    ├── ExtractionError
    │   └── VisionAPIError
    ├── ValidationError
    └── StorageError
        ├── DatabaseError
        ├── StampNotFoundError
        ├── JobNotFoundError
        ├── InvalidTransitionError
        └── ClaimLostError
"""

from typing import Optional


class StampCatalogError(Exception):
    """
    Base exception for all stamp catalog errors.

    All custom exceptions in this system inherit from this class,
    allowing for easy catching of all system-specific errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(StampCatalogError):
    """Base exception for image input errors."""
    pass


class ImageNotFoundError(InputError):
    """Raised when a stamp's stored image cannot be found."""

    def __init__(self, image_path: str):
        message = f"Image not found: {image_path}"
        details = {"image_path": image_path}
        super().__init__(message, details)


class CorruptedImageError(InputError):
    """Raised when an image file appears to be corrupted or unreadable."""

    def __init__(self, image_path: str, reason: str = None):
        message = f"Corrupted or unreadable image: {image_path}"
        details = {"image_path": image_path, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# OCR ERRORS
# =============================================================================

class OCRError(StampCatalogError):
    """Base exception for OCR-related errors."""
    pass


class OCREngineNotAvailableError(OCRError):
    """Raised when the configured OCR engine is not available."""

    def __init__(self, engine_name: str):
        message = f"OCR engine not available: {engine_name}"
        details = {"engine": engine_name}
        super().__init__(message, details)


class OCRProcessingError(OCRError):
    """Raised when OCR processing fails."""

    def __init__(self, source: str, reason: str = None):
        message = f"OCR processing failed for: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================

class ExtractionError(StampCatalogError):
    """Base exception for field extraction errors."""
    pass


class VisionAPIError(ExtractionError):
    """
    Raised when the vision service returns a non-success response
    or cannot be reached.

    The message keeps the status and the first 300 characters of the
    body, since it ends up verbatim in the job's error column.

    Example:
        >>> raise VisionAPIError(429, "rate limited")
    """

    BODY_LIMIT = 300

    def __init__(self, status_code: Optional[int], body: str = ""):
        body = (body or "")[:self.BODY_LIMIT]
        if status_code is None:
            message = f"Vision API request failed: {body}"
        else:
            message = f"Vision API error {status_code}: {body}"
        self.status_code = status_code
        self.body = body
        super().__init__(message)


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(StampCatalogError):
    """Raised when caller-supplied field values fail validation."""

    def __init__(self, field: str, value, reason: str = None):
        message = f"Invalid {field}" + (f": {reason}" if reason else "")
        details = {"field": field, "value": value}
        self.field = field
        super().__init__(message, details)


# =============================================================================
# STORAGE ERRORS
# =============================================================================

class StorageError(StampCatalogError):
    """Base exception for persistence errors."""
    pass


class DatabaseError(StorageError):
    """Raised when database operations fail."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Database operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


class StampNotFoundError(StorageError):
    """Raised when a referenced stamp record does not exist."""

    def __init__(self, stamp_id: int):
        message = f"Stamp not found: {stamp_id}"
        details = {"stamp_id": stamp_id}
        self.stamp_id = stamp_id
        super().__init__(message, details)


class JobNotFoundError(StorageError):
    """Raised when a referenced OCR job does not exist."""

    def __init__(self, job_id: int):
        message = f"OCR job not found: {job_id}"
        details = {"job_id": job_id}
        super().__init__(message, details)


class InvalidTransitionError(StorageError):
    """Raised when a job status change would leave the state machine."""

    def __init__(self, job_id: int, current: str, target: str):
        message = f"Invalid status transition for job {job_id}: {current} -> {target}"
        details = {"job_id": job_id, "current": current, "target": target}
        super().__init__(message, details)


class ClaimLostError(StorageError):
    """Raised when a worker records an outcome for a job it no longer holds."""

    def __init__(self, job_id: int, claimed_at: str = None, current_claim: str = None):
        message = f"OCR job {job_id} was reclaimed; this worker's claim is no longer current"
        details = {"job_id": job_id, "claimed_at": claimed_at, "current_claim": current_claim}
        super().__init__(message, details)


# Export all exceptions
__all__ = [
    'StampCatalogError',
    'InputError',
    'ImageNotFoundError',
    'CorruptedImageError',
    'OCRError',
    'OCREngineNotAvailableError',
    'OCRProcessingError',
    'ExtractionError',
    'VisionAPIError',
    'ValidationError',
    'StorageError',
    'DatabaseError',
    'StampNotFoundError',
    'JobNotFoundError',
    'InvalidTransitionError',
    'ClaimLostError',
]
