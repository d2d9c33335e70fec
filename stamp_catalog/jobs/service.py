"""
Extraction Request Service.

Everything that puts work on the OCR job queue:

    - request_extraction(): a manual "extract this stamp again" request
    - IntakeService: registers stamps for newly placed images, tries a
      quick vision-only extraction and falls back to the queue when the
      vision service is unavailable, fails, or finds nothing

Example:
    >>> service = IntakeService(stamps, jobs, StampExtractor())
    >>> outcomes = service.register_batch(["/uploads/a.jpg", "/uploads/b.jpg"], name="Eagles")
    >>> [o.stamp.name for o in outcomes]
    ['Eagles 1', 'Eagles 2']
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from config import get_config
from stamp_catalog.extraction import StampExtractor
from stamp_catalog.extraction.extraction_result import FieldValue, MergedExtraction
from stamp_catalog.extraction.merge import needs_human_review
from stamp_catalog.postprocessor.normalizers import primary_theme
from stamp_catalog.postprocessor.validators import IntakeFields, validate_intake_fields
from stamp_catalog.storage import JobRepository, Stamp, StampRepository
from stamp_catalog.taxonomy import REVIEW_THRESHOLD
from stamp_catalog.utils.exceptions import StampCatalogError, StampNotFoundError
from stamp_catalog.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_STAMP_NAME = "Untitled Stamp"


def request_extraction(stamp_id: int, stamps: StampRepository, jobs: JobRepository) -> int:
    """
    Queue an extraction job for an existing stamp.

    Args:
        stamp_id: Stamp to (re-)extract.
        stamps: Stamp repository used to check the stamp exists.
        jobs: Job repository to enqueue on.

    Returns:
        The new job id.

    Raises:
        StampNotFoundError: If the stamp does not exist.
    """
    if not stamps.exists(stamp_id):
        raise StampNotFoundError(stamp_id)

    job_id = jobs.insert(stamp_id)
    logger.info(f"Queued OCR job {job_id} for stamp {stamp_id}")
    return job_id


class IntakeStatus(str, Enum):
    """How an intake request was handled."""
    VISION_SUCCESS = "vision_success"
    VISION_NO_FIELDS = "vision_no_fields"
    VISION_ERROR = "vision_error"
    MISSING_API_KEY = "missing_openai_key"


@dataclass
class IntakeOutcome:
    """
    Result of registering one image.

    Attributes:
        stamp: Stamp as stored after intake
        extracted: True if the vision pass filled anything
        status: Which intake path was taken
        job_id: Queued job, if the stamp was handed to the worker
    """
    stamp: Stamp
    extracted: bool
    status: IntakeStatus
    job_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stamp': self.stamp.to_dict(),
            'extracted': self.extracted,
            'status': self.status.value,
            'job_id': self.job_id,
        }


class IntakeService:
    """
    Registers stamps for images that are already on disk.

    Caller-supplied values always win over extracted ones and carry
    confidence 1.

    Attributes:
        stamps: Stamp repository
        jobs: Job repository
        extractor: Extractor used for the vision-only pass
        review_threshold: Minimum confidence that avoids review
    """

    def __init__(
        self,
        stamps: StampRepository,
        jobs: JobRepository,
        extractor: StampExtractor,
        review_threshold: Optional[float] = None
    ) -> None:
        self.stamps = stamps
        self.jobs = jobs
        self.extractor = extractor
        self.review_threshold = (
            review_threshold
            if review_threshold is not None
            else get_config("review.threshold", REVIEW_THRESHOLD)
        )

    def register(
        self,
        image_path: str,
        name: Optional[str] = None,
        identifier: Optional[str] = None,
        face_value: Optional[str] = None,
        themes: Optional[List[str]] = None,
        custom_themes: Optional[str] = None
    ) -> IntakeOutcome:
        """
        Register a single image.

        Raises:
            ValidationError: If caller values are invalid. Nothing is
                stored in that case.
        """
        fields = validate_intake_fields(name, identifier, face_value, themes, custom_themes)
        return self._register_one(image_path, fields)

    def register_batch(
        self,
        image_paths: List[str],
        name: Optional[str] = None,
        identifier: Optional[str] = None,
        face_value: Optional[str] = None,
        themes: Optional[List[str]] = None,
        custom_themes: Optional[str] = None
    ) -> List[IntakeOutcome]:
        """
        Register several images sharing the same caller values.

        With a supplied name and more than one image, the stamps are
        named "<name> 1", "<name> 2", ...

        Raises:
            ValueError: If no image paths are given.
            ValidationError: If caller values are invalid.
        """
        if not image_paths:
            raise ValueError("At least one image path is required")

        fields = validate_intake_fields(name, identifier, face_value, themes, custom_themes)

        outcomes = []
        for index, image_path in enumerate(image_paths, start=1):
            per_image = fields
            if fields.name and len(image_paths) > 1:
                per_image = IntakeFields(
                    name=f"{fields.name} {index}",
                    identifier=fields.identifier,
                    face_value=fields.face_value,
                    theme_tags=list(fields.theme_tags),
                )
            outcomes.append(self._register_one(image_path, per_image))

        extracted_count = sum(1 for outcome in outcomes if outcome.extracted)
        logger.info(
            f"Intake complete: {len(outcomes)} stamp(s), {extracted_count} extracted, "
            f"{len(outcomes) - extracted_count} queued"
        )
        return outcomes

    def _register_one(self, image_path: str, fields: IntakeFields) -> IntakeOutcome:
        stamp = self.stamps.create(
            image_path,
            name=fields.name or Path(image_path).stem or DEFAULT_STAMP_NAME,
            identifier=fields.identifier,
            face_value=fields.face_value,
            theme_tags=fields.theme_tags,
            needs_review=True,
        )

        if not self.extractor.vision_enabled:
            job_id = self.jobs.insert(stamp.id)
            logger.info(f"Vision disabled; queued OCR job {job_id} for stamp {stamp.id}")
            return IntakeOutcome(stamp, False, IntakeStatus.MISSING_API_KEY, job_id)

        try:
            merged = self.extractor.extract_image(image_path, skip_ocr=True)
        except StampCatalogError as e:
            job_id = self.jobs.insert(stamp.id)
            logger.warning(
                f"Vision extraction failed for stamp {stamp.id}, queued OCR job {job_id}: {e}"
            )
            return IntakeOutcome(stamp, False, IntakeStatus.VISION_ERROR, job_id)

        filled_any = merged.filled_any or bool(fields.theme_tags)
        stamp = self.stamps.update_fields(stamp.id, self._final_values(stamp, fields, merged))

        if not filled_any:
            job_id = self.jobs.insert(stamp.id)
            logger.info(f"Vision found no fields for stamp {stamp.id}; queued OCR job {job_id}")
            return IntakeOutcome(stamp, False, IntakeStatus.VISION_NO_FIELDS, job_id)

        logger.info(f"Stamp {stamp.id} extracted at intake (needs review: {stamp.needs_review})")
        return IntakeOutcome(stamp, True, IntakeStatus.VISION_SUCCESS)

    def _final_values(
        self,
        stamp: Stamp,
        fields: IntakeFields,
        merged: MergedExtraction
    ) -> Dict[str, Any]:
        """Combine caller values with the vision result."""
        identifier = self._prefer_caller(fields.identifier, merged.identifier, merged.confidence_identifier)
        face_value = self._prefer_caller(fields.face_value, merged.face_value, merged.confidence_face_value)

        if fields.theme_tags:
            theme_tags = list(fields.theme_tags)
            theme_confidence: Optional[float] = 1.0
        elif merged.theme:
            theme_tags = [merged.theme]
            theme_confidence = merged.confidence_theme
        else:
            theme_tags = []
            theme_confidence = None

        colors = list(merged.colors)
        theme_field = FieldValue(",".join(theme_tags) or None, theme_confidence or 0.0)

        return {
            'name': fields.name or merged.name or stamp.name,
            'identifier': identifier.value,
            'face_value': face_value.value,
            'theme': primary_theme(theme_tags),
            'theme_tags': theme_tags,
            'dominant_colors': colors,
            'confidence_identifier': identifier.confidence if identifier.present else None,
            'confidence_face_value': face_value.confidence if face_value.present else None,
            'confidence_theme': theme_confidence,
            'confidence_colors': merged.confidence_colors if colors else None,
            'needs_review': needs_human_review(
                identifier, face_value, theme_field, self.review_threshold
            ),
        }

    @staticmethod
    def _prefer_caller(supplied: Optional[str], extracted: Optional[str], confidence: float) -> FieldValue:
        if supplied is not None:
            return FieldValue(supplied, 1.0)
        if extracted is not None:
            return FieldValue(extracted, confidence)
        return FieldValue.empty()
