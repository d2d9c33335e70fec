# tests/test_intake_service.py
from __future__ import annotations

import pytest

from conftest import FakeExtractor
from stamp_catalog.extraction.extraction_result import MergedExtraction
from stamp_catalog.jobs import IntakeService, IntakeStatus, request_extraction
from stamp_catalog.storage import JobStatus
from stamp_catalog.utils.exceptions import ImageNotFoundError, StampNotFoundError, ValidationError, VisionAPIError


def test_request_extraction_enqueues_pending_job(stamps, jobs):
    stamp = stamps.create("/uploads/a.jpg")
    job_id = request_extraction(stamp.id, stamps, jobs)
    job = jobs.get(job_id)
    assert job.status is JobStatus.PENDING
    assert job.stamp_id == stamp.id


def test_request_extraction_for_missing_stamp(stamps, jobs):
    with pytest.raises(StampNotFoundError):
        request_extraction(999, stamps, jobs)
    assert jobs.list_jobs() == []


def test_missing_api_key_queues_job(stamps, jobs):
    extractor = FakeExtractor(vision_enabled=False)
    outcome = IntakeService(stamps, jobs, extractor).register("/uploads/eagle.jpg")

    assert outcome.status is IntakeStatus.MISSING_API_KEY
    assert outcome.extracted is False
    assert jobs.get(outcome.job_id).status is JobStatus.PENDING
    assert outcome.stamp.name == "eagle"
    assert outcome.stamp.needs_review is True
    assert extractor.calls == []


def test_vision_success_fills_stamp_without_queueing(stamps, jobs, complete_extraction):
    extractor = FakeExtractor(complete_extraction)
    outcome = IntakeService(stamps, jobs, extractor).register("/uploads/eagle.jpg")

    assert outcome.status is IntakeStatus.VISION_SUCCESS
    assert outcome.extracted is True
    assert outcome.job_id is None
    assert jobs.list_jobs() == []
    assert extractor.calls == [("/uploads/eagle.jpg", True)]

    stamp = outcome.stamp
    assert stamp.name == "Bald Eagle"
    assert stamp.identifier == "C10"
    assert stamp.confidence_identifier == 0.84
    assert stamp.theme == "ANIMALS"
    assert stamp.theme_tags == ["ANIMALS"]
    assert stamp.dominant_colors == ["BLUE", "GOLD"]
    assert stamp.needs_review is False


def test_caller_values_win_with_full_confidence(stamps, jobs):
    extracted = MergedExtraction(
        identifier="C99",
        confidence_identifier=0.4,
        face_value="5c",
        confidence_face_value=0.4,
        theme="SPACE",
        confidence_theme=0.95,
        name="Rocket",
    )
    outcome = IntakeService(stamps, jobs, FakeExtractor(extracted)).register(
        "/uploads/eagle.jpg",
        name="My Eagle",
        identifier="c10",
        face_value="forever",
        themes=["ANIMALS"],
        custom_themes="birds",
    )

    stamp = outcome.stamp
    assert stamp.name == "My Eagle"
    assert stamp.identifier == "C10"
    assert stamp.confidence_identifier == 1.0
    assert stamp.face_value == "78c"
    assert stamp.confidence_face_value == 1.0
    assert stamp.theme_tags == ["ANIMALS", "BIRDS"]
    assert stamp.theme == "ANIMALS"
    assert stamp.confidence_theme == 1.0
    assert stamp.needs_review is False


def test_low_confidence_extraction_needs_review(stamps, jobs):
    extracted = MergedExtraction(
        identifier="C10",
        confidence_identifier=0.5,
        face_value="25c",
        confidence_face_value=0.9,
        theme="ANIMALS",
        confidence_theme=0.9,
    )
    outcome = IntakeService(stamps, jobs, FakeExtractor(extracted)).register("/uploads/eagle.jpg")
    assert outcome.status is IntakeStatus.VISION_SUCCESS
    assert outcome.stamp.needs_review is True


def test_vision_found_nothing_queues_job(stamps, jobs):
    outcome = IntakeService(stamps, jobs, FakeExtractor(MergedExtraction())).register("/uploads/eagle.jpg")

    assert outcome.status is IntakeStatus.VISION_NO_FIELDS
    assert outcome.extracted is False
    assert jobs.get(outcome.job_id).status is JobStatus.PENDING
    assert outcome.stamp.confidence_identifier is None
    assert outcome.stamp.needs_review is True


def test_caller_theme_tags_count_as_filled(stamps, jobs):
    outcome = IntakeService(stamps, jobs, FakeExtractor(MergedExtraction())).register(
        "/uploads/eagle.jpg", custom_themes="coastal birds"
    )
    assert outcome.status is IntakeStatus.VISION_SUCCESS
    assert outcome.job_id is None
    assert outcome.stamp.theme_tags == ["COASTAL_BIRDS"]
    assert outcome.stamp.theme is None


@pytest.mark.parametrize(
    "error",
    [VisionAPIError(500, "boom"), VisionAPIError(None, "timeout"), ImageNotFoundError("/uploads/eagle.jpg")],
)
def test_extraction_error_keeps_stamp_and_queues_job(stamps, jobs, error):
    outcome = IntakeService(stamps, jobs, FakeExtractor(error=error)).register(
        "/uploads/eagle.jpg", name="Eagle"
    )

    assert outcome.status is IntakeStatus.VISION_ERROR
    assert outcome.extracted is False
    assert stamps.get(outcome.stamp.id).name == "Eagle"
    assert jobs.get(outcome.job_id).status is JobStatus.PENDING


def test_invalid_caller_values_store_nothing(stamps, jobs):
    with pytest.raises(ValidationError):
        IntakeService(stamps, jobs, FakeExtractor()).register("/uploads/eagle.jpg", identifier="not valid!")
    assert stamps.count() == 0
    assert jobs.list_jobs() == []


def test_batch_numbers_names(stamps, jobs, complete_extraction):
    service = IntakeService(stamps, jobs, FakeExtractor(complete_extraction))
    outcomes = service.register_batch(["/uploads/a.jpg", "/uploads/b.jpg", "/uploads/c.jpg"], name="Eagles")
    assert [outcome.stamp.name for outcome in outcomes] == ["Eagles 1", "Eagles 2", "Eagles 3"]


def test_batch_single_image_keeps_plain_name(stamps, jobs, complete_extraction):
    service = IntakeService(stamps, jobs, FakeExtractor(complete_extraction))
    outcomes = service.register_batch(["/uploads/a.jpg"], name="Eagle")
    assert outcomes[0].stamp.name == "Eagle"


def test_batch_requires_images(stamps, jobs):
    with pytest.raises(ValueError):
        IntakeService(stamps, jobs, FakeExtractor()).register_batch([])


def test_outcome_to_dict(stamps, jobs):
    outcome = IntakeService(stamps, jobs, FakeExtractor(vision_enabled=False)).register("/uploads/eagle.jpg")
    data = outcome.to_dict()
    assert data["status"] == "missing_openai_key"
    assert data["job_id"] == outcome.job_id
    assert data["stamp"]["image_path"] == "/uploads/eagle.jpg"
