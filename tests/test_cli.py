# tests/test_cli.py
from __future__ import annotations

import signal

import pytest

import main as cli
from stamp_catalog.storage import Database, JobRepository, JobStatus, StampRepository


@pytest.fixture
def catalog(monkeypatch, tmp_path, media_root):
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("STAMP_CATALOG_DB", str(db_path))
    monkeypatch.setenv("STAMP_CATALOG_MEDIA_ROOT", str(media_root))
    monkeypatch.setattr(signal, "signal", lambda signum, handler: None)
    return db_path


def repositories(db_path):
    db = Database(db_path)
    return StampRepository(db), JobRepository(db)


def test_init_db_creates_file(catalog):
    assert cli.main(["init-db"]) == 0
    assert catalog.exists()


def test_add_stamp_then_worker_completes_job(catalog, stored_image):
    assert cli.main(["add-stamp", stored_image]) == 0
    stamps, jobs = repositories(catalog)
    [job] = jobs.list_jobs()
    assert job.status is JobStatus.PENDING

    assert cli.main(["worker", "--once", "--no-ocr", "--poll-ms", "10"]) == 0

    job = jobs.get(job.id)
    assert job.status is JobStatus.COMPLETED
    stamp = stamps.get(job.stamp_id)
    assert stamp.name is None
    assert stamp.needs_review is True


def test_worker_fails_job_for_missing_image(catalog):
    cli.main(["add-stamp", "/uploads/missing.jpg"])
    assert cli.main(["worker", "--once", "--no-ocr"]) == 0

    _, jobs = repositories(catalog)
    [job] = jobs.list_jobs()
    assert job.status is JobStatus.FAILED
    assert "/uploads/missing.jpg" in job.error


def test_ingest_without_api_key_queues_jobs(catalog, stored_image):
    assert cli.main(["ingest", stored_image, "--theme", "ANIMALS", "--scott-number", "c10"]) == 0

    stamps, jobs = repositories(catalog)
    [stamp] = stamps.list_needing_review()
    assert stamp.identifier == "C10"
    assert stamp.theme_tags == ["ANIMALS"]
    assert jobs.count_by_status()["PENDING"] == 1


def test_enqueue_unknown_stamp_fails(catalog):
    assert cli.main(["enqueue", "999"]) == 1


def test_edit_applies_review(catalog, stored_image):
    cli.main(["add-stamp", stored_image])
    stamps, _ = repositories(catalog)
    [stamp] = stamps.list_needing_review()

    assert cli.main(["edit", str(stamp.id), '{"faceValue": "forever", "name": "Eagle"}']) == 0

    reviewed = stamps.get(stamp.id)
    assert reviewed.face_value == "78c"
    assert reviewed.name == "Eagle"
    assert reviewed.needs_review is False


@pytest.mark.parametrize("payload", ["not json", '{"year": 1200}'])
def test_edit_rejects_bad_payload(catalog, stored_image, payload):
    cli.main(["add-stamp", stored_image])
    assert cli.main(["edit", "1", payload]) == 1


def test_reclaim_and_listing_commands(catalog):
    assert cli.main(["reclaim", "--older-than", "60"]) == 0
    assert cli.main(["jobs", "--status", "FAILED"]) == 0
    assert cli.main(["review", "--limit", "5"]) == 0


def test_unknown_command_exits(catalog):
    with pytest.raises(SystemExit):
        cli.main(["frobnicate"])


def test_bad_numeric_override_is_reported(catalog, monkeypatch, capsys):
    monkeypatch.setenv("OCR_POLL_MS", "5s")
    assert cli.main(["jobs"]) == 1
    assert "OCR_POLL_MS" in capsys.readouterr().err
