# tests/test_job_repository.py
from __future__ import annotations

from contextlib import contextmanager
from datetime import timedelta

import pytest

from stamp_catalog.storage import Database, JobRepository, JobStatus, StampRepository
from stamp_catalog.utils.exceptions import (
    ClaimLostError,
    DatabaseError,
    InvalidTransitionError,
    JobNotFoundError,
)
from stamp_catalog.utils.helpers import to_iso, utc_now


@pytest.fixture
def stamp_id(stamps) -> int:
    return stamps.create("/uploads/eagle.jpg").id


def test_status_transitions():
    assert JobStatus.PENDING.can_transition_to(JobStatus.PROCESSING)
    assert JobStatus.PROCESSING.can_transition_to(JobStatus.COMPLETED)
    assert JobStatus.PROCESSING.can_transition_to(JobStatus.FAILED)
    assert not JobStatus.PENDING.can_transition_to(JobStatus.COMPLETED)
    assert not JobStatus.COMPLETED.can_transition_to(JobStatus.PENDING)
    assert not JobStatus.FAILED.can_transition_to(JobStatus.PROCESSING)
    assert JobStatus.COMPLETED.is_terminal and JobStatus.FAILED.is_terminal
    assert not JobStatus.PROCESSING.is_terminal


def test_inserted_job_is_pending(jobs, stamp_id):
    job = jobs.get(jobs.insert(stamp_id))
    assert job.status is JobStatus.PENDING
    assert job.stamp_id == stamp_id
    assert job.error is None
    assert job.created_at is not None
    assert job.started_at is None
    assert job.completed_at is None


def test_insert_for_missing_stamp_fails(jobs):
    with pytest.raises(DatabaseError):
        jobs.insert(9999)


def test_get_missing_job(jobs):
    with pytest.raises(JobNotFoundError):
        jobs.get(42)
    assert jobs.find_by_id(42) is None


def test_claim_on_empty_queue(jobs):
    assert jobs.claim_oldest_pending() is None


def test_claim_is_fifo(jobs, stamp_id):
    first = jobs.insert(stamp_id)
    second = jobs.insert(stamp_id)

    claimed = jobs.claim_oldest_pending()
    assert claimed.id == first
    assert claimed.status is JobStatus.PROCESSING
    assert claimed.started_at is not None
    assert jobs.claim_oldest_pending().id == second
    assert jobs.claim_oldest_pending() is None


def test_claim_never_hands_out_the_same_job_twice(db, stamp_id):
    # Two repositories on the same file behave like two workers
    worker_a = JobRepository(db)
    worker_b = JobRepository(Database(db.db_path))
    job_ids = [worker_a.insert(stamp_id) for _ in range(4)]

    claimed = []
    for repo in (worker_a, worker_b, worker_b, worker_a, worker_a, worker_b):
        job = repo.claim_oldest_pending()
        if job is not None:
            claimed.append(job.id)

    assert sorted(claimed) == job_ids
    assert len(set(claimed)) == len(claimed)


def test_lost_race_moves_on_to_next_candidate(db, stamp_id, monkeypatch):
    jobs = JobRepository(db)
    first = jobs.insert(stamp_id)
    second = jobs.insert(stamp_id)

    original = db.transaction
    state = {"raced": False}

    class RacingConnection:
        def __init__(self, conn):
            self._conn = conn

        def execute(self, sql, params=()):
            # Another worker claims the candidate between our SELECT and UPDATE
            if sql.lstrip().startswith("UPDATE") and not state["raced"]:
                state["raced"] = True
                self._conn.execute("UPDATE ocr_jobs SET status = 'PROCESSING' WHERE id = ?", (params[2],))
            return self._conn.execute(sql, params)

    @contextmanager
    def racing_transaction(operation):
        with original(operation) as conn:
            yield RacingConnection(conn) if operation == "claim job" else conn

    monkeypatch.setattr(db, "transaction", racing_transaction)

    claimed = jobs.claim_oldest_pending()
    assert state["raced"]
    assert claimed.id == second
    assert jobs.get(first).status is JobStatus.PROCESSING


def test_mark_completed(jobs, stamp_id):
    job = jobs.get(jobs.insert(stamp_id))
    jobs.mark_processing(job.id)
    jobs.mark_completed(job.id)

    done = jobs.get(job.id)
    assert done.status is JobStatus.COMPLETED
    assert done.completed_at is not None
    assert done.error is None


def test_mark_failed_keeps_completed_at_null(jobs, stamp_id):
    jobs.insert(stamp_id)
    job = jobs.claim_oldest_pending()
    jobs.mark_failed(job.id, "Vision API error 500: boom")

    failed = jobs.get(job.id)
    assert failed.status is JobStatus.FAILED
    assert failed.error == "Vision API error 500: boom"
    assert failed.completed_at is None


def test_mark_failed_with_empty_message(jobs, stamp_id):
    jobs.insert(stamp_id)
    job = jobs.claim_oldest_pending()
    jobs.mark_failed(job.id, "")
    assert jobs.get(job.id).error == "Unknown OCR failure"


def test_terminal_states_are_final(jobs, stamp_id):
    jobs.insert(stamp_id)
    job = jobs.claim_oldest_pending()
    jobs.mark_completed(job.id)

    with pytest.raises(InvalidTransitionError):
        jobs.mark_failed(job.id, "late failure")
    with pytest.raises(InvalidTransitionError):
        jobs.mark_processing(job.id)
    assert jobs.get(job.id).status is JobStatus.COMPLETED


def test_pending_job_cannot_complete_directly(jobs, stamp_id):
    job_id = jobs.insert(stamp_id)
    with pytest.raises(InvalidTransitionError):
        jobs.mark_completed(job_id)


def test_reclaim_stale_requeues_only_expired_processing_jobs(db, jobs, stamp_id):
    stale = jobs.insert(stamp_id)
    fresh = jobs.insert(stamp_id)
    failed = jobs.insert(stamp_id)
    for _ in range(3):
        jobs.claim_oldest_pending()
    jobs.mark_failed(failed, "boom")

    long_ago = to_iso(utc_now() - timedelta(hours=2))
    with db.transaction("backdate") as conn:
        conn.execute("UPDATE ocr_jobs SET started_at = ? WHERE id IN (?, ?)", (long_ago, stale, failed))

    assert jobs.reclaim_stale(timedelta(minutes=15)) == 1
    assert jobs.get(stale).status is JobStatus.PENDING
    assert jobs.get(stale).started_at is None
    assert jobs.get(fresh).status is JobStatus.PROCESSING
    assert jobs.get(failed).status is JobStatus.FAILED


def test_reclaim_accepts_seconds(jobs, stamp_id):
    jobs.insert(stamp_id)
    jobs.claim_oldest_pending()
    assert jobs.reclaim_stale(3600) == 0


def expire_claim(db, job_id):
    with db.transaction("backdate") as conn:
        conn.execute(
            "UPDATE ocr_jobs SET started_at = ? WHERE id = ?",
            (to_iso(utc_now() - timedelta(hours=1)), job_id),
        )


def test_late_finish_after_reclaim_does_not_touch_new_claim(db, stamp_id):
    worker_a = JobRepository(db)
    worker_b = JobRepository(db)
    worker_a.insert(stamp_id)

    first_claim = worker_a.claim_oldest_pending()
    expire_claim(db, first_claim.id)
    assert worker_b.reclaim_stale(60) == 1
    second_claim = worker_b.claim_oldest_pending()
    assert second_claim.id == first_claim.id

    with pytest.raises(ClaimLostError):
        worker_a.mark_completed(first_claim.id, claimed_at=first_claim.started_at)
    with pytest.raises(ClaimLostError):
        worker_a.mark_failed(first_claim.id, "too slow", claimed_at=first_claim.started_at)
    assert worker_b.get(first_claim.id).status is JobStatus.PROCESSING

    worker_b.mark_completed(second_claim.id, claimed_at=second_claim.started_at)
    assert worker_b.get(second_claim.id).status is JobStatus.COMPLETED


def test_late_finish_while_requeued_is_refused(db, jobs, stamp_id):
    jobs.insert(stamp_id)
    claim = jobs.claim_oldest_pending()
    expire_claim(db, claim.id)
    jobs.reclaim_stale(60)

    with pytest.raises(ClaimLostError):
        jobs.mark_completed(claim.id, claimed_at=claim.started_at)
    assert jobs.get(claim.id).status is JobStatus.PENDING


def test_current_claim_can_finish(jobs, stamp_id):
    jobs.insert(stamp_id)
    claim = jobs.claim_oldest_pending()
    jobs.mark_failed(claim.id, "boom", claimed_at=claim.started_at)
    assert jobs.get(claim.id).status is JobStatus.FAILED


def test_list_jobs_and_counts(jobs, stamp_id):
    ids = [jobs.insert(stamp_id) for _ in range(3)]
    claimed = jobs.claim_oldest_pending()
    jobs.mark_failed(claimed.id, "boom")

    assert [job.id for job in jobs.list_jobs()] == list(reversed(ids))
    assert [job.id for job in jobs.list_jobs(status="FAILED")] == [ids[0]]
    assert len(jobs.list_jobs(limit=2)) == 2
    assert jobs.count_by_status() == {"PENDING": 2, "PROCESSING": 0, "COMPLETED": 0, "FAILED": 1}


def test_in_memory_database_is_shared_across_operations():
    db = Database(":memory:")
    db.initialize()

    stamp = StampRepository(db).create("/uploads/x.png")
    repo = JobRepository(db)
    job_id = repo.insert(stamp.id)
    assert repo.get(job_id).status is JobStatus.PENDING
    db.close()
