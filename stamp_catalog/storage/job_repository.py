"""
Job Repository Module.

SQLite access to the ocr_jobs table. Jobs are served oldest first.

Claiming is a compare-and-set: the oldest PENDING row is switched to
PROCESSING with an UPDATE that only matches while the row is still
PENDING. If another worker got there first the update touches no
rows and the next candidate is tried, so a job is never handed to two
workers.

A claim is identified by the started_at it set. Once reclaim_stale()
has requeued a job and another worker has claimed it, outcomes
recorded against the old claim are refused with ClaimLostError.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Union

from stamp_catalog.utils.exceptions import ClaimLostError, InvalidTransitionError, JobNotFoundError
from stamp_catalog.utils.helpers import to_iso, utc_now
from stamp_catalog.utils.logger import get_logger
from .database import Database
from .models import JobStatus, OcrJob

# Initialize module logger
logger = get_logger(__name__)

MAX_ERROR_LENGTH = 2000


class JobRepository:
    """
    Handles database operations for OCR jobs.

    Attributes:
        db: Database the ocr_jobs table lives in

    Example:
        >>> jobs = JobRepository(db)
        >>> job_id = jobs.insert(stamp.id)
        >>> job = jobs.claim_oldest_pending()
        >>> jobs.mark_completed(job.id)
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def insert(self, stamp_id: int) -> int:
        """
        Enqueue a PENDING job for a stamp.

        Returns:
            The new job id.

        Raises:
            DatabaseError: If the stamp does not exist (foreign key).
        """
        with self.db.transaction("insert job") as conn:
            cursor = conn.execute(
                "INSERT INTO ocr_jobs (stamp_id, status, created_at) VALUES (?, ?, ?)",
                (stamp_id, JobStatus.PENDING.value, to_iso(utc_now()))
            )
            job_id = cursor.lastrowid

        logger.debug(f"Enqueued OCR job {job_id} for stamp {stamp_id}")
        return job_id

    def find_by_id(self, job_id: int) -> Optional[OcrJob]:
        with self.db.transaction("find job") as conn:
            row = conn.execute(
                "SELECT * FROM ocr_jobs WHERE id = ?", (job_id,)
            ).fetchone()
        return OcrJob.from_row(row) if row else None

    def get(self, job_id: int) -> OcrJob:
        """
        Job with the given id.

        Raises:
            JobNotFoundError: If no such job exists.
        """
        job = self.find_by_id(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def claim_oldest_pending(self) -> Optional[OcrJob]:
        """
        Atomically claim the oldest PENDING job.

        Returns:
            The claimed job (now PROCESSING), or None if the queue is empty.
        """
        while True:
            with self.db.transaction("claim job") as conn:
                row = conn.execute(
                    """
                    SELECT id FROM ocr_jobs
                    WHERE status = ?
                    ORDER BY created_at, id
                    LIMIT 1
                    """,
                    (JobStatus.PENDING.value,)
                ).fetchone()
                if row is None:
                    return None

                cursor = conn.execute(
                    """
                    UPDATE ocr_jobs
                    SET status = ?, error = NULL, started_at = ?
                    WHERE id = ? AND status = ?
                    """,
                    (
                        JobStatus.PROCESSING.value,
                        to_iso(utc_now()),
                        row["id"],
                        JobStatus.PENDING.value,
                    )
                )
                claimed = cursor.rowcount == 1

            if claimed:
                return self.get(row["id"])

            logger.debug(f"Lost claim race for job {row['id']}, trying next")

    def mark_processing(self, job_id: int) -> None:
        """Move a PENDING job to PROCESSING."""
        self._transition(
            job_id,
            JobStatus.PROCESSING,
            {"error": None, "started_at": to_iso(utc_now())}
        )

    def mark_completed(
        self,
        job_id: int,
        completed_at: Optional[datetime] = None,
        claimed_at: Optional[datetime] = None
    ) -> None:
        """
        Move a PROCESSING job to COMPLETED.

        Args:
            job_id: Job to complete.
            completed_at: Completion time (now by default).
            claimed_at: started_at of the caller's claim. When given, the
                update only applies while that claim is still current.

        Raises:
            ClaimLostError: If the job was reclaimed and claimed again.
        """
        self._transition(
            job_id,
            JobStatus.COMPLETED,
            {"error": None, "completed_at": to_iso(completed_at or utc_now())},
            claimed_at=claimed_at
        )

    def mark_failed(
        self,
        job_id: int,
        error_message: str,
        claimed_at: Optional[datetime] = None
    ) -> None:
        """
        Move a PROCESSING job to FAILED.

        completed_at stays unset for failed jobs. claimed_at works as in
        mark_completed().
        """
        message = (error_message or "Unknown OCR failure")[:MAX_ERROR_LENGTH]
        self._transition(job_id, JobStatus.FAILED, {"error": message}, claimed_at=claimed_at)

    def _transition(
        self,
        job_id: int,
        target: JobStatus,
        columns: Dict[str, Optional[str]],
        claimed_at: Optional[datetime] = None
    ) -> None:
        """
        Validate and apply a status change.

        The UPDATE is conditional on the status read (and on the claim's
        started_at when one is given), so a concurrent change makes it
        fail instead of overwriting.

        Raises:
            JobNotFoundError: If the job does not exist.
            ClaimLostError: If claimed_at no longer matches the job.
            InvalidTransitionError: If the transition is not allowed.
        """
        job = self.get(job_id)
        claim = to_iso(claimed_at)
        if claim is not None and to_iso(job.started_at) != claim:
            raise ClaimLostError(job_id, claim, to_iso(job.started_at))

        current = job.status
        if not current.can_transition_to(target):
            raise InvalidTransitionError(job_id, current.value, target.value)

        assignments = ", ".join(f"{column} = ?" for column in ["status", *columns])
        query = f"UPDATE ocr_jobs SET {assignments} WHERE id = ? AND status = ?"
        params = [target.value, *columns.values(), job_id, current.value]
        if claim is not None:
            query += " AND started_at = ?"
            params.append(claim)

        with self.db.transaction(f"mark job {target.value.lower()}") as conn:
            updated = conn.execute(query, params).rowcount == 1

        if not updated:
            latest = self.get(job_id)
            if claim is not None and to_iso(latest.started_at) != claim:
                raise ClaimLostError(job_id, claim, to_iso(latest.started_at))
            raise InvalidTransitionError(job_id, latest.status.value, target.value)

    def reclaim_stale(self, older_than: Union[timedelta, float]) -> int:
        """
        Return PROCESSING jobs whose lease expired to the queue.

        A job left PROCESSING by a worker that died mid-job would
        otherwise never run again. FAILED and COMPLETED jobs are not
        touched.

        Args:
            older_than: Lease length, as a timedelta or in seconds.

        Returns:
            Number of jobs put back to PENDING.
        """
        if not isinstance(older_than, timedelta):
            older_than = timedelta(seconds=float(older_than))
        cutoff = to_iso(utc_now() - older_than)

        with self.db.transaction("reclaim stale jobs") as conn:
            cursor = conn.execute(
                """
                UPDATE ocr_jobs
                SET status = ?, started_at = NULL
                WHERE status = ? AND (started_at IS NULL OR started_at < ?)
                """,
                (JobStatus.PENDING.value, JobStatus.PROCESSING.value, cutoff)
            )
            reclaimed = cursor.rowcount

        if reclaimed:
            logger.warning(f"Reclaimed {reclaimed} stale OCR job(s) older than {older_than}")
        return reclaimed

    def list_jobs(
        self,
        status: Optional[Union[JobStatus, str]] = None,
        limit: int = 50
    ) -> List[OcrJob]:
        """
        Most recent jobs first, optionally filtered by status.

        Args:
            status: Only jobs in this status.
            limit: Maximum number of jobs to return.
        """
        query = "SELECT * FROM ocr_jobs"
        params: List[object] = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(JobStatus(status).value)
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(int(limit))

        with self.db.transaction("list jobs") as conn:
            rows = conn.execute(query, params).fetchall()
        return [OcrJob.from_row(row) for row in rows]

    def count_by_status(self) -> Dict[str, int]:
        """Job counts for every status, including zeros."""
        counts = {status.value: 0 for status in JobStatus}
        with self.db.transaction("count jobs") as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS total FROM ocr_jobs GROUP BY status"
            ).fetchall()
        for row in rows:
            counts[row["status"]] = row["total"]
        return counts
