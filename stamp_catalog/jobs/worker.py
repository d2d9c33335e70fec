"""
Extraction Worker Module.

The single background worker that drains the OCR job queue. One job
is processed end to end at a time:

    claim oldest PENDING job → load stamp → extract → write fields
        → COMPLETED  (or FAILED with the error message)

A failed job never stops the loop, and nothing raised while handling
a job escapes it. Stopping is cooperative: stop() sets an event that
also cuts the idle wait short, and the in-flight job is finished first.
"""

import threading
import time
from typing import Optional

from config import get_config
from stamp_catalog.storage.contracts import FieldExtractor, JobStore, StampStore
from stamp_catalog.storage.models import OcrJob
from stamp_catalog.utils.exceptions import ClaimLostError, StampCatalogError, StampNotFoundError
from stamp_catalog.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL_MS = 5000
DEFAULT_STALE_AFTER_SECONDS = 900


def describe_error(error: BaseException) -> str:
    """Human-readable job error: the message, or the class name if empty."""
    return str(error).strip() or type(error).__name__


class ExtractionWorker:
    """
    Polls the job queue and processes extraction jobs one at a time.

    Attributes:
        stamps: Stamp store the results are written to
        jobs: Job store to claim from
        extractor: Field extractor run on each stamp image
        poll_interval_ms: Idle wait between empty polls
        stale_after_seconds: Lease after which a PROCESSING job is
            returned to the queue (0 disables reclaiming)
        max_jobs: Stop after this many jobs (None = unbounded)

    Example:
        >>> worker = ExtractionWorker(stamps, jobs, StampExtractor())
        >>> worker.run()          # until stop() is called
        >>> worker.run_once()     # a single poll
        True
    """

    def __init__(
        self,
        stamps: StampStore,
        jobs: JobStore,
        extractor: FieldExtractor,
        poll_interval_ms: Optional[int] = None,
        stale_after_seconds: Optional[float] = None,
        max_jobs: Optional[int] = None
    ) -> None:
        self.stamps = stamps
        self.jobs = jobs
        self.extractor = extractor
        self.poll_interval_ms = int(
            poll_interval_ms if poll_interval_ms is not None
            else get_config("queue.poll_interval_ms", DEFAULT_POLL_INTERVAL_MS)
        )
        self.stale_after_seconds = float(
            stale_after_seconds if stale_after_seconds is not None
            else get_config("queue.stale_after_seconds", DEFAULT_STALE_AFTER_SECONDS)
        )
        self.max_jobs = max_jobs
        self.processed = 0
        self._stop_event = threading.Event()

    def stop(self) -> None:
        """Ask the loop to exit after the current job."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run(
        self,
        stop_event: Optional[threading.Event] = None,
        exit_when_idle: bool = False
    ) -> int:
        """
        Process jobs until stopped.

        Args:
            stop_event: External stop signal. Defaults to the worker's own
                event, which stop() sets.
            exit_when_idle: Return as soon as the queue is empty instead
                of waiting for more work.

        Returns:
            Number of jobs processed by this call.
        """
        if stop_event is not None:
            self._stop_event = stop_event
        stop_event = self._stop_event

        logger.info(f"OCR worker started. Poll every {self.poll_interval_ms}ms.")
        processed_before = self.processed
        self.reclaim_stale_jobs()

        while not stop_event.is_set():
            if self.max_jobs is not None and self.processed >= self.max_jobs:
                logger.info(f"Reached max jobs ({self.max_jobs})")
                break

            try:
                found = self.run_once()
            except StampCatalogError as e:
                logger.error(f"Polling the job queue failed: {e}")
                found = False

            if found:
                continue
            if exit_when_idle:
                break

            self.reclaim_stale_jobs()
            stop_event.wait(self.poll_interval_ms / 1000)

        processed = self.processed - processed_before
        logger.info(f"OCR worker stopped after {processed} job(s)")
        return processed

    def run_once(self) -> bool:
        """
        Claim and process at most one job.

        Returns:
            True if a job was found (whatever its outcome).
        """
        job = self.jobs.claim_oldest_pending()
        if job is None:
            return False

        self.process(job)
        self.processed += 1
        return True

    def process(self, job: OcrJob) -> None:
        """
        Run extraction for a claimed job and record the outcome.

        Any exception is turned into a FAILED job; failing to record the
        failure is logged.
        """
        start_time = time.time()

        try:
            stamp = self.stamps.find_by_id(job.stamp_id)
            if stamp is None:
                raise StampNotFoundError(job.stamp_id)

            merged = self.extractor.extract_image(stamp.image_path)
            self.stamps.update_extraction_fields(stamp.id, merged)
            self.jobs.mark_completed(job.id, claimed_at=job.started_at)

            logger.info(
                f"Processed OCR job {job.id} for stamp {job.stamp_id} "
                f"({time.time() - start_time:.2f}s)"
            )
        except ClaimLostError as e:
            # The current holder of the job records its outcome
            logger.warning(f"Dropping result of OCR job {job.id}: {e.message}")
        except Exception as e:
            message = describe_error(e)
            logger.error(f"OCR job {job.id} failed: {message}")
            try:
                self.jobs.mark_failed(job.id, message, claimed_at=job.started_at)
            except ClaimLostError as mark_error:
                logger.warning(f"Dropping failure of OCR job {job.id}: {mark_error.message}")
            except StampCatalogError as mark_error:
                logger.error(f"Could not mark OCR job {job.id} as failed: {mark_error}")

    def reclaim_stale_jobs(self) -> int:
        """Put PROCESSING jobs with an expired lease back on the queue."""
        if self.stale_after_seconds <= 0:
            return 0
        try:
            return self.jobs.reclaim_stale(self.stale_after_seconds)
        except StampCatalogError as e:
            logger.error(f"Reclaiming stale jobs failed: {e}")
            return 0
