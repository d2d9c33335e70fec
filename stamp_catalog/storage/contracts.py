"""
Collaborator contracts used by the worker and intake service.

The SQLite repositories and StampExtractor satisfy these structurally;
tests substitute fakes.
"""

from datetime import datetime, timedelta
from typing import Optional, Protocol, Union

from stamp_catalog.extraction.extraction_result import MergedExtraction
from .models import OcrJob, Stamp


class StampStore(Protocol):
    def find_by_id(self, stamp_id: int) -> Optional[Stamp]:
        ...

    def update_extraction_fields(self, stamp_id: int, merged: MergedExtraction) -> Stamp:
        ...


class JobStore(Protocol):
    def insert(self, stamp_id: int) -> int:
        ...

    def claim_oldest_pending(self) -> Optional[OcrJob]:
        ...

    def mark_processing(self, job_id: int) -> None:
        ...

    def mark_completed(
        self,
        job_id: int,
        completed_at: Optional[datetime] = None,
        claimed_at: Optional[datetime] = None
    ) -> None:
        ...

    def mark_failed(
        self,
        job_id: int,
        error_message: str,
        claimed_at: Optional[datetime] = None
    ) -> None:
        ...

    def reclaim_stale(self, older_than: Union[timedelta, float]) -> int:
        ...


class FieldExtractor(Protocol):
    def extract_image(self, image_path: str, skip_ocr: bool = False) -> MergedExtraction:
        ...
