"""
Storage Models.

Row-level data classes for the two tables plus the job status state
machine:

    PENDING ──claim──▶ PROCESSING ──▶ COMPLETED
                              └──────▶ FAILED

COMPLETED and FAILED are terminal. A failed job is never retried
automatically; a new job has to be enqueued for the stamp.
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from stamp_catalog.utils.helpers import from_iso, to_iso


class JobStatus(str, Enum):
    """Lifecycle state of an OCR job."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def can_transition_to(self, target: "JobStatus") -> bool:
        """Whether the worker may move a job from this status to target."""
        return JobStatus(target) in _TRANSITIONS[self]


_TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def split_list(value: Optional[str]) -> List[str]:
    """Stored comma-separated column to list."""
    if not value:
        return []
    return [item for item in value.split(",") if item]


def join_list(values: Optional[List[str]]) -> Optional[str]:
    """List to stored comma-separated column (None when empty)."""
    if not values:
        return None
    return ",".join(values)


@dataclass
class Stamp:
    """
    A catalogued stamp.

    Confidence columns are None until the stamp has been through an
    extraction (or a manual edit, which sets them to 1).
    """
    id: int
    image_path: str
    name: Optional[str] = None
    year: Optional[int] = None
    identifier: Optional[str] = None
    face_value: Optional[str] = None
    theme: Optional[str] = None
    theme_tags: List[str] = field(default_factory=list)
    dominant_colors: List[str] = field(default_factory=list)
    confidence_identifier: Optional[float] = None
    confidence_face_value: Optional[float] = None
    confidence_theme: Optional[float] = None
    confidence_colors: Optional[float] = None
    needs_review: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Stamp":
        return cls(
            id=row["id"],
            image_path=row["image_path"],
            name=row["name"],
            year=row["year"],
            identifier=row["identifier"],
            face_value=row["face_value"],
            theme=row["theme"],
            theme_tags=split_list(row["theme_tags"]),
            dominant_colors=split_list(row["dominant_colors"]),
            confidence_identifier=row["confidence_identifier"],
            confidence_face_value=row["confidence_face_value"],
            confidence_theme=row["confidence_theme"],
            confidence_colors=row["confidence_colors"],
            needs_review=bool(row["needs_review"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'image_path': self.image_path,
            'year': self.year,
            'identifier': self.identifier,
            'face_value': self.face_value,
            'theme': self.theme,
            'theme_tags': list(self.theme_tags),
            'dominant_colors': list(self.dominant_colors),
            'confidence_identifier': self.confidence_identifier,
            'confidence_face_value': self.confidence_face_value,
            'confidence_theme': self.confidence_theme,
            'confidence_colors': self.confidence_colors,
            'needs_review': self.needs_review,
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at),
        }


@dataclass
class OcrJob:
    """A queued extraction request for one stamp."""
    id: int
    stamp_id: int
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "OcrJob":
        return cls(
            id=row["id"],
            stamp_id=row["stamp_id"],
            status=JobStatus(row["status"]),
            error=row["error"],
            created_at=from_iso(row["created_at"]),
            started_at=from_iso(row["started_at"]),
            completed_at=from_iso(row["completed_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'stamp_id': self.stamp_id,
            'status': self.status.value,
            'error': self.error,
            'created_at': to_iso(self.created_at),
            'started_at': to_iso(self.started_at),
            'completed_at': to_iso(self.completed_at),
        }
