"""
Stamp Repository Module.

SQLite access to the stamps table: creating stamps for new images,
writing extraction results, and applying manual review edits.

Example:
    >>> stamps = StampRepository(db)
    >>> stamp = stamps.create("/uploads/eagle.jpg", name="Bald Eagle")
    >>> stamps.update_extraction_fields(stamp.id, merged)
"""

from typing import Any, Dict, List, Optional

from stamp_catalog.extraction.extraction_result import MergedExtraction
from stamp_catalog.postprocessor.normalizers import primary_theme
from stamp_catalog.postprocessor.validators import StampEdit
from stamp_catalog.utils.exceptions import StampNotFoundError
from stamp_catalog.utils.helpers import to_iso, utc_now
from stamp_catalog.utils.logger import get_logger
from .database import Database
from .models import Stamp, join_list

# Initialize module logger
logger = get_logger(__name__)

# Columns a repository update may write
UPDATABLE_COLUMNS = (
    "name",
    "year",
    "identifier",
    "face_value",
    "theme",
    "theme_tags",
    "dominant_colors",
    "confidence_identifier",
    "confidence_face_value",
    "confidence_theme",
    "confidence_colors",
    "needs_review",
)


class StampRepository:
    """
    Handles database operations for stamp records.

    Attributes:
        db: Database the stamps table lives in
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def create(
        self,
        image_path: str,
        name: Optional[str] = None,
        identifier: Optional[str] = None,
        face_value: Optional[str] = None,
        theme_tags: Optional[List[str]] = None,
        year: Optional[int] = None,
        needs_review: bool = True
    ) -> Stamp:
        """
        Insert a new stamp for an image that is already on disk.

        The primary theme is derived from the tags.

        Returns:
            The stored Stamp.
        """
        tags = list(theme_tags or [])
        now = to_iso(utc_now())

        with self.db.transaction("create stamp") as conn:
            cursor = conn.execute(
                """
                INSERT INTO stamps (
                    name, image_path, year, identifier, face_value,
                    theme, theme_tags, needs_review, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    name,
                    image_path,
                    year,
                    identifier,
                    face_value,
                    primary_theme(tags),
                    join_list(tags),
                    1 if needs_review else 0,
                    now,
                    now,
                )
            )
            stamp_id = cursor.lastrowid

        logger.debug(f"Created stamp {stamp_id} for {image_path}")
        return self.get(stamp_id)

    def find_by_id(self, stamp_id: int) -> Optional[Stamp]:
        """Stamp with the given id, or None."""
        with self.db.transaction("find stamp") as conn:
            row = conn.execute(
                "SELECT * FROM stamps WHERE id = ?", (stamp_id,)
            ).fetchone()
        return Stamp.from_row(row) if row else None

    def get(self, stamp_id: int) -> Stamp:
        """
        Stamp with the given id.

        Raises:
            StampNotFoundError: If no such stamp exists.
        """
        stamp = self.find_by_id(stamp_id)
        if stamp is None:
            raise StampNotFoundError(stamp_id)
        return stamp

    def exists(self, stamp_id: int) -> bool:
        return self.find_by_id(stamp_id) is not None

    def update_extraction_fields(self, stamp_id: int, merged: MergedExtraction) -> Stamp:
        """
        Write a merged extraction onto a stamp.

        The extraction replaces every extraction field. Theme tags
        become [theme] (or nothing), and the extracted display name is
        only used when the stamp has no name yet.

        Args:
            stamp_id: Stamp to update.
            merged: Result of the merge engine.

        Returns:
            The updated Stamp.

        Raises:
            StampNotFoundError: If the stamp no longer exists.
        """
        with self.db.transaction("update extraction fields") as conn:
            cursor = conn.execute(
                """
                UPDATE stamps SET
                    name = COALESCE(NULLIF(TRIM(name), ''), ?),
                    identifier = ?,
                    face_value = ?,
                    theme = ?,
                    theme_tags = ?,
                    dominant_colors = ?,
                    confidence_identifier = ?,
                    confidence_face_value = ?,
                    confidence_theme = ?,
                    confidence_colors = ?,
                    needs_review = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    merged.name,
                    merged.identifier,
                    merged.face_value,
                    merged.theme,
                    merged.theme,
                    join_list(list(merged.colors)),
                    merged.confidence_identifier,
                    merged.confidence_face_value,
                    merged.confidence_theme,
                    merged.confidence_colors,
                    1 if merged.needs_review else 0,
                    to_iso(utc_now()),
                    stamp_id,
                )
            )
            if cursor.rowcount == 0:
                raise StampNotFoundError(stamp_id)

        return self.get(stamp_id)

    def update_fields(self, stamp_id: int, values: Dict[str, Any]) -> Stamp:
        """
        Update selected columns of a stamp.

        List values for theme_tags / dominant_colors are stored as
        comma-separated text; booleans as 0/1.

        Raises:
            ValueError: If a column is not updatable.
            StampNotFoundError: If the stamp does not exist.
        """
        unknown = set(values) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update stamp columns: {sorted(unknown)}")

        columns = [column for column in UPDATABLE_COLUMNS if column in values]
        params: List[Any] = []
        for column in columns:
            value = values[column]
            if column in ("theme_tags", "dominant_colors"):
                value = join_list(value)
            elif column == "needs_review":
                value = 1 if value else 0
            params.append(value)

        assignments = ", ".join(f"{column} = ?" for column in columns + ["updated_at"])
        params.extend([to_iso(utc_now()), stamp_id])

        with self.db.transaction("update stamp") as conn:
            cursor = conn.execute(
                f"UPDATE stamps SET {assignments} WHERE id = ?", params
            )
            if cursor.rowcount == 0:
                raise StampNotFoundError(stamp_id)

        return self.get(stamp_id)

    def apply_review(self, stamp_id: int, edit: StampEdit) -> Stamp:
        """
        Apply a manual review edit.

        Only fields present in the edit are written. A reviewer-set
        identifier, tag list or color list gets confidence 1 (None when
        cleared). Theme tags also re-derive the primary theme. The
        stamp always leaves the review queue.

        Args:
            stamp_id: Stamp being reviewed.
            edit: Validated edit.

        Returns:
            The updated Stamp.

        Raises:
            StampNotFoundError: If the stamp does not exist.
        """
        provided = edit.provided()
        values: Dict[str, Any] = {}

        for column in ("name", "year", "face_value", "theme"):
            if column in provided:
                values[column] = provided[column]

        if "identifier" in provided:
            values["identifier"] = provided["identifier"]
            values["confidence_identifier"] = 1.0 if provided["identifier"] else None

        if "theme_tags" in provided:
            tags = provided["theme_tags"] or []
            values["theme_tags"] = tags
            values["theme"] = primary_theme(tags)
            values["confidence_theme"] = 1.0 if tags else None

        if "dominant_colors" in provided:
            colors = provided["dominant_colors"] or []
            values["dominant_colors"] = colors
            values["confidence_colors"] = 1.0 if colors else None

        values["needs_review"] = False

        stamp = self.update_fields(stamp_id, values)
        logger.info(f"Applied review edit to stamp {stamp_id}: {sorted(provided)}")
        return stamp

    def list_needing_review(self, limit: Optional[int] = None) -> List[Stamp]:
        """Stamps flagged for human review, oldest first."""
        query = "SELECT * FROM stamps WHERE needs_review = 1 ORDER BY created_at, id"
        params: List[Any] = []
        if limit:
            query += " LIMIT ?"
            params.append(int(limit))

        with self.db.transaction("list stamps needing review") as conn:
            rows = conn.execute(query, params).fetchall()
        return [Stamp.from_row(row) for row in rows]

    def count(self) -> int:
        with self.db.transaction("count stamps") as conn:
            return conn.execute("SELECT COUNT(*) FROM stamps").fetchone()[0]
