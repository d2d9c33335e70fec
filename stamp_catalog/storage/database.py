"""
Database Module.

This module owns the SQLite database shared by the stamp and job
repositories: schema creation and per-operation connections.

Every repository call opens its own connection, runs inside a
transaction and closes the connection again, so several processes
(a worker and the CLI) can use the same file. A busy timeout makes a
writer wait for a lock instead of failing immediately.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from config import get_config
from stamp_catalog.utils.exceptions import DatabaseError
from stamp_catalog.utils.helpers import ensure_directory
from stamp_catalog.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

MEMORY_PATH = ":memory:"

SCHEMA = """
CREATE TABLE IF NOT EXISTS stamps (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    image_path TEXT NOT NULL,
    year INTEGER,
    identifier TEXT,
    face_value TEXT,
    theme TEXT,
    theme_tags TEXT,
    dominant_colors TEXT,
    confidence_identifier REAL,
    confidence_face_value REAL,
    confidence_theme REAL,
    confidence_colors REAL,
    needs_review INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_stamps_needs_review
    ON stamps (needs_review);

CREATE TABLE IF NOT EXISTS ocr_jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    stamp_id INTEGER NOT NULL REFERENCES stamps (id) ON DELETE CASCADE,
    status TEXT NOT NULL DEFAULT 'PENDING',
    error TEXT,
    created_at TEXT NOT NULL,
    started_at TEXT,
    completed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_ocr_jobs_status_created
    ON ocr_jobs (status, created_at, id);
"""


class Database:
    """
    SQLite database holding the stamps and ocr_jobs tables.

    Attributes:
        db_path: Path to the database file (or ":memory:")
        busy_timeout: Seconds to wait for a locked database

    Example:
        >>> db = Database("data/stamp_catalog.db")
        >>> db.initialize()
        >>> with db.transaction("count") as conn:
        ...     conn.execute("SELECT COUNT(*) FROM stamps").fetchone()
    """

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        busy_timeout: Optional[float] = None
    ) -> None:
        path = db_path or get_config("paths.database", "data/stamp_catalog.db")
        self.busy_timeout = float(
            busy_timeout if busy_timeout is not None
            else get_config("database.busy_timeout_seconds", 30)
        )

        self._keeper: Optional[sqlite3.Connection] = None
        if str(path) == MEMORY_PATH:
            # A named shared-cache database lives as long as one connection stays open
            self.db_path = MEMORY_PATH
            self._uri = f"file:stamp_catalog_{id(self)}?mode=memory&cache=shared"
            self._keeper = self._open()
        else:
            self.db_path = Path(path)
            self._uri = None
            ensure_directory(self.db_path.parent)

        logger.debug(f"Database configured (db: {self.db_path})")

    def _open(self) -> sqlite3.Connection:
        if self._uri is not None:
            conn = sqlite3.connect(self._uri, uri=True, timeout=self.busy_timeout)
        else:
            conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def initialize(self) -> None:
        """
        Create tables and indexes if they don't exist.

        Raises:
            DatabaseError: If the schema cannot be created.
        """
        try:
            conn = self._open()
            try:
                conn.executescript(SCHEMA)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise DatabaseError("create tables", str(e)) from e

        logger.info(f"Database tables created/verified ({self.db_path})")

    @contextmanager
    def transaction(self, operation: str) -> Iterator[sqlite3.Connection]:
        """
        Open a connection for one repository operation.

        Commits on success and rolls back on any error. sqlite3 errors
        are re-raised as DatabaseError naming the operation.

        Args:
            operation: Short name of the operation, used in error messages.

        Yields:
            Open sqlite3 connection with Row factory.
        """
        try:
            conn = self._open()
        except sqlite3.Error as e:
            raise DatabaseError(operation, str(e)) from e

        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise DatabaseError(operation, str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def close(self) -> None:
        """Release the in-memory database, if any."""
        # File databases are closed per operation
        if self._keeper is not None:
            self._keeper.close()
            self._keeper = None
