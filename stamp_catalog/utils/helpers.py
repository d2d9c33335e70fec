"""
Helper Utilities Module.

This module provides common utility functions used throughout the
stamp catalog service. Functions here should be generic and
reusable across different modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - utc_now / to_iso / from_iso: Timestamp handling for storage
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Union, Optional


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    This function creates the directory and all parent directories
    if they don't already exist. It's safe to call even if the
    directory already exists.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("data")
        PosixPath('data')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the file extension from a filepath.

    Returns the extension in lowercase, including the dot.
    Returns empty string if no extension exists.

    Example:
        >>> get_file_extension("stamp.PNG")
        ".png"
    """
    return Path(filepath).suffix.lower()


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """
    Serialize a datetime for storage.

    Naive datetimes are assumed to be UTC. Microseconds are always
    written so stored values sort in creation order.

    Args:
        value: Datetime to serialize, or None.

    Returns:
        ISO-8601 string, or None.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO-8601 timestamp, or return None."""
    if not value:
        return None
    return datetime.fromisoformat(value)

