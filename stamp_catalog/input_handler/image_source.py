"""
Image Source Module.

Resolves the image path stored on a stamp record (e.g.
"/uploads/1700000000-ab12-eagle.jpg") to a file under the configured
media root and reads its bytes.

Placing uploaded files on disk is someone else's job; this module only
reads what is already there.
"""

from pathlib import Path
from typing import Optional, Union

from config import get_config
from stamp_catalog.utils.exceptions import CorruptedImageError, ImageNotFoundError
from stamp_catalog.utils.helpers import get_file_extension
from stamp_catalog.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

MIME_TYPES = {
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}
DEFAULT_MIME_TYPE = "image/jpeg"


class ImageSource:
    """
    Reads stored stamp images from the media root.

    Attributes:
        media_root: Directory that stored image paths are relative to

    Example:
        >>> source = ImageSource("public")
        >>> data = source.read_bytes("/uploads/eagle.jpg")
        >>> source.mime_type("/uploads/eagle.jpg")
        "image/jpeg"
    """

    def __init__(self, media_root: Optional[Union[str, Path]] = None) -> None:
        root = media_root or get_config("paths.media_root", "public")
        self.media_root = Path(root).resolve()
        logger.debug(f"ImageSource initialized (media root: {self.media_root})")

    def resolve(self, image_path: str) -> Path:
        """
        Map a stored image path to an absolute file path.

        Raises:
            ImageNotFoundError: If the path escapes the media root.
        """
        relative = image_path.lstrip("/\\")
        absolute = (self.media_root / relative).resolve()
        if absolute != self.media_root and self.media_root not in absolute.parents:
            raise ImageNotFoundError(image_path)
        return absolute

    def read_bytes(self, image_path: str) -> bytes:
        """
        Read the raw bytes of a stored image.

        Args:
            image_path: Path as stored on the stamp record.

        Returns:
            File content.

        Raises:
            ImageNotFoundError: If no such file exists.
            CorruptedImageError: If the file exists but cannot be read.
        """
        absolute = self.resolve(image_path)
        if not absolute.is_file():
            raise ImageNotFoundError(image_path)

        try:
            data = absolute.read_bytes()
        except OSError as e:
            raise CorruptedImageError(image_path, str(e)) from e

        if not data:
            raise CorruptedImageError(image_path, "file is empty")

        logger.debug(f"Read {len(data)} bytes from {absolute.name}")
        return data

    @staticmethod
    def mime_type(image_path: str) -> str:
        """MIME type guessed from the file extension; JPEG when unknown."""
        return MIME_TYPES.get(get_file_extension(image_path), DEFAULT_MIME_TYPE)
