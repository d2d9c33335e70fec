# tests/test_image_source.py
from __future__ import annotations

import pytest

from stamp_catalog.input_handler import ImageSource
from stamp_catalog.utils.exceptions import CorruptedImageError, ImageNotFoundError


def test_reads_stored_image(media_root, stored_image):
    source = ImageSource(media_root)
    assert source.read_bytes(stored_image) == b"\xff\xd8fake-jpeg-bytes"


def test_path_without_leading_slash(media_root, stored_image):
    assert ImageSource(media_root).read_bytes("uploads/eagle.jpg").startswith(b"\xff\xd8")


def test_missing_image(media_root):
    with pytest.raises(ImageNotFoundError):
        ImageSource(media_root).read_bytes("/uploads/missing.jpg")


def test_path_cannot_escape_media_root(media_root, tmp_path):
    (tmp_path / "secret.txt").write_text("nope")
    with pytest.raises(ImageNotFoundError):
        ImageSource(media_root).read_bytes("/../secret.txt")


def test_empty_file_is_corrupted(media_root):
    (media_root / "uploads" / "empty.png").write_bytes(b"")
    with pytest.raises(CorruptedImageError):
        ImageSource(media_root).read_bytes("/uploads/empty.png")


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/uploads/a.png", "image/png"),
        ("/uploads/a.WEBP", "image/webp"),
        ("/uploads/a.gif", "image/gif"),
        ("/uploads/a.jpg", "image/jpeg"),
        ("/uploads/a", "image/jpeg"),
    ],
)
def test_mime_type(path, expected):
    assert ImageSource.mime_type(path) == expected


def test_media_root_from_environment(monkeypatch, media_root, stored_image):
    monkeypatch.setenv("STAMP_CATALOG_MEDIA_ROOT", str(media_root))
    source = ImageSource()
    assert source.media_root == media_root.resolve()
    assert source.read_bytes(stored_image)
