"""
Upload handling for report photos.

Temporary files live in UPLOAD_DIR for the duration of one request.
ImageStore keeps the accepted photo and hands back the reference stored on
the Issue (a local stand-in for cloud object storage).
"""

import shutil
import uuid
from pathlib import Path
from typing import Tuple

from PIL import Image
from loguru import logger


ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}

# Pillow format names accepted for report photos
ALLOWED_FORMATS = {"JPEG", "PNG", "WEBP", "MPO"}


def save_upload(content: bytes, filename: str, upload_dir: Path) -> Path:
    """Write an uploaded file to the temp directory, keeping its original name."""
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_path = upload_dir / f"{uuid.uuid4()}_{Path(filename).name}"
    with open(file_path, "wb") as f:
        f.write(content)
    return file_path


def inspect_image(file_path: Path) -> Tuple[str, Tuple[int, int]]:
    """
    Check that the file decodes as a supported image.

    Returns:
        Tuple of (format, (width, height))

    Raises:
        ValueError: file is not a readable JPEG/PNG/WebP image
    """
    try:
        with Image.open(file_path) as img:
            image_format = img.format
            size = img.size
            img.verify()
    except Exception as e:
        raise ValueError(f"Uploaded file is not a valid image: {e}") from e

    if image_format not in ALLOWED_FORMATS:
        raise ValueError(f"Unsupported image format: {image_format}")

    return image_format, size


def discard(file_path: Path) -> None:
    """Delete a temporary upload if it still exists."""
    try:
        file_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not delete temp file {file_path}: {e}")


class ImageStore:
    """Keeps accepted report photos on local disk."""

    def __init__(self, directory: Path, url_prefix: str = "/images"):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")
        self.directory.mkdir(parents=True, exist_ok=True)

    def store(self, file_path: Path) -> str:
        """Copy the photo into the store and return its public reference."""
        name = f"{uuid.uuid4().hex}{Path(file_path).suffix.lower()}"
        shutil.copyfile(file_path, self.directory / name)
        return f"{self.url_prefix}/{name}"
