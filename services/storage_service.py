"""
Storage of uploaded post media.
Supports images and videos; files are served statically from /uploads.
"""
import os
import time
import uuid
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile

import config
from utils.logger import get_logger

logger = get_logger("storage")

ALLOWED_MEDIA_PREFIXES = ("image/", "video/")
CHUNK_SIZE = 1024 * 1024
EXTENSION_MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp4": "video/mp4",
    ".mov": "video/quicktime",
    ".webm": "video/webm",
}


def upload_dir() -> Path:
    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def generate_filename(original_filename: Optional[str]) -> str:
    """Collision-resistant name: epoch millis + random suffix, original extension kept."""
    ext = Path(original_filename or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}{ext}"


def validate_file(file: UploadFile) -> None:
    """Reject anything that is not an image or video."""
    content_type = file.content_type
    if (not content_type or content_type == "application/octet-stream") and file.filename:
        content_type = EXTENSION_MEDIA_TYPES.get(Path(file.filename).suffix.lower())

    if not content_type or not content_type.startswith(ALLOWED_MEDIA_PREFIXES):
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {content_type or 'unknown'}",
        )


async def save_upload(file: UploadFile) -> str:
    """Store an uploaded file and return its public URL (/uploads/<name>)."""
    validate_file(file)

    filename = generate_filename(file.filename)
    file_path = upload_dir() / filename
    size = 0
    try:
        with open(file_path, "wb") as buffer:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > config.MAX_UPLOAD_SIZE:
                    raise HTTPException(
                        status_code=400,
                        detail=f"File too large. Maximum size: {config.MAX_UPLOAD_SIZE / (1024 * 1024):.1f} MB",
                    )
                buffer.write(chunk)
    except Exception:
        file_path.unlink(missing_ok=True)
        raise

    logger.info("Stored upload %s (%d bytes)", filename, size)
    return f"{config.UPLOAD_URL_PREFIX}/{filename}"


def delete_upload(url: Optional[str]) -> bool:
    """Best-effort removal of a stored upload referenced by `url`.

    URLs outside /uploads/ are left alone. Failures are logged, never raised.
    """
    if not url or not url.startswith(config.UPLOAD_URL_PREFIX + "/"):
        return False

    # basename only, never follow a path out of the upload directory
    file_path = Path(config.UPLOAD_DIR) / os.path.basename(url)
    try:
        file_path.unlink()
    except FileNotFoundError:
        logger.warning("Upload already gone: %s", file_path)
        return False
    except OSError as e:
        logger.warning("Could not delete upload %s: %s", file_path, e)
        return False
    return True
