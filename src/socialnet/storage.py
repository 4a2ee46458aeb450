"""Local file storage for avatars and publication media.

Files land under ``settings.upload_dir/<folder>`` with a random name and are
served by the static mounts registered in :mod:`socialnet.api`.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile

from .config import settings

logger = logging.getLogger(__name__)

AVATARS = "avatars"
PUBLICATIONS = "publications"

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def upload_root() -> Path:
    return Path(settings.upload_dir)


def ensure_upload_dirs() -> None:
    for folder in (AVATARS, PUBLICATIONS):
        (upload_root() / folder).mkdir(parents=True, exist_ok=True)


def _content_type(file: UploadFile) -> Optional[str]:
    content_type = file.content_type
    if (not content_type or content_type == "application/octet-stream") and file.filename:
        content_type = EXTENSION_TYPES.get(Path(file.filename).suffix.lower())
    return content_type


def public_url(folder: str, filename: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/uploads/{folder}/{filename}"


def save_image(file: UploadFile, folder: str) -> str:
    """Validate and store an uploaded image; return its public URL."""
    content_type = _content_type(file)
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400, detail="Invalid file extension, only images are allowed"
        )

    limit = settings.max_upload_bytes
    # One byte past the limit is enough to tell an oversized upload apart
    content = file.file.read(limit + 1)
    if not content:
        raise HTTPException(status_code=400, detail="The uploaded file is empty")
    if len(content) > limit:
        raise HTTPException(
            status_code=400,
            detail=f"File too large, maximum size is {limit // 1024} KB",
        )

    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in EXTENSION_TYPES:
        suffix = "." + content_type.split("/")[1].replace("jpeg", "jpg")
    filename = f"{uuid.uuid4().hex}{suffix}"

    target_dir = upload_root() / folder
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / filename).write_bytes(content)
    logger.info("stored %s (%d bytes) in %s", filename, len(content), target_dir)
    return public_url(folder, filename)


def delete_file(url: Optional[str]) -> None:
    """Remove a previously stored file given its public URL, if it is ours."""
    if not url or "/uploads/" not in url:
        return
    relative = url.split("/uploads/", 1)[1]
    root = upload_root().resolve()
    path = (root / relative).resolve()
    if root not in path.parents:
        return
    try:
        path.unlink()
    except FileNotFoundError:
        logger.debug("file %s already removed", path)
