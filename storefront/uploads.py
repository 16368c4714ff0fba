import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from fastapi import UploadFile

from .errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}
MAX_GALLERY_FILES = 5
PUBLIC_PREFIX = "/uploads"


def _present(uploads: Optional[List[UploadFile]]) -> List[UploadFile]:
    return [u for u in (uploads or []) if u is not None and u.filename]


def check_upload(upload: Optional[UploadFile]) -> Optional[str]:
    """Returns the lowercased extension, or None when nothing was uploaded."""
    if upload is None or not upload.filename:
        return None
    ext = os.path.splitext(upload.filename)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"Unsupported image type: {upload.filename}")
    return ext


async def save_upload(upload: Optional[UploadFile], upload_dir: str) -> Optional[str]:
    """Write an uploaded image under ``upload_dir``; returns its public path."""
    ext = check_upload(upload)
    if ext is None:
        return None

    target_dir = Path(upload_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    name = f"{uuid.uuid4().hex}{ext}"
    data = await upload.read()
    (target_dir / name).write_bytes(data)
    return f"{PUBLIC_PREFIX}/{name}"


async def save_images(
    featured: Optional[UploadFile],
    gallery: Optional[List[UploadFile]],
    upload_dir: str,
) -> Tuple[Optional[str], List[str]]:
    """
    Saves the featured image and gallery. Every file is checked before the
    first one is written, so a rejected request leaves nothing on disk.
    """
    gallery = _present(gallery)
    if len(gallery) > MAX_GALLERY_FILES:
        raise ValidationError(f"At most {MAX_GALLERY_FILES} gallery images are allowed")
    for upload in [featured, *gallery]:
        check_upload(upload)

    featured_path = await save_upload(featured, upload_dir)
    gallery_paths = [await save_upload(u, upload_dir) for u in gallery]
    return featured_path, gallery_paths


def discard(paths: List[Optional[str]], upload_dir: str) -> None:
    """Removes files written by ``save_images`` for a request that then failed."""
    for path in paths:
        if not path:
            continue
        target = Path(upload_dir) / Path(path).name
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("[UPLOAD] already gone: %s", target)
