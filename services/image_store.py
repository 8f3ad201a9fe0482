"""Local disk storage for uploaded book cover images."""

import logging
import os
import uuid
from typing import Optional

from fastapi import UploadFile

from config import settings
from services.errors import ValidationFailedError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads/"
ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif"}
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif"}


def upload_dir() -> str:
    os.makedirs(settings.upload_dir, exist_ok=True)
    return settings.upload_dir


async def save_image(image: Optional[UploadFile]) -> Optional[str]:
    """Store an uploaded image and return its public path.

    Returns ``None`` when no file was sent.  Raises
    ``ValidationFailedError`` for non-image files or files above
    ``settings.max_upload_bytes``.
    """
    if image is None or not image.filename:
        return None

    extension = os.path.splitext(image.filename)[1].lower()
    if extension not in ALLOWED_EXTENSIONS or (image.content_type or "").lower() not in ALLOWED_MIME_TYPES:
        raise ValidationFailedError.single("image", "Only image files are allowed!")

    content = await image.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        raise ValidationFailedError.single("image", "File too large")

    filename = f"{uuid.uuid4().hex}{extension}"
    with open(os.path.join(upload_dir(), filename), "wb") as handle:
        handle.write(content)
    logger.info("Stored image %s (%d bytes)", filename, len(content))
    return PUBLIC_PREFIX + filename


def remove_image(public_path: Optional[str]) -> bool:
    """Delete a stored image given its public path; False if nothing was removed."""
    if not public_path or not public_path.startswith(PUBLIC_PREFIX):
        return False
    filename = os.path.basename(public_path)
    path = os.path.join(settings.upload_dir, filename)
    if not os.path.exists(path):
        return False
    os.remove(path)
    logger.info("Removed image %s", filename)
    return True
