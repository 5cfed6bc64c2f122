"""
Proof-of-delivery photo storage.

Photos are written to the local upload directory and served under
`/uploads`. Swap `UploadService.storage_dir` for object storage later.
"""

import asyncio
import logging
import os
import uuid
from typing import Optional

from sendit.app.core.config import settings
from sendit.app.core.exceptions import ValidationFailedError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

URL_PREFIX = "/uploads"


class UploadService:

    def __init__(self, storage_dir: str = settings.upload_dir, max_bytes: int = settings.upload_max_bytes):
        self.storage_dir = storage_dir
        self.max_bytes = max_bytes

    def validate_image(self, content_type: Optional[str], size: int) -> str:
        """Return the file extension for an accepted image, raise otherwise."""
        extension = ALLOWED_IMAGE_TYPES.get((content_type or "").lower())
        if extension is None:
            raise ValidationFailedError(
                "Delivery photo must be an image",
                details={"content_type": content_type, "allowed": sorted(ALLOWED_IMAGE_TYPES)},
            )
        if size == 0:
            raise ValidationFailedError("Delivery photo is empty")
        if size > self.max_bytes:
            raise ValidationFailedError(
                "Delivery photo is too large",
                details={"size": size, "max_bytes": self.max_bytes},
            )
        return extension

    async def upload_image(self, data: bytes, content_type: Optional[str], prefix: str = "delivery") -> str:
        """
        Store an image and return its public URL.

        Raises:
            ValidationFailedError: not an image, empty, or over the size limit
        """
        extension = self.validate_image(content_type, len(data))
        filename = f"{prefix}-{uuid.uuid4().hex}{extension}"
        path = os.path.join(self.storage_dir, filename)

        await asyncio.to_thread(self._write, path, data)
        logger.info("Stored upload %s (%d bytes)", filename, len(data))

        return f"{URL_PREFIX}/{filename}"

    async def delete(self, url: str) -> None:
        """Remove a stored upload by its public URL. Missing files are ignored."""
        path = os.path.join(self.storage_dir, os.path.basename(url))
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            return
        logger.info("Removed upload %s", os.path.basename(url))

    def _write(self, path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as handle:
            handle.write(data)


upload_service = UploadService()
