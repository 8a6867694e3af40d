"""
Object Storage for User Images

Two kinds of objects are stored, both namespaced by user id:
- receipts:  transaction-images/{uid}/{epoch_millis}_{filename}
- avatars:   avatars/{uid}

Every upload is validated before it leaves the process: content type
must be image/*, size must be within the configured limit, and the
bytes must actually decode as an image.
"""

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.records import UploadedImage


class ObjectStorageError(Exception):
    """Base exception for object storage errors."""
    pass


class InvalidImageError(ObjectStorageError):
    """The file is not an acceptable image."""
    pass


class ImageUploadError(ObjectStorageError):
    """Failed to upload the image to the object store."""
    pass


class StoredObject(BaseModel):
    """An uploaded object and its durable download URL."""

    path: str
    url: str
    size_bytes: int


def receipt_path(uid: str, filename: str, now: Optional[datetime] = None) -> str:
    """Path for a transaction receipt image."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    safe_name = re.sub(r"[^A-Za-z0-9._-]", "_", filename)
    return f"transaction-images/{uid}/{millis}_{safe_name}"


def avatar_path(uid: str) -> str:
    """Path for a user's avatar. Re-uploading replaces the previous one."""
    return f"avatars/{uid}"


def validate_image(image: UploadedImage, settings: Optional[AppSettings] = None) -> None:
    """
    Check an uploaded file before storing it.

    Raises:
        InvalidImageError: With a message suitable for inline display
    """
    settings = settings or get_settings().app

    if not image.content_type.lower().startswith("image/"):
        raise InvalidImageError("Please select an image file")

    if image.size_bytes == 0:
        raise InvalidImageError("The selected image is empty")

    if image.size_bytes > settings.max_upload_size_bytes:
        raise InvalidImageError(
            f"Image size should be less than {settings.max_upload_size_mb}MB"
        )

    try:
        with Image.open(BytesIO(image.data)) as img:
            img.verify()
            image_format = (img.format or "").lower()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise InvalidImageError("The selected file could not be read as an image")

    allowed = settings.supported_formats_list
    if image_format and image_format not in allowed and not (
        image_format == "jpeg" and "jpg" in allowed
    ):
        raise InvalidImageError(
            f"Unsupported image format: {image_format}. Allowed: {', '.join(allowed)}"
        )


class ObjectStorageInterface(ABC):
    """Abstract interface for storing user images."""

    @abstractmethod
    async def upload(
        self,
        data: bytes,
        path: str,
        content_type: str,
    ) -> StoredObject:
        """
        Store bytes under a path.

        Returns:
            The stored object with a retrievable URL

        Raises:
            ImageUploadError: If the upload fails
        """
        pass

    async def upload_image(self, image: UploadedImage, path: str) -> StoredObject:
        """Validate an uploaded image, then store it."""
        validate_image(image)
        return await self.upload(image.data, path, image.content_type)


class InMemoryObjectStorage(ObjectStorageInterface):
    """Keeps objects in a dict. Local mode and tests."""

    def __init__(self, base_url: str = "memory://"):
        self._base_url = base_url
        self.objects: dict[str, bytes] = {}

    async def upload(
        self,
        data: bytes,
        path: str,
        content_type: str,
    ) -> StoredObject:
        self.objects[path] = data
        return StoredObject(
            path=path,
            url=f"{self._base_url}{path}",
            size_bytes=len(data),
        )
