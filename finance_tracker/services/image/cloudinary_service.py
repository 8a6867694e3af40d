"""
Object Storage using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. Reliable hosted storage for images with durable HTTPS URLs
2. Simple API
3. Free tier sufficient for personal use

Receipts and avatars are uploaded as-is (no transformations) under the
configured folder, keyed by the user-namespaced path.

Uploads are NOT retried: a failed upload aborts the user's submission
and the user decides whether to resubmit.
"""

from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import structlog

from finance_tracker.config import CloudinarySettings, get_settings
from finance_tracker.services.image.storage import (
    ImageUploadError,
    ObjectStorageInterface,
    StoredObject,
)


logger = structlog.get_logger(__name__)


class CloudinaryObjectStorage(ObjectStorageInterface):
    """Cloudinary implementation of object storage."""

    def __init__(self, settings: Optional[CloudinarySettings] = None):
        self._settings = settings or get_settings().cloudinary
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    async def upload(
        self,
        data: bytes,
        path: str,
        content_type: str,
    ) -> StoredObject:
        """
        Upload bytes to Cloudinary.

        Args:
            data: Raw file bytes
            path: User-namespaced object path (becomes the public id)
            content_type: MIME type of the file

        Returns:
            StoredObject with the secure URL

        Raises:
            ImageUploadError: If upload fails or no URL is returned
        """
        self._configure()

        try:
            result = cloudinary.uploader.upload(
                data,
                public_id=path,
                folder=self._settings.folder,
                resource_type="image" if content_type.startswith("image/") else "raw",
                overwrite=True,
            )
        except cloudinary.exceptions.Error as e:
            raise ImageUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise ImageUploadError(f"Failed to upload image: {e}")

        url = result.get("secure_url", result.get("url", ""))
        if not url:
            raise ImageUploadError("No URL returned from Cloudinary")

        logger.info("object_uploaded", path=path, size_bytes=len(data))
        return StoredObject(
            path=path,
            url=url,
            size_bytes=result.get("bytes", len(data)),
        )
