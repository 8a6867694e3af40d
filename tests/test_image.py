"""Tests for image validation and object paths."""

from datetime import datetime, timezone

import pytest

from finance_tracker.models import UploadedImage
from finance_tracker.services.image import (
    InMemoryObjectStorage,
    InvalidImageError,
    avatar_path,
    receipt_path,
    validate_image,
)


class TestObjectPaths:
    """Paths are namespaced by user id."""

    def test_receipt_path(self):
        now = datetime(2024, 1, 15, tzinfo=timezone.utc)
        path = receipt_path("user-1", "my receipt.png", now=now)
        assert path == f"transaction-images/user-1/{int(now.timestamp() * 1000)}_my_receipt.png"

    def test_avatar_path(self):
        assert avatar_path("user-1") == "avatars/user-1"


class TestValidateImage:
    """Checks performed before any upload."""

    def test_png_accepted(self, app_settings, png_bytes):
        image = UploadedImage(filename="a.png", content_type="image/png", data=png_bytes)
        validate_image(image, app_settings)

    def test_non_image_content_type(self, app_settings):
        image = UploadedImage(filename="a.pdf", content_type="application/pdf", data=b"%PDF")
        with pytest.raises(InvalidImageError, match="Please select an image file"):
            validate_image(image, app_settings)

    def test_oversized_image(self, app_settings, png_bytes):
        settings = app_settings.model_copy(update={"max_upload_size_mb": 1})
        data = png_bytes + b"\0" * (1024 * 1024)
        image = UploadedImage(filename="a.png", content_type="image/png", data=data)
        with pytest.raises(InvalidImageError, match="less than 1MB"):
            validate_image(image, settings)

    def test_bytes_must_decode(self, app_settings):
        image = UploadedImage(filename="a.png", content_type="image/png", data=b"not an image")
        with pytest.raises(InvalidImageError):
            validate_image(image, app_settings)


class TestInMemoryObjectStorage:

    async def test_upload_image(self, png_bytes):
        storage = InMemoryObjectStorage()
        image = UploadedImage(filename="a.png", content_type="image/png", data=png_bytes)
        stored = await storage.upload_image(image, "avatars/user-1")
        assert stored.url == "memory://avatars/user-1"
        assert storage.objects["avatars/user-1"] == image.data

    async def test_invalid_image_not_stored(self):
        storage = InMemoryObjectStorage()
        image = UploadedImage(filename="a.txt", content_type="text/plain", data=b"hi")
        with pytest.raises(InvalidImageError):
            await storage.upload_image(image, "avatars/user-1")
        assert storage.objects == {}
