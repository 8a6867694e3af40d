"""Image (object storage) services package."""

from finance_tracker.services.image.storage import (
    ImageUploadError,
    InMemoryObjectStorage,
    InvalidImageError,
    ObjectStorageError,
    ObjectStorageInterface,
    StoredObject,
    avatar_path,
    receipt_path,
    validate_image,
)
from finance_tracker.services.image.cloudinary_service import CloudinaryObjectStorage

__all__ = [
    "CloudinaryObjectStorage",
    "ImageUploadError",
    "InMemoryObjectStorage",
    "InvalidImageError",
    "ObjectStorageError",
    "ObjectStorageInterface",
    "StoredObject",
    "avatar_path",
    "receipt_path",
    "validate_image",
]
