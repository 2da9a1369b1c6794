"""Storage module for message image uploads and downloads."""

from huddle.storage.client import (
    FakeStorageClient,
    SignedUpload,
    StorageClient,
    StorageClientBase,
    StorageError,
    get_storage_client,
)
from huddle.storage.paths import build_image_path, is_image_path

__all__ = [
    "StorageClient",
    "StorageClientBase",
    "FakeStorageClient",
    "SignedUpload",
    "StorageError",
    "get_storage_client",
    "build_image_path",
    "is_image_path",
]
