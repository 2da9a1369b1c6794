"""Blob storage client abstraction for message images.

Provides:
- Signed upload URLs (the browser uploads directly to storage)
- Signed download URLs (resolved on every read into image_url)

All methods receive the full storage path; see huddle.storage.paths.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import uuid4

import httpx

from huddle.config import get_settings
from huddle.errors import ApiErrorCode


@dataclass(frozen=True)
class SignedUpload:
    """Signed upload grant.

    Use with supabase.storage.uploadToSignedUrl(path, token, file) on the client.
    """

    path: str
    token: str


class StorageError(Exception):
    """Storage operation error."""

    def __init__(self, message: str, code: ApiErrorCode = ApiErrorCode.E_STORAGE_ERROR):
        super().__init__(message)
        self.message = message
        self.code = code


class StorageClientBase(ABC):
    """Abstract base class for storage client implementations."""

    @abstractmethod
    def sign_upload(self, path: str, *, content_type: str, expires_in: int = 300) -> SignedUpload:
        """Create a signed upload grant for a direct browser upload.

        Raises:
            StorageError: If signing fails.
        """
        ...

    @abstractmethod
    def sign_download(self, path: str, *, expires_in: int = 300) -> str:
        """Create a signed download URL.

        Raises:
            StorageError: If signing fails.
        """
        ...


class StorageClient(StorageClientBase):
    """Supabase Storage client over httpx."""

    def __init__(self, supabase_url: str, service_key: str, bucket: str = "uploads"):
        self._base_url = supabase_url.rstrip("/")
        self._bucket = bucket
        self._storage_url = f"{self._base_url}/storage/v1"
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def sign_upload(self, path: str, *, content_type: str, expires_in: int = 300) -> SignedUpload:
        url = f"{self._storage_url}/object/upload/sign/{self._bucket}/{path}"

        with httpx.Client() as client:
            response = client.post(
                url,
                headers={**self._headers, "x-upsert": "false"},
                json={"expiresIn": expires_in, "contentType": content_type},
                timeout=30.0,
            )

        if response.status_code != 200:
            raise StorageError(
                f"Failed to sign upload: {response.status_code}",
                code=ApiErrorCode.E_SIGN_UPLOAD_FAILED,
            )

        data = response.json()
        token = data.get("token", "")
        if not token:
            signed_url = data.get("url", "")
            if "token=" in signed_url:
                token = signed_url.split("token=")[1].split("&")[0]
        if not token:
            raise StorageError(
                "Failed to sign upload: missing token", code=ApiErrorCode.E_SIGN_UPLOAD_FAILED
            )

        return SignedUpload(path=path, token=token)

    def sign_download(self, path: str, *, expires_in: int = 300) -> str:
        url = f"{self._storage_url}/object/sign/{self._bucket}/{path}"

        with httpx.Client() as client:
            response = client.post(
                url, headers=self._headers, json={"expiresIn": expires_in}, timeout=30.0
            )

        if response.status_code != 200:
            raise StorageError(
                f"Failed to sign download: {response.status_code}",
                code=ApiErrorCode.E_SIGN_DOWNLOAD_FAILED,
            )

        signed_path = response.json().get("signedURL") or response.json().get("signedUrl") or ""
        if not signed_path:
            raise StorageError(
                "Failed to sign download: missing signed URL",
                code=ApiErrorCode.E_SIGN_DOWNLOAD_FAILED,
            )

        # Supabase may return relative paths, with or without /storage/v1.
        if signed_path.startswith(("http://", "https://")):
            return signed_path
        if signed_path.startswith("/storage/"):
            return f"{self._base_url}{signed_path}"
        return f"{self._storage_url}/{signed_path.lstrip('/')}"


class FakeStorageClient(StorageClientBase):
    """In-memory storage client for local development and tests."""

    def __init__(self, fail_downloads: bool = False):
        self.fail_downloads = fail_downloads
        self.signed_uploads: dict[str, str] = {}

    def sign_upload(self, path: str, *, content_type: str, expires_in: int = 300) -> SignedUpload:
        token = f"fake-token-{uuid4()}"
        self.signed_uploads[path] = token
        return SignedUpload(path=path, token=token)

    def sign_download(self, path: str, *, expires_in: int = 300) -> str:
        if self.fail_downloads:
            raise StorageError("Fake download failure", code=ApiErrorCode.E_SIGN_DOWNLOAD_FAILED)
        return f"https://fake-storage.test/download/{path}"


def get_storage_client() -> StorageClientBase:
    """Return a StorageClient when Supabase is configured, else a FakeStorageClient."""
    settings = get_settings()
    if settings.storage_configured:
        return StorageClient(
            supabase_url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.storage_bucket,
        )
    return FakeStorageClient()
