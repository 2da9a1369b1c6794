"""Image reference helpers shared by channel and direct messages."""

from huddle.errors import ApiErrorCode, InvalidRequestError
from huddle.logging import get_logger
from huddle.storage.client import StorageClientBase, StorageError
from huddle.storage.paths import is_image_path

logger = get_logger(__name__)


def normalize_image_id(image_id: str | None) -> str | None:
    """Trim an incoming image reference; blank means no image.

    Raises:
        InvalidRequestError: If the reference is not an image storage path.
    """
    if image_id is None:
        return None
    image_id = image_id.strip()
    if not image_id:
        return None
    if not is_image_path(image_id):
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Invalid image reference")
    return image_id


def resolve_image_url(
    storage: StorageClientBase | None, image_id: str | None, expires_in: int = 300
) -> str | None:
    """Signed download URL for image_id, or None when absent or signing fails."""
    if not image_id or storage is None:
        return None
    try:
        return storage.sign_download(image_id, expires_in=expires_in)
    except StorageError as e:
        logger.warning("image_url_resolution_failed", image_id=image_id, error_code=e.code.value)
        return None
