"""Image upload initialization.

The client asks for a signed upload grant, uploads the file straight to
blob storage, then sends the returned image_id along with a message.
No database rows are written here; the image is referenced only once a
message carrying its image_id is stored.
"""

from uuid import UUID

from huddle.auth.permissions import require_authenticated
from huddle.config import get_settings
from huddle.errors import ApiError, ApiErrorCode, InvalidRequestError
from huddle.logging import get_logger
from huddle.schemas.upload import ImageUploadOut
from huddle.storage.client import StorageClientBase, StorageError
from huddle.storage.paths import build_image_path

logger = get_logger(__name__)


def init_image_upload(
    storage: StorageClientBase, viewer_id: UUID | None, content_type: str
) -> ImageUploadOut:
    """Mint a signed upload grant for a new message image.

    Raises:
        UnauthenticatedError: If viewer_id is None.
        InvalidRequestError: If content_type is not an accepted image type.
        ApiError: E_SIGN_UPLOAD_FAILED if storage refuses to sign.
    """
    viewer_id = require_authenticated(viewer_id)
    settings = get_settings()

    try:
        image_id = build_image_path(content_type.strip())
    except ValueError as e:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, str(e)) from e

    try:
        signed = storage.sign_upload(
            image_id,
            content_type=content_type.strip().lower(),
            expires_in=settings.signed_url_expiry_s,
        )
    except StorageError as e:
        logger.error("image_upload_sign_failed", image_id=image_id, error=e.message)
        raise ApiError(ApiErrorCode.E_SIGN_UPLOAD_FAILED, "Failed to initialize upload") from e

    logger.info("image_upload_initialized", image_id=image_id, user_id=str(viewer_id))
    return ImageUploadOut(
        image_id=signed.path, token=signed.token, expires_in=settings.signed_url_expiry_s
    )
