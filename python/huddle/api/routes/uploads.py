"""Upload API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends

from huddle.api.deps import get_storage
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.schemas.upload import ImageUploadRequest
from huddle.services import uploads as uploads_service
from huddle.storage.client import StorageClientBase

router = APIRouter(tags=["uploads"])


@router.post("/uploads/images")
def init_image_upload(
    body: ImageUploadRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    """Get a signed upload grant for a message image.

    Errors:
        E_INVALID_REQUEST (400): Content type is not png, jpeg, gif or webp.
        E_SIGN_UPLOAD_FAILED (500): Storage refused to sign the upload.
    """
    result = uploads_service.init_image_upload(
        storage=storage, viewer_id=viewer.user_id, content_type=body.content_type
    )
    return success_response(result.model_dump(mode="json"))
