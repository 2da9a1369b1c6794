"""Image upload Pydantic schemas."""

from pydantic import BaseModel, Field


class ImageUploadRequest(BaseModel):
    content_type: str = Field(..., max_length=64)


class ImageUploadOut(BaseModel):
    """Signed upload grant.

    image_id is the storage path; pass it back as SendMessageRequest.image_id
    once the browser upload has finished.
    """

    image_id: str
    token: str
    expires_in: int
