"""Storage path building.

An image_id stored on a message is its storage path: images/{uuid}.{ext}

Rules:
    - No leading slash
    - No user identifiers in paths
    - Only paths produced here are accepted as image ids
"""

import re
from uuid import UUID, uuid4

IMAGE_PREFIX = "images/"

CONTENT_TYPE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}

IMAGE_PATH_PATTERN = re.compile(
    r"^images/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\.(png|jpg|gif|webp)$"
)


def get_image_extension(content_type: str) -> str:
    """Map an image content type to its file extension.

    Raises:
        ValueError: If the content type is not an accepted image type.
    """
    ext = CONTENT_TYPE_EXTENSIONS.get(content_type.lower())
    if ext is None:
        raise ValueError(f"Content type '{content_type}' is not an accepted image type")
    return ext


def build_image_path(content_type: str, image_uuid: UUID | None = None) -> str:
    """Build the storage path for a new message image.

    Example:
        >>> build_image_path("image/png")
        'images/3f2b0c1e-....png'
    """
    if image_uuid is None:
        image_uuid = uuid4()
    return f"{IMAGE_PREFIX}{image_uuid}.{get_image_extension(content_type)}"


def is_image_path(path: str) -> bool:
    """Whether path is a well-formed image storage path."""
    return bool(IMAGE_PATH_PATTERN.match(path))
