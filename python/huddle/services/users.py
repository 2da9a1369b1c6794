"""User profile service."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from huddle.db.models import User
from huddle.db.session import transaction
from huddle.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from huddle.logging import get_logger
from huddle.schemas.common import UserSummaryOut
from huddle.schemas.user import UserOut

logger = get_logger(__name__)

MAX_NAME_LENGTH = 80


def user_summary(user: User | None, fallback_id: UUID) -> UserSummaryOut:
    """Author summary; a missing users row still yields an id-only summary."""
    if user is None:
        return UserSummaryOut(id=fallback_id)
    return UserSummaryOut(id=user.id, name=user.name, image=user.image)


def load_user_summaries(db: Session, user_ids) -> dict[UUID, UserSummaryOut]:
    """Batch-load summaries for a collection of user ids."""
    ids = set(user_ids)
    if not ids:
        return {}
    users = db.scalars(select(User).where(User.id.in_(ids))).all()
    found = {u.id: user_summary(u, u.id) for u in users}
    return {uid: found.get(uid, UserSummaryOut(id=uid)) for uid in ids}


def get_me(db: Session, viewer_id: UUID) -> UserOut | None:
    user = db.get(User, viewer_id)
    if user is None:
        return None
    return UserOut.model_validate(user)


def update_my_name(db: Session, viewer_id: UUID, name: str) -> UserOut:
    """Set the viewer's display name.

    Raises:
        InvalidRequestError(E_NAME_INVALID): If the trimmed name is empty or too long.
        NotFoundError: If the viewer has no users row.
    """
    name = name.strip()
    if not name or len(name) > MAX_NAME_LENGTH:
        raise InvalidRequestError(ApiErrorCode.E_NAME_INVALID, "Name cannot be empty")

    with transaction(db):
        user = db.get(User, viewer_id)
        if user is None:
            raise NotFoundError(ApiErrorCode.E_NOT_FOUND, "User not found")
        user.name = name

    logger.info("user_name_updated", user_id=str(viewer_id))
    return UserOut.model_validate(user)
