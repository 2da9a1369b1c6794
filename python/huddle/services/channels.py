"""Channel service layer.

Any member may create a channel; renaming and deleting are admin-only.
Channel names are trimmed and must be 3-80 characters.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from huddle.auth.permissions import (
    get_channel_for_member_or_none,
    get_member_or_none,
    require_admin,
    require_authenticated,
    require_member,
)
from huddle.db.models import Channel, Notification
from huddle.db.session import transaction
from huddle.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from huddle.logging import get_logger
from huddle.schemas.workspace import ChannelOut

logger = get_logger(__name__)

MIN_CHANNEL_NAME_LENGTH = 3
MAX_CHANNEL_NAME_LENGTH = 80


def normalize_channel_name(name: str) -> str:
    name = (name or "").strip()
    if not MIN_CHANNEL_NAME_LENGTH <= len(name) <= MAX_CHANNEL_NAME_LENGTH:
        raise InvalidRequestError(
            ApiErrorCode.E_NAME_INVALID,
            f"Channel name must be {MIN_CHANNEL_NAME_LENGTH}-{MAX_CHANNEL_NAME_LENGTH} characters",
        )
    return name


def _get_channel_or_404(db: Session, channel_id: UUID) -> Channel:
    channel = db.get(Channel, channel_id)
    if channel is None:
        raise NotFoundError(ApiErrorCode.E_CHANNEL_NOT_FOUND, "Channel not found")
    return channel


def list_channels(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> list[ChannelOut]:
    if get_member_or_none(db, viewer_id, workspace_id) is None:
        return []
    channels = db.scalars(
        select(Channel)
        .where(Channel.workspace_id == workspace_id)
        .order_by(Channel.created_at.asc(), Channel.id.asc())
    ).all()
    return [ChannelOut.model_validate(c) for c in channels]


def get_channel(db: Session, viewer_id: UUID | None, channel_id: UUID) -> ChannelOut | None:
    channel = get_channel_for_member_or_none(db, viewer_id, channel_id)
    if channel is None:
        return None
    return ChannelOut.model_validate(channel)


def create_channel(
    db: Session, viewer_id: UUID | None, workspace_id: UUID, name: str
) -> ChannelOut:
    require_authenticated(viewer_id)
    name = normalize_channel_name(name)
    with transaction(db):
        require_member(db, viewer_id, workspace_id)
        channel = Channel(workspace_id=workspace_id, name=name, created_by=viewer_id)
        db.add(channel)
        db.flush()

    logger.info("channel_created", channel_id=str(channel.id), workspace_id=str(workspace_id))
    return ChannelOut.model_validate(channel)


def rename_channel(db: Session, viewer_id: UUID | None, channel_id: UUID, name: str) -> ChannelOut:
    """Rename a channel. Admin of the channel's workspace only."""
    require_authenticated(viewer_id)
    name = normalize_channel_name(name)
    with transaction(db):
        channel = _get_channel_or_404(db, channel_id)
        require_admin(db, viewer_id, channel.workspace_id)
        channel.name = name

    logger.info("channel_renamed", channel_id=str(channel_id))
    return ChannelOut.model_validate(channel)


def delete_channel(db: Session, viewer_id: UUID | None, channel_id: UUID) -> None:
    """Delete a channel with its messages and their mention notifications. Admin only."""
    require_authenticated(viewer_id)
    with transaction(db):
        channel = _get_channel_or_404(db, channel_id)
        require_admin(db, viewer_id, channel.workspace_id)
        db.execute(delete(Notification).where(Notification.channel_id == channel_id))
        db.execute(delete(Channel).where(Channel.id == channel_id))

    logger.info("channel_deleted", channel_id=str(channel_id))
