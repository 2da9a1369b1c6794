"""Channel message service layer.

Operations:
- list_by_channel / list_by_channel_paginated: queries, [] for non-members
- send_message: validates content, inserts, then fans out mention notifications
- update_message: author only
- delete_message: author or workspace admin; removes the message's notifications
- toggle_message_reaction: any workspace member

Service functions correspond 1:1 with route handlers.
Routes are transport-only and call exactly one service function.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from huddle.auth.permissions import (
    get_channel_for_member_or_none,
    require_authenticated,
    require_channel_member,
    require_member,
)
from huddle.db.models import Channel, MemberRole, Message, utcnow
from huddle.db.session import transaction
from huddle.errors import ApiErrorCode, ForbiddenError, InvalidRequestError, NotFoundError
from huddle.logging import get_logger
from huddle.schemas.common import PageInfo
from huddle.schemas.message import MessageOut, ReactionSummaryOut
from huddle.services import notifications
from huddle.services.images import normalize_image_id, resolve_image_url
from huddle.services.pagination import apply_desc_cursor, clamp_limit, decode_cursor, split_page
from huddle.services.reactions import summarize_reactions, toggle_reaction
from huddle.services.users import load_user_summaries
from huddle.storage.client import StorageClientBase

logger = get_logger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def normalize_body(body: str | None) -> str | None:
    """Trim a message body; an empty result is stored as NULL."""
    body = (body or "").strip()
    return body or None


def normalize_emoji(emoji: str) -> str:
    emoji = (emoji or "").strip()
    if not emoji:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "Emoji is required")
    return emoji


def get_message_or_404(db: Session, message_id: UUID) -> Message:
    message = db.get(Message, message_id)
    if message is None:
        raise NotFoundError(ApiErrorCode.E_MESSAGE_NOT_FOUND, "Message not found")
    return message


def messages_to_out(
    db: Session,
    rows: list[Message],
    channel: Channel,
    viewer_id: UUID,
    storage: StorageClientBase | None,
) -> list[MessageOut]:
    authors = load_user_summaries(db, (m.user_id for m in rows))
    return [
        MessageOut(
            id=m.id,
            channel_id=m.channel_id,
            workspace_id=m.workspace_id,
            user_id=m.user_id,
            body=m.body,
            image_id=m.image_id,
            image_url=resolve_image_url(storage, m.image_id),
            reaction_summary=summarize_reactions(m.reactions, viewer_id),
            created_at=m.created_at,
            updated_at=m.updated_at,
            user=authors[m.user_id],
            channel_name=channel.name,
        )
        for m in rows
    ]


# =============================================================================
# Queries
# =============================================================================


def list_by_channel(
    db: Session,
    viewer_id: UUID | None,
    channel_id: UUID,
    storage: StorageClientBase | None = None,
) -> list[MessageOut]:
    """All messages of a channel, oldest first. [] if the viewer cannot see the channel."""
    channel = get_channel_for_member_or_none(db, viewer_id, channel_id)
    if channel is None:
        return []

    rows = db.scalars(
        select(Message)
        .where(Message.channel_id == channel_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    ).all()
    return messages_to_out(db, list(rows), channel, viewer_id, storage)


def list_by_channel_paginated(
    db: Session,
    viewer_id: UUID | None,
    channel_id: UUID,
    storage: StorageClientBase | None = None,
    limit: int | None = None,
    cursor: str | None = None,
) -> tuple[list[MessageOut], PageInfo]:
    """One page of a channel's messages, newest first.

    Page 1 is always the most recent slice; clients reverse each page for display.

    Raises:
        InvalidRequestError(E_INVALID_CURSOR): If cursor is malformed.
    """
    if cursor is not None:
        decode_cursor(cursor)

    channel = get_channel_for_member_or_none(db, viewer_id, channel_id)
    if channel is None:
        return [], PageInfo()

    limit = clamp_limit(limit)
    stmt = apply_desc_cursor(
        select(Message).where(Message.channel_id == channel_id), Message, cursor
    )
    rows = list(db.scalars(stmt.limit(limit + 1)).all())
    page, next_cursor = split_page(rows, limit)

    return messages_to_out(db, page, channel, viewer_id, storage), PageInfo(
        next_cursor=next_cursor, is_done=next_cursor is None
    )


# =============================================================================
# Mutations
# =============================================================================


def send_message(
    db: Session,
    viewer_id: UUID | None,
    channel_id: UUID,
    body: str | None = None,
    image_id: str | None = None,
    now: datetime | None = None,
) -> UUID:
    """Post a message to a channel and notify mentioned members.

    Mention fan-out runs in a savepoint: a database error there is logged and
    discarded without losing the message.

    Returns:
        The new message id.

    Raises:
        NotFoundError(E_CHANNEL_NOT_FOUND): If the channel does not exist.
        ForbiddenError: If the viewer is not a member of the channel's workspace.
        InvalidRequestError(E_EMPTY_MESSAGE): If there is neither text nor an image.
    """
    require_authenticated(viewer_id)
    body = normalize_body(body)
    image_id = normalize_image_id(image_id)
    if body is None and image_id is None:
        raise InvalidRequestError(ApiErrorCode.E_EMPTY_MESSAGE, "Message cannot be empty")

    now = now or utcnow()
    with transaction(db):
        channel, _ = require_channel_member(db, viewer_id, channel_id)

        message = Message(
            channel_id=channel.id,
            workspace_id=channel.workspace_id,
            user_id=viewer_id,
            body=body,
            image_id=image_id,
            reactions=[],
            created_at=now,
        )
        db.add(message)
        db.flush()

        if body is not None:
            try:
                with db.begin_nested():
                    notifications.fan_out_mentions(
                        db,
                        workspace_id=channel.workspace_id,
                        channel_id=channel.id,
                        message_id=message.id,
                        sender_id=viewer_id,
                        body=body,
                        now=now,
                    )
            except SQLAlchemyError:
                logger.exception("mention_fan_out_failed", message_id=str(message.id))

    logger.info(
        "channel_message_sent",
        message_id=str(message.id),
        channel_id=str(channel_id),
        has_image=image_id is not None,
    )
    return message.id


def update_message(db: Session, viewer_id: UUID | None, message_id: UUID, body: str) -> None:
    """Edit a message body. Only the author may edit.

    Raises:
        NotFoundError(E_MESSAGE_NOT_FOUND): If the message does not exist.
        ForbiddenError: If the viewer is not a member or not the author.
        InvalidRequestError(E_EMPTY_MESSAGE): If the trimmed body is empty.
    """
    require_authenticated(viewer_id)
    new_body = normalize_body(body)
    if new_body is None:
        raise InvalidRequestError(ApiErrorCode.E_EMPTY_MESSAGE, "Message cannot be empty")

    with transaction(db):
        message = get_message_or_404(db, message_id)
        require_member(db, viewer_id, message.workspace_id)
        if message.user_id != viewer_id:
            raise ForbiddenError()
        message.body = new_body
        message.updated_at = utcnow()

    logger.info("channel_message_updated", message_id=str(message_id))


def delete_message(db: Session, viewer_id: UUID | None, message_id: UUID) -> None:
    """Hard-delete a message and its notifications. Author or workspace admin.

    Raises:
        NotFoundError(E_MESSAGE_NOT_FOUND): If the message does not exist.
        ForbiddenError: If the viewer is neither the author nor an admin.
    """
    require_authenticated(viewer_id)
    with transaction(db):
        message = get_message_or_404(db, message_id)
        member = require_member(db, viewer_id, message.workspace_id)
        if message.user_id != viewer_id and member.role != MemberRole.admin.value:
            raise ForbiddenError()
        notifications.delete_for_message(db, message_id)
        db.execute(delete(Message).where(Message.id == message_id))

    logger.info("channel_message_deleted", message_id=str(message_id))


def toggle_message_reaction(
    db: Session, viewer_id: UUID | None, message_id: UUID, emoji: str
) -> list[ReactionSummaryOut]:
    """Add or remove the viewer's (emoji) reaction on a message.

    Returns:
        The message's reaction summary after the toggle.
    """
    require_authenticated(viewer_id)
    emoji = normalize_emoji(emoji)
    with transaction(db):
        message = get_message_or_404(db, message_id)
        require_member(db, viewer_id, message.workspace_id)
        message.reactions = toggle_reaction(message.reactions, emoji, viewer_id)

    logger.info("channel_message_reaction_toggled", message_id=str(message_id))
    return summarize_reactions(message.reactions, viewer_id)
