"""Direct conversation and direct message service layer.

Conversation identity:
    A conversation is keyed by (workspace_id, user_id_a, user_id_b) where the
    pair is sorted by string representation. Every lookup and every insert goes
    through sort_pair, so either participant resolves the same row.

Read cursors:
    last_read_at_a / last_read_at_b only move forward. Unread status of a
    message is derived on read (created_at > cursor), never stored.

Queries return []/None when the viewer is not a current participant;
mutations raise.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from huddle.auth.permissions import (
    get_member_or_none,
    get_participant_conversation_or_none,
    other_participant,
    require_authenticated,
    require_conversation_participant,
    require_member,
)
from huddle.db.models import DirectConversation, DirectMessage, Member, MemberRole, utcnow
from huddle.db.session import transaction
from huddle.errors import ApiErrorCode, ForbiddenError, InvalidRequestError, NotFoundError
from huddle.logging import get_logger
from huddle.schemas.common import PageInfo
from huddle.schemas.conversation import ConversationSummaryOut, LastMessageOut, ReadStateOut
from huddle.schemas.message import DirectMessageOut, ReactionSummaryOut
from huddle.services import notifications
from huddle.services.images import normalize_image_id, resolve_image_url
from huddle.services.mentions import IMAGE_ONLY_PREVIEW, strip_html_to_text
from huddle.services.messages import normalize_body, normalize_emoji
from huddle.services.pagination import apply_desc_cursor, clamp_limit, decode_cursor, split_page
from huddle.services.reactions import summarize_reactions, toggle_reaction
from huddle.services.users import load_user_summaries, user_summary
from huddle.storage.client import StorageClientBase

logger = get_logger(__name__)

NO_MESSAGES_PREVIEW = "No messages yet"


# =============================================================================
# Pair ordering and read cursors
# =============================================================================


def sort_pair(first: UUID, second: UUID) -> tuple[UUID, UUID]:
    """Order two user ids canonically by their string form."""
    if str(first) < str(second):
        return first, second
    return second, first


def is_unread_for(created_at: datetime, last_read_at: datetime | None) -> bool:
    """Whether a message created at created_at is unread under the given cursor."""
    return last_read_at is None or created_at > last_read_at


def get_read_cursor(conversation: DirectConversation, user_id: UUID) -> datetime | None:
    if conversation.user_id_a == user_id:
        return conversation.last_read_at_a
    return conversation.last_read_at_b


def advance_read_cursor(
    conversation: DirectConversation, user_id: UUID, at: datetime
) -> datetime:
    """Move user_id's cursor to at unless it is already at or past it.

    Returns:
        The cursor value after the call.
    """
    current = get_read_cursor(conversation, user_id)
    if current is not None and at <= current:
        return current
    if conversation.user_id_a == user_id:
        conversation.last_read_at_a = at
    else:
        conversation.last_read_at_b = at
    return at


def _find_conversation(
    db: Session, workspace_id: UUID, user_id_a: UUID, user_id_b: UUID
) -> DirectConversation | None:
    return db.scalar(
        select(DirectConversation).where(
            DirectConversation.workspace_id == workspace_id,
            DirectConversation.user_id_a == user_id_a,
            DirectConversation.user_id_b == user_id_b,
        )
    )


# =============================================================================
# Conversations
# =============================================================================


def get_or_create_conversation(
    db: Session,
    viewer_id: UUID | None,
    workspace_id: UUID,
    other_user_id: UUID,
    now: datetime | None = None,
) -> UUID:
    """Resolve the viewer's conversation with other_user_id, creating it if needed.

    Idempotent regardless of which participant calls. On creation only the
    creator's read cursor is set; the other side stays "never read".

    Raises:
        ForbiddenError: If the viewer is not a member of the workspace.
        InvalidRequestError(E_CANNOT_MESSAGE_SELF): If other_user_id is the viewer.
        NotFoundError(E_MEMBER_NOT_FOUND): If the other user is not a member.
    """
    user_id_a, user_id_b = sort_pair(require_authenticated(viewer_id), other_user_id)

    try:
        with transaction(db):
            require_member(db, viewer_id, workspace_id)
            if other_user_id == viewer_id:
                raise InvalidRequestError(
                    ApiErrorCode.E_CANNOT_MESSAGE_SELF, "Cannot message yourself"
                )
            if get_member_or_none(db, other_user_id, workspace_id) is None:
                raise NotFoundError(ApiErrorCode.E_MEMBER_NOT_FOUND, "Member not found")

            existing = _find_conversation(db, workspace_id, user_id_a, user_id_b)
            if existing is not None:
                return existing.id

            now = now or utcnow()
            conversation = DirectConversation(
                workspace_id=workspace_id,
                user_id_a=user_id_a,
                user_id_b=user_id_b,
                created_at=now,
                last_read_at_a=now if viewer_id == user_id_a else None,
                last_read_at_b=now if viewer_id == user_id_b else None,
            )
            db.add(conversation)
            db.flush()
    except IntegrityError:
        # Lost race: the other participant created it concurrently
        existing = _find_conversation(db, workspace_id, user_id_a, user_id_b)
        if existing is None:
            raise
        logger.info("conversation_create_race_recovered", conversation_id=str(existing.id))
        return existing.id

    logger.info(
        "conversation_created",
        conversation_id=str(conversation.id),
        workspace_id=str(workspace_id),
    )
    return conversation.id


def list_conversations(
    db: Session,
    viewer_id: UUID | None,
    workspace_id: UUID,
    storage: StorageClientBase | None = None,
) -> list[ConversationSummaryOut]:
    """The viewer's conversations in a workspace, most recent activity first.

    Conversations whose other participant has left the workspace are omitted.
    """
    if get_member_or_none(db, viewer_id, workspace_id) is None:
        return []

    conversations = db.scalars(
        select(DirectConversation).where(
            DirectConversation.workspace_id == workspace_id,
            or_(
                DirectConversation.user_id_a == viewer_id,
                DirectConversation.user_id_b == viewer_id,
            ),
        )
    ).all()
    if not conversations:
        return []

    other_ids = {other_participant(c, viewer_id) for c in conversations}
    other_members = {
        m.user_id: m
        for m in db.scalars(
            select(Member).where(Member.workspace_id == workspace_id, Member.user_id.in_(other_ids))
        ).all()
    }
    other_users = load_user_summaries(db, other_ids)

    results = []
    for conversation in conversations:
        other_id = other_participant(conversation, viewer_id)
        other_member = other_members.get(other_id)
        if other_member is None:
            continue

        last = db.scalar(
            select(DirectMessage)
            .where(DirectMessage.conversation_id == conversation.id)
            .order_by(DirectMessage.created_at.desc(), DirectMessage.id.desc())
            .limit(1)
        )

        last_message = None
        unread = False
        if last is not None:
            image_url = resolve_image_url(storage, last.image_id)
            preview = strip_html_to_text(last.body) or (
                IMAGE_ONLY_PREVIEW if last.image_id else NO_MESSAGES_PREVIEW
            )
            last_message = LastMessageOut(
                id=last.id, created_at=last.created_at, preview=preview, image_url=image_url
            )
            unread = last.user_id != viewer_id and is_unread_for(
                last.created_at, get_read_cursor(conversation, viewer_id)
            )

        results.append(
            ConversationSummaryOut(
                conversation_id=conversation.id,
                other_member_id=other_member.id,
                other_user=other_users.get(other_id) or user_summary(None, other_id),
                last_message=last_message,
                last_activity_at=last.created_at if last is not None else conversation.created_at,
                unread=unread,
            )
        )

    results.sort(key=lambda r: r.last_activity_at, reverse=True)
    return results


# =============================================================================
# Direct message queries
# =============================================================================


def get_direct_message_or_404(db: Session, message_id: UUID) -> DirectMessage:
    message = db.get(DirectMessage, message_id)
    if message is None:
        raise NotFoundError(ApiErrorCode.E_MESSAGE_NOT_FOUND, "Message not found")
    return message


def direct_messages_to_out(
    db: Session,
    rows: list[DirectMessage],
    viewer_id: UUID,
    storage: StorageClientBase | None,
) -> list[DirectMessageOut]:
    authors = load_user_summaries(db, (m.user_id for m in rows))
    return [
        DirectMessageOut(
            id=m.id,
            conversation_id=m.conversation_id,
            workspace_id=m.workspace_id,
            user_id=m.user_id,
            body=m.body,
            image_id=m.image_id,
            image_url=resolve_image_url(storage, m.image_id),
            reaction_summary=summarize_reactions(m.reactions, viewer_id),
            created_at=m.created_at,
            updated_at=m.updated_at,
            user=authors[m.user_id],
        )
        for m in rows
    ]


def list_by_conversation(
    db: Session,
    viewer_id: UUID | None,
    conversation_id: UUID,
    storage: StorageClientBase | None = None,
) -> list[DirectMessageOut]:
    """All messages of a conversation, oldest first. [] for non-participants."""
    conversation = get_participant_conversation_or_none(db, viewer_id, conversation_id)
    if conversation is None:
        return []

    rows = db.scalars(
        select(DirectMessage)
        .where(DirectMessage.conversation_id == conversation_id)
        .order_by(DirectMessage.created_at.asc(), DirectMessage.id.asc())
    ).all()
    return direct_messages_to_out(db, list(rows), viewer_id, storage)


def list_by_conversation_paginated(
    db: Session,
    viewer_id: UUID | None,
    conversation_id: UUID,
    storage: StorageClientBase | None = None,
    limit: int | None = None,
    cursor: str | None = None,
) -> tuple[list[DirectMessageOut], PageInfo]:
    """One page of a conversation's messages, newest first.

    Raises:
        InvalidRequestError(E_INVALID_CURSOR): If cursor is malformed.
    """
    if cursor is not None:
        decode_cursor(cursor)

    conversation = get_participant_conversation_or_none(db, viewer_id, conversation_id)
    if conversation is None:
        return [], PageInfo()

    limit = clamp_limit(limit)
    stmt = apply_desc_cursor(
        select(DirectMessage).where(DirectMessage.conversation_id == conversation_id),
        DirectMessage,
        cursor,
    )
    rows = list(db.scalars(stmt.limit(limit + 1)).all())
    page, next_cursor = split_page(rows, limit)

    return direct_messages_to_out(db, page, viewer_id, storage), PageInfo(
        next_cursor=next_cursor, is_done=next_cursor is None
    )


def get_read_state(
    db: Session, viewer_id: UUID | None, conversation_id: UUID
) -> ReadStateOut | None:
    """Both read cursors from the viewer's side. None for non-participants."""
    conversation = get_participant_conversation_or_none(db, viewer_id, conversation_id)
    if conversation is None:
        return None
    return ReadStateOut(
        my_last_read_at=get_read_cursor(conversation, viewer_id),
        other_last_read_at=get_read_cursor(
            conversation, other_participant(conversation, viewer_id)
        ),
    )


# =============================================================================
# Mutations
# =============================================================================


def send_direct_message(
    db: Session,
    viewer_id: UUID | None,
    conversation_id: UUID,
    body: str | None = None,
    image_id: str | None = None,
    now: datetime | None = None,
) -> UUID:
    """Post a message to a conversation.

    Also advances the sender's own read cursor to the send time and notifies
    the other participant (in a savepoint, like mention fan-out).

    Raises:
        NotFoundError(E_CONVERSATION_NOT_FOUND): If the conversation does not exist.
        ForbiddenError: If the viewer is not a current participant.
        InvalidRequestError(E_EMPTY_MESSAGE): If there is neither text nor an image.
    """
    require_authenticated(viewer_id)
    body = normalize_body(body)
    image_id = normalize_image_id(image_id)
    if body is None and image_id is None:
        raise InvalidRequestError(ApiErrorCode.E_EMPTY_MESSAGE, "Message cannot be empty")

    now = now or utcnow()
    with transaction(db):
        conversation, _ = require_conversation_participant(db, viewer_id, conversation_id)

        message = DirectMessage(
            conversation_id=conversation.id,
            workspace_id=conversation.workspace_id,
            user_id=viewer_id,
            body=body,
            image_id=image_id,
            reactions=[],
            created_at=now,
        )
        db.add(message)
        advance_read_cursor(conversation, viewer_id, now)
        db.flush()

        try:
            with db.begin_nested():
                notifications.notify_direct_message(
                    db,
                    conversation=conversation,
                    direct_message_id=message.id,
                    sender_id=viewer_id,
                    body=body,
                    has_image=image_id is not None,
                    now=now,
                )
        except SQLAlchemyError:
            logger.exception("dm_notification_failed", direct_message_id=str(message.id))

    logger.info(
        "direct_message_sent",
        direct_message_id=str(message.id),
        conversation_id=str(conversation_id),
        has_image=image_id is not None,
    )
    return message.id


def mark_conversation_read(
    db: Session, viewer_id: UUID | None, conversation_id: UUID, now: datetime | None = None
) -> datetime:
    """Advance the viewer's read cursor to now. Never moves it backwards.

    Returns:
        The resulting cursor value (unchanged if now is not later).
    """
    require_authenticated(viewer_id)
    with transaction(db):
        conversation, _ = require_conversation_participant(db, viewer_id, conversation_id)
        at = advance_read_cursor(conversation, viewer_id, now or utcnow())
    return at


def update_direct_message(
    db: Session, viewer_id: UUID | None, message_id: UUID, body: str
) -> None:
    """Edit a direct message body. Only the author may edit.

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
        message = get_direct_message_or_404(db, message_id)
        require_member(db, viewer_id, message.workspace_id)
        if message.user_id != viewer_id:
            raise ForbiddenError()
        message.body = new_body
        message.updated_at = utcnow()

    logger.info("direct_message_updated", direct_message_id=str(message_id))


def delete_direct_message(db: Session, viewer_id: UUID | None, message_id: UUID) -> None:
    """Hard-delete a direct message and its notification. Author or workspace admin."""
    require_authenticated(viewer_id)
    with transaction(db):
        message = get_direct_message_or_404(db, message_id)
        member = require_member(db, viewer_id, message.workspace_id)
        if message.user_id != viewer_id and member.role != MemberRole.admin.value:
            raise ForbiddenError()
        notifications.delete_for_direct_message(db, message_id)
        db.execute(delete(DirectMessage).where(DirectMessage.id == message_id))

    logger.info("direct_message_deleted", direct_message_id=str(message_id))


def toggle_direct_message_reaction(
    db: Session, viewer_id: UUID | None, message_id: UUID, emoji: str
) -> list[ReactionSummaryOut]:
    """Add or remove the viewer's (emoji) reaction on a direct message.

    Returns:
        The message's reaction summary after the toggle.
    """
    require_authenticated(viewer_id)
    emoji = normalize_emoji(emoji)
    with transaction(db):
        message = get_direct_message_or_404(db, message_id)
        require_conversation_participant(db, viewer_id, message.conversation_id)
        message.reactions = toggle_reaction(message.reactions, emoji, viewer_id)

    logger.info("direct_message_reaction_toggled", direct_message_id=str(message_id))
    return summarize_reactions(message.reactions, viewer_id)
