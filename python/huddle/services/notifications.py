"""Notification fan-out, listing and read tracking.

Fan-out creates at most one notification per eligible recipient per send:
- mention: one per distinct user id in the body's mention spans
- dm: one for the other participant of the conversation

A recipient is eligible iff they are a member of the workspace, not muted,
and their notification level is not 'none'. Ineligible recipients are
skipped silently.

Fan-out helpers run inside the caller's transaction (see messages.py and
direct_messages.py for the savepoint that isolates them from the send).
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from huddle.auth.permissions import (
    get_member_or_none,
    other_participant,
    require_authenticated,
    require_member,
)
from huddle.db.models import (
    DirectConversation,
    Member,
    Notification,
    NotificationLevel,
    NotificationType,
    utcnow,
)
from huddle.db.session import transaction
from huddle.errors import ApiErrorCode, ForbiddenError, NotFoundError
from huddle.logging import get_logger
from huddle.schemas.notification import NotificationOut
from huddle.services.mentions import build_dm_preview, build_preview, extract_mention_user_ids
from huddle.services.pagination import clamp_limit
from huddle.services.users import load_user_summaries

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


def is_notifiable(member: Member | None) -> bool:
    return (
        member is not None
        and not member.muted
        and member.notification_level != NotificationLevel.none.value
    )


# =============================================================================
# Fan-out
# =============================================================================


def fan_out_mentions(
    db: Session,
    *,
    workspace_id: UUID,
    channel_id: UUID,
    message_id: UUID,
    sender_id: UUID,
    body: str | None,
    now: datetime | None = None,
) -> int:
    """Insert one mention notification per eligible mentioned member.

    The sender is never notified about their own message.

    Returns:
        Number of notifications inserted.
    """
    mentioned = [uid for uid in extract_mention_user_ids(body) if uid != sender_id]
    if not mentioned:
        return 0

    preview = build_preview(body) or None
    created_at = now or utcnow()
    emitted = 0

    for user_id in mentioned:
        if not is_notifiable(get_member_or_none(db, user_id, workspace_id)):
            continue
        db.add(
            Notification(
                user_id=user_id,
                workspace_id=workspace_id,
                type=NotificationType.mention.value,
                from_user_id=sender_id,
                channel_id=channel_id,
                message_id=message_id,
                preview=preview,
                created_at=created_at,
            )
        )
        emitted += 1

    db.flush()
    logger.info(
        "mention_notifications_emitted",
        message_id=str(message_id),
        mentioned_count=len(mentioned),
        emitted_count=emitted,
    )
    return emitted


def notify_direct_message(
    db: Session,
    *,
    conversation: DirectConversation,
    direct_message_id: UUID,
    sender_id: UUID,
    body: str | None,
    has_image: bool,
    now: datetime | None = None,
) -> bool:
    """Insert a dm notification for the other participant if they are eligible.

    Returns:
        True if a notification was inserted.
    """
    recipient_id = other_participant(conversation, sender_id)
    if not is_notifiable(get_member_or_none(db, recipient_id, conversation.workspace_id)):
        return False

    db.add(
        Notification(
            user_id=recipient_id,
            workspace_id=conversation.workspace_id,
            type=NotificationType.dm.value,
            from_user_id=sender_id,
            conversation_id=conversation.id,
            direct_message_id=direct_message_id,
            preview=build_dm_preview(body, has_image),
            created_at=now or utcnow(),
        )
    )
    db.flush()
    logger.info("dm_notification_emitted", direct_message_id=str(direct_message_id))
    return True


def delete_for_message(db: Session, message_id: UUID) -> None:
    db.execute(delete(Notification).where(Notification.message_id == message_id))


def delete_for_direct_message(db: Session, direct_message_id: UUID) -> None:
    db.execute(delete(Notification).where(Notification.direct_message_id == direct_message_id))


# =============================================================================
# Queries
# =============================================================================


def list_by_workspace(
    db: Session, viewer_id: UUID, workspace_id: UUID, limit: int | None = None
) -> list[NotificationOut]:
    """List the viewer's notifications in a workspace, newest first.

    Returns [] for non-members. DM notifications carry the sender's member id
    as target_member_id.
    """
    if get_member_or_none(db, viewer_id, workspace_id) is None:
        return []

    limit = clamp_limit(limit, default=DEFAULT_LIST_LIMIT, maximum=MAX_LIST_LIMIT)
    rows = db.scalars(
        select(Notification)
        .where(Notification.user_id == viewer_id, Notification.workspace_id == workspace_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    ).all()

    senders = load_user_summaries(db, (n.from_user_id for n in rows))
    dm_sender_ids = {n.from_user_id for n in rows if n.type == NotificationType.dm.value}
    member_ids: dict[UUID, UUID] = {}
    if dm_sender_ids:
        member_ids = dict(
            db.execute(
                select(Member.user_id, Member.id).where(
                    Member.workspace_id == workspace_id, Member.user_id.in_(dm_sender_ids)
                )
            ).all()
        )

    results = []
    for n in rows:
        target_member_id = None
        if n.type == NotificationType.dm.value:
            target_member_id = member_ids.get(n.from_user_id)
        results.append(
            NotificationOut(
                id=n.id,
                workspace_id=n.workspace_id,
                type=n.type,
                from_user_id=n.from_user_id,
                channel_id=n.channel_id,
                message_id=n.message_id,
                conversation_id=n.conversation_id,
                direct_message_id=n.direct_message_id,
                preview=n.preview,
                created_at=n.created_at,
                read_at=n.read_at,
                is_read=n.read_at is not None,
                from_user=senders.get(n.from_user_id),
                target_member_id=target_member_id,
            )
        )
    return results


def count_unread_by_workspace(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> int:
    """Count the viewer's unread notifications in a workspace (0 for non-members)."""
    if get_member_or_none(db, viewer_id, workspace_id) is None:
        return 0
    return db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(
            Notification.user_id == viewer_id,
            Notification.workspace_id == workspace_id,
            Notification.read_at.is_(None),
        )
    )


# =============================================================================
# Mutations
# =============================================================================


def mark_read(
    db: Session, viewer_id: UUID | None, notification_id: UUID, now: datetime | None = None
) -> datetime:
    """Mark a single notification read. Already-read notifications keep their read_at.

    Returns:
        The notification's read_at after the call.

    Raises:
        UnauthenticatedError: If viewer_id is None.
        NotFoundError(E_NOTIFICATION_NOT_FOUND): If the notification does not exist.
        ForbiddenError: If the viewer is not the recipient.
    """
    require_authenticated(viewer_id)
    with transaction(db):
        notification = db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(ApiErrorCode.E_NOTIFICATION_NOT_FOUND, "Notification not found")
        if notification.user_id != viewer_id:
            raise ForbiddenError()
        if notification.read_at is None:
            notification.read_at = now or utcnow()

    return notification.read_at


def mark_all_read(
    db: Session, viewer_id: UUID | None, workspace_id: UUID, now: datetime | None = None
) -> int:
    """Mark every unread notification of the viewer in the workspace as read.

    Returns:
        Number of notifications newly marked (0 on a repeated call).
    """
    with transaction(db):
        require_member(db, viewer_id, workspace_id)
        result = db.execute(
            update(Notification)
            .where(
                Notification.user_id == viewer_id,
                Notification.workspace_id == workspace_id,
                Notification.read_at.is_(None),
            )
            .values(read_at=now or utcnow())
        )
        count = result.rowcount

    logger.info("notifications_marked_read", workspace_id=str(workspace_id), count=count)
    return count
