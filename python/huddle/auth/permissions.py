"""Access guard: membership and participation checks.

These helpers are the single source of truth for who may touch what.
Every service function calls one of them before reading or writing.

Two flavours, used deliberately:
- require_* guards raise (UnauthenticatedError / ForbiddenError / NotFoundError).
  Mutations call the narrowest applicable guard before any write.
- *_or_none helpers return None. Queries use these and degrade to an empty
  result, so a client whose membership is revoked mid-session sees nothing
  rather than an error.

Membership rules:
- A user may act in a workspace iff a members row (workspace_id, user_id) exists
- Admin-only operations additionally require role = 'admin'
- Channel access is workspace membership (channels are not individually joined)
- Conversation access requires workspace membership AND being user_id_a or user_id_b
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from huddle.db.models import Channel, DirectConversation, Member, MemberRole
from huddle.errors import ApiErrorCode, ForbiddenError, NotFoundError, UnauthenticatedError


def get_member_or_none(db: Session, user_id: UUID | None, workspace_id: UUID) -> Member | None:
    """Look up the (workspace_id, user_id) membership row."""
    if user_id is None:
        return None
    return db.scalar(
        select(Member).where(Member.workspace_id == workspace_id, Member.user_id == user_id)
    )


def require_authenticated(viewer_id: UUID | None) -> UUID:
    """Raise E_UNAUTHENTICATED if there is no caller identity."""
    if viewer_id is None:
        raise UnauthenticatedError()
    return viewer_id


def require_member(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> Member:
    """Require that the viewer is a member of the workspace.

    Raises:
        UnauthenticatedError: If viewer_id is None.
        ForbiddenError: If the viewer has no membership in the workspace.
    """
    require_authenticated(viewer_id)
    member = get_member_or_none(db, viewer_id, workspace_id)
    if member is None:
        raise ForbiddenError()
    return member


def require_admin(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> Member:
    """Require that the viewer is an admin of the workspace."""
    member = require_member(db, viewer_id, workspace_id)
    if member.role != MemberRole.admin.value:
        raise ForbiddenError(ApiErrorCode.E_FORBIDDEN, "Admin access required")
    return member


def require_channel_member(
    db: Session, viewer_id: UUID | None, channel_id: UUID
) -> tuple[Channel, Member]:
    """Resolve the channel's workspace, then require membership in it.

    Raises:
        UnauthenticatedError: If viewer_id is None.
        NotFoundError(E_CHANNEL_NOT_FOUND): If the channel does not exist.
        ForbiddenError: If the viewer is not a member of the channel's workspace.
    """
    require_authenticated(viewer_id)
    channel = db.get(Channel, channel_id)
    if channel is None:
        raise NotFoundError(ApiErrorCode.E_CHANNEL_NOT_FOUND, "Channel not found")
    member = require_member(db, viewer_id, channel.workspace_id)
    return channel, member


def is_participant(conversation: DirectConversation, user_id: UUID | None) -> bool:
    return user_id is not None and user_id in (conversation.user_id_a, conversation.user_id_b)


def other_participant(conversation: DirectConversation, user_id: UUID) -> UUID:
    """Return the participant that is not user_id."""
    if conversation.user_id_a == user_id:
        return conversation.user_id_b
    return conversation.user_id_a


def require_conversation_participant(
    db: Session, viewer_id: UUID | None, conversation_id: UUID
) -> tuple[DirectConversation, Member]:
    """Require that the viewer is a current participant of the conversation.

    Raises:
        UnauthenticatedError: If viewer_id is None.
        NotFoundError(E_CONVERSATION_NOT_FOUND): If the conversation does not exist.
        ForbiddenError: If the viewer is not a workspace member or not one of the pair.
    """
    require_authenticated(viewer_id)
    conversation = db.get(DirectConversation, conversation_id)
    if conversation is None:
        raise NotFoundError(ApiErrorCode.E_CONVERSATION_NOT_FOUND, "Conversation not found")
    member = require_member(db, viewer_id, conversation.workspace_id)
    if not is_participant(conversation, viewer_id):
        raise ForbiddenError()
    return conversation, member


def get_channel_for_member_or_none(
    db: Session, viewer_id: UUID | None, channel_id: UUID
) -> Channel | None:
    """Soft channel guard for queries."""
    channel = db.get(Channel, channel_id)
    if channel is None:
        return None
    if get_member_or_none(db, viewer_id, channel.workspace_id) is None:
        return None
    return channel


def get_participant_conversation_or_none(
    db: Session, viewer_id: UUID | None, conversation_id: UUID
) -> DirectConversation | None:
    """Soft conversation guard for queries."""
    conversation = db.get(DirectConversation, conversation_id)
    if conversation is None or not is_participant(conversation, viewer_id):
        return None
    if get_member_or_none(db, viewer_id, conversation.workspace_id) is None:
        return None
    return conversation


def is_channel_member(db: Session, viewer_id: UUID | None, channel_id: UUID) -> bool:
    return get_channel_for_member_or_none(db, viewer_id, channel_id) is not None
