"""Workspace membership service layer.

Members carry a role (admin | member) and notification preferences
(muted, notification_level) that gate notification fan-out.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from huddle.auth.permissions import get_member_or_none, require_admin, require_member
from huddle.db.models import Member
from huddle.db.session import transaction
from huddle.errors import ApiErrorCode, NotFoundError
from huddle.logging import get_logger
from huddle.schemas.workspace import MemberOut
from huddle.services.users import load_user_summaries

logger = get_logger(__name__)


def _to_out(db: Session, members: list[Member]) -> list[MemberOut]:
    users = load_user_summaries(db, (m.user_id for m in members))
    return [
        MemberOut(
            id=m.id,
            workspace_id=m.workspace_id,
            user_id=m.user_id,
            role=m.role,
            muted=m.muted,
            notification_level=m.notification_level,
            created_at=m.created_at,
            user=users[m.user_id],
        )
        for m in members
    ]


def _get_target_or_404(db: Session, workspace_id: UUID, user_id: UUID) -> Member:
    target = get_member_or_none(db, user_id, workspace_id)
    if target is None:
        raise NotFoundError(ApiErrorCode.E_MEMBER_NOT_FOUND, "Member not found")
    return target


# =============================================================================
# Queries
# =============================================================================


def list_members(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> list[MemberOut]:
    """All members of a workspace in join order. [] for non-members."""
    if get_member_or_none(db, viewer_id, workspace_id) is None:
        return []
    members = db.scalars(
        select(Member)
        .where(Member.workspace_id == workspace_id)
        .order_by(Member.created_at.asc(), Member.id.asc())
    ).all()
    return _to_out(db, list(members))


def get_my_member(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> MemberOut | None:
    member = get_member_or_none(db, viewer_id, workspace_id)
    if member is None:
        return None
    return _to_out(db, [member])[0]


def get_member(
    db: Session, viewer_id: UUID | None, workspace_id: UUID, user_id: UUID
) -> MemberOut | None:
    """Another member's row, visible to fellow members only."""
    if get_member_or_none(db, viewer_id, workspace_id) is None:
        return None
    target = get_member_or_none(db, user_id, workspace_id)
    if target is None:
        return None
    return _to_out(db, [target])[0]


# =============================================================================
# Mutations
# =============================================================================


def update_member_role(
    db: Session, viewer_id: UUID | None, workspace_id: UUID, user_id: UUID, role: str
) -> MemberOut:
    """Change a member's role. Admin only.

    Raises:
        ForbiddenError: If the viewer is not an admin.
        NotFoundError(E_MEMBER_NOT_FOUND): If user_id is not a member.
    """
    with transaction(db):
        require_admin(db, viewer_id, workspace_id)
        target = _get_target_or_404(db, workspace_id, user_id)
        target.role = role

    logger.info("member_role_updated", workspace_id=str(workspace_id), member_id=str(target.id))
    return _to_out(db, [target])[0]


def remove_member(db: Session, viewer_id: UUID | None, workspace_id: UUID, user_id: UUID) -> None:
    """Remove a member from a workspace. Admin only.

    Their messages stay; queries that join through membership stop showing
    their conversations.
    """
    with transaction(db):
        require_admin(db, viewer_id, workspace_id)
        target = _get_target_or_404(db, workspace_id, user_id)
        db.execute(delete(Member).where(Member.id == target.id))

    logger.info("member_removed", workspace_id=str(workspace_id), member_id=str(target.id))


def update_my_notification_settings(
    db: Session,
    viewer_id: UUID | None,
    workspace_id: UUID,
    muted: bool,
    notification_level: str,
) -> MemberOut:
    """Set the viewer's own mute flag and notification level in a workspace."""
    with transaction(db):
        member = require_member(db, viewer_id, workspace_id)
        member.muted = muted
        member.notification_level = notification_level

    logger.info(
        "notification_settings_updated",
        workspace_id=str(workspace_id),
        muted=muted,
        notification_level=notification_level,
    )
    return _to_out(db, [member])[0]
