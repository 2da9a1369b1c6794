"""Workspace service layer.

A workspace is the tenant boundary: members, channels, conversations,
messages and notifications all belong to exactly one workspace and are
removed with it (ON DELETE CASCADE).

Join codes are six decimal digits, visible to admins only.
"""

import secrets
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from huddle.auth.permissions import (
    get_member_or_none,
    require_admin,
    require_authenticated,
)
from huddle.db.models import Channel, Member, MemberRole, NotificationLevel, Workspace
from huddle.db.session import transaction
from huddle.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from huddle.logging import get_logger
from huddle.schemas.workspace import JoinCodeOut, WorkspaceOut

logger = get_logger(__name__)

JOIN_CODE_LENGTH = 6
DEFAULT_CHANNEL_NAME = "general"
MAX_WORKSPACE_NAME_LENGTH = 80


# =============================================================================
# Helpers
# =============================================================================


def generate_join_code() -> str:
    return "".join(secrets.choice("0123456789") for _ in range(JOIN_CODE_LENGTH))


def normalize_workspace_name(name: str) -> str:
    name = (name or "").strip()
    if not name or len(name) > MAX_WORKSPACE_NAME_LENGTH:
        raise InvalidRequestError(
            ApiErrorCode.E_NAME_INVALID,
            f"Workspace name must be 1-{MAX_WORKSPACE_NAME_LENGTH} characters",
        )
    return name


def workspace_to_out(workspace: Workspace, member: Member | None) -> WorkspaceOut:
    """Serialize a workspace for a viewer; the join code is shown to admins only."""
    is_admin = member is not None and member.role == MemberRole.admin.value
    return WorkspaceOut(
        id=workspace.id,
        name=workspace.name,
        owner_user_id=workspace.owner_user_id,
        join_code=workspace.join_code if is_admin else None,
        created_at=workspace.created_at,
        role=member.role if member is not None else None,
    )


def get_workspace_or_404(db: Session, workspace_id: UUID) -> Workspace:
    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError(ApiErrorCode.E_WORKSPACE_NOT_FOUND, "Workspace not found")
    return workspace


# =============================================================================
# Queries
# =============================================================================


def list_workspaces(db: Session, viewer_id: UUID | None) -> list[WorkspaceOut]:
    """Workspaces the viewer belongs to, oldest membership first."""
    if viewer_id is None:
        return []
    rows = db.execute(
        select(Workspace, Member)
        .join(Member, Member.workspace_id == Workspace.id)
        .where(Member.user_id == viewer_id)
        .order_by(Member.created_at.asc(), Workspace.id.asc())
    ).all()
    return [workspace_to_out(workspace, member) for workspace, member in rows]


def get_workspace(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> WorkspaceOut | None:
    member = get_member_or_none(db, viewer_id, workspace_id)
    if member is None:
        return None
    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        return None
    return workspace_to_out(workspace, member)


# =============================================================================
# Mutations
# =============================================================================


def create_workspace(db: Session, viewer_id: UUID | None, name: str) -> WorkspaceOut:
    """Create a workspace with the viewer as admin and a default #general channel."""
    require_authenticated(viewer_id)
    name = normalize_workspace_name(name)

    with transaction(db):
        workspace = Workspace(name=name, owner_user_id=viewer_id, join_code=generate_join_code())
        db.add(workspace)
        db.flush()

        member = Member(
            workspace_id=workspace.id,
            user_id=viewer_id,
            role=MemberRole.admin.value,
            muted=False,
            notification_level=NotificationLevel.all.value,
        )
        db.add(member)
        db.add(Channel(workspace_id=workspace.id, name=DEFAULT_CHANNEL_NAME, created_by=viewer_id))

    logger.info("workspace_created", workspace_id=str(workspace.id))
    return workspace_to_out(workspace, member)


def update_workspace_name(
    db: Session, viewer_id: UUID | None, workspace_id: UUID, name: str
) -> WorkspaceOut:
    """Rename a workspace. Admin only."""
    name = normalize_workspace_name(name)
    with transaction(db):
        member = require_admin(db, viewer_id, workspace_id)
        workspace = get_workspace_or_404(db, workspace_id)
        workspace.name = name

    logger.info("workspace_renamed", workspace_id=str(workspace_id))
    return workspace_to_out(workspace, member)


def regenerate_join_code(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> JoinCodeOut:
    """Replace the workspace's join code. Admin only; the old code stops working."""
    with transaction(db):
        require_admin(db, viewer_id, workspace_id)
        workspace = get_workspace_or_404(db, workspace_id)
        workspace.join_code = generate_join_code()

    logger.info("workspace_join_code_regenerated", workspace_id=str(workspace_id))
    return JoinCodeOut(join_code=workspace.join_code)


def join_workspace(db: Session, viewer_id: UUID | None, join_code: str) -> WorkspaceOut:
    """Join the workspace identified by join_code as a regular member.

    Idempotent: an existing member gets the workspace back unchanged.

    Raises:
        InvalidRequestError(E_INVALID_JOIN_CODE): If no workspace has this code.
    """
    require_authenticated(viewer_id)
    join_code = (join_code or "").strip()
    if len(join_code) != JOIN_CODE_LENGTH or not join_code.isdigit():
        raise InvalidRequestError(ApiErrorCode.E_INVALID_JOIN_CODE, "Invalid join code")

    try:
        with transaction(db):
            workspace = db.scalars(
                select(Workspace)
                .where(Workspace.join_code == join_code)
                .order_by(Workspace.created_at.desc())
                .limit(1)
            ).first()
            if workspace is None:
                raise InvalidRequestError(ApiErrorCode.E_INVALID_JOIN_CODE, "Invalid join code")

            member = get_member_or_none(db, viewer_id, workspace.id)
            if member is None:
                member = Member(
                    workspace_id=workspace.id,
                    user_id=viewer_id,
                    role=MemberRole.member.value,
                    muted=False,
                    notification_level=NotificationLevel.all.value,
                )
                db.add(member)
                db.flush()
                logger.info("workspace_joined", workspace_id=str(workspace.id))
    except IntegrityError:
        # Concurrent join by the same user; the other request's row stands
        workspace = db.scalars(
            select(Workspace).where(Workspace.join_code == join_code).limit(1)
        ).first()
        member = get_member_or_none(db, viewer_id, workspace.id) if workspace else None
        if member is None:
            raise
    return workspace_to_out(workspace, member)


def delete_workspace(db: Session, viewer_id: UUID | None, workspace_id: UUID) -> None:
    """Delete a workspace and everything in it. Admin only."""
    with transaction(db):
        require_admin(db, viewer_id, workspace_id)
        db.execute(delete(Workspace).where(Workspace.id == workspace_id))

    logger.info("workspace_deleted", workspace_id=str(workspace_id))
