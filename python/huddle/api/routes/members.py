"""Workspace member API routes.

Routes are transport-only: each calls exactly one service function.
"/members/me" routes are declared before "/members/{user_id}" so they match first.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from huddle.api.deps import get_db
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.schemas.workspace import UpdateMemberRoleRequest, UpdateNotificationSettingsRequest
from huddle.services import members as members_service

router = APIRouter(tags=["members"])


@router.get("/workspaces/{workspace_id}/members")
def list_members(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = members_service.list_members(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id
    )
    return success_response([m.model_dump(mode="json") for m in result])


@router.get("/workspaces/{workspace_id}/members/me")
def get_my_member(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = members_service.get_my_member(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id
    )
    return success_response(result.model_dump(mode="json") if result else None)


@router.put("/workspaces/{workspace_id}/members/me/notifications")
def update_my_notification_settings(
    workspace_id: UUID,
    body: UpdateNotificationSettingsRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Set the viewer's mute flag and notification level for this workspace."""
    result = members_service.update_my_notification_settings(
        db=db,
        viewer_id=viewer.user_id,
        workspace_id=workspace_id,
        muted=body.muted,
        notification_level=body.notification_level,
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/workspaces/{workspace_id}/members/{user_id}")
def get_member(
    workspace_id: UUID,
    user_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = members_service.get_member(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id, user_id=user_id
    )
    return success_response(result.model_dump(mode="json") if result else None)


@router.patch("/workspaces/{workspace_id}/members/{user_id}")
def update_member_role(
    workspace_id: UUID,
    user_id: UUID,
    body: UpdateMemberRoleRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Change a member's role (admin only).

    Errors:
        E_MEMBER_NOT_FOUND (404): user_id is not a member of the workspace.
    """
    result = members_service.update_member_role(
        db=db,
        viewer_id=viewer.user_id,
        workspace_id=workspace_id,
        user_id=user_id,
        role=body.role,
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/workspaces/{workspace_id}/members/{user_id}", status_code=204)
def remove_member(
    workspace_id: UUID,
    user_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    members_service.remove_member(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id, user_id=user_id
    )
    return Response(status_code=204)
