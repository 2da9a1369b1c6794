"""Notification API routes.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from huddle.api.deps import get_db
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.schemas.conversation import MarkReadOut
from huddle.schemas.notification import MarkAllReadOut, UnreadCountOut
from huddle.services import notifications as notifications_service

router = APIRouter(tags=["notifications"])


@router.get("/workspaces/{workspace_id}/notifications")
def list_notifications(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    limit: int | None = Query(default=None, description="Max notifications (clamped to 1-200)"),
) -> dict:
    """List the viewer's notifications in a workspace, newest first."""
    result = notifications_service.list_by_workspace(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id, limit=limit
    )
    return {"data": [n.model_dump(mode="json") for n in result]}


@router.get("/workspaces/{workspace_id}/notifications/unread-count")
def unread_count(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    count = notifications_service.count_unread_by_workspace(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id
    )
    return success_response(UnreadCountOut(count=count).model_dump(mode="json"))


@router.post("/workspaces/{workspace_id}/notifications/read-all")
def mark_all_read(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Mark every unread notification of the viewer in this workspace as read."""
    count = notifications_service.mark_all_read(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id
    )
    return success_response(MarkAllReadOut(count=count).model_dump(mode="json"))


@router.post("/notifications/{notification_id}/read")
def mark_read(
    notification_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Mark one notification as read. Re-marking keeps the original read time.

    Errors:
        E_NOTIFICATION_NOT_FOUND (404): Notification does not exist.
        E_FORBIDDEN (403): Notification belongs to another user.
    """
    at = notifications_service.mark_read(
        db=db, viewer_id=viewer.user_id, notification_id=notification_id
    )
    return success_response(MarkReadOut(at=at).model_dump(mode="json"))
