"""Search API routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from huddle.api.deps import get_db
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.services import search as search_service

router = APIRouter(tags=["search"])


@router.get("/workspaces/{workspace_id}/search")
def search(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    q: str = Query(default="", max_length=200, description="Substring to match"),
    limit: int | None = Query(default=None, description="Hits per kind (clamped to 1-20)"),
) -> dict:
    """Search recent channel messages and the viewer's direct messages.

    A blank query returns empty result lists.

    Errors:
        E_FORBIDDEN (403): Viewer is not a workspace member.
    """
    result = search_service.search_messages_and_dms(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id, q=q, limit=limit
    )
    return success_response(result.model_dump(mode="json"))
