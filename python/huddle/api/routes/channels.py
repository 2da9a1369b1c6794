"""Channel API routes.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from huddle.api.deps import get_db
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.schemas.workspace import CreateChannelRequest, UpdateChannelRequest
from huddle.services import channels as channels_service

router = APIRouter(tags=["channels"])


@router.get("/workspaces/{workspace_id}/channels")
def list_channels(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = channels_service.list_channels(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id
    )
    return {"data": [c.model_dump(mode="json") for c in result]}


@router.post("/workspaces/{workspace_id}/channels", status_code=201)
def create_channel(
    workspace_id: UUID,
    body: CreateChannelRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create a channel. Any member may create one.

    Errors:
        E_NAME_INVALID (400): Trimmed name shorter than 3 or longer than 80 characters.
    """
    result = channels_service.create_channel(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id, name=body.name
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/channels/{channel_id}")
def get_channel(
    channel_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = channels_service.get_channel(db=db, viewer_id=viewer.user_id, channel_id=channel_id)
    return success_response(result.model_dump(mode="json") if result else None)


@router.patch("/channels/{channel_id}")
def rename_channel(
    channel_id: UUID,
    body: UpdateChannelRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = channels_service.rename_channel(
        db=db, viewer_id=viewer.user_id, channel_id=channel_id, name=body.name
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/channels/{channel_id}", status_code=204)
def delete_channel(
    channel_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    channels_service.delete_channel(db=db, viewer_id=viewer.user_id, channel_id=channel_id)
    return Response(status_code=204)
