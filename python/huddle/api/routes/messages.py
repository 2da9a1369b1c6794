"""Channel message API routes.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from huddle.api.deps import get_db, get_storage
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.schemas.message import (
    CreatedOut,
    SendMessageRequest,
    ToggleReactionRequest,
    UpdateMessageRequest,
)
from huddle.services import messages as messages_service
from huddle.storage.client import StorageClientBase

router = APIRouter(tags=["messages"])


@router.get("/channels/{channel_id}/messages")
def list_channel_messages(
    channel_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    """List all messages in a channel, oldest first. Empty for non-members."""
    result = messages_service.list_by_channel(
        db=db, viewer_id=viewer.user_id, channel_id=channel_id, storage=storage
    )
    return {"data": [m.model_dump(mode="json") for m in result]}


@router.get("/channels/{channel_id}/messages/page")
def list_channel_messages_page(
    channel_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    limit: int | None = Query(default=None, description="Page size (clamped to 1-100)"),
    cursor: str | None = Query(default=None, description="Cursor from a previous page"),
) -> dict:
    """List one page of channel messages, newest first.

    Errors:
        E_INVALID_CURSOR (400): Cursor could not be decoded.
    """
    result, page = messages_service.list_by_channel_paginated(
        db=db,
        viewer_id=viewer.user_id,
        channel_id=channel_id,
        storage=storage,
        limit=limit,
        cursor=cursor,
    )
    return {
        "data": [m.model_dump(mode="json") for m in result],
        "page": page.model_dump(mode="json"),
    }


@router.post("/channels/{channel_id}/messages", status_code=201)
def send_message(
    channel_id: UUID,
    body: SendMessageRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Post a message to a channel and notify mentioned members.

    Errors:
        E_EMPTY_MESSAGE (400): Neither body nor image was provided.
        E_CHANNEL_NOT_FOUND (404): Channel does not exist.
        E_FORBIDDEN (403): Viewer is not a member of the channel's workspace.
    """
    message_id = messages_service.send_message(
        db=db,
        viewer_id=viewer.user_id,
        channel_id=channel_id,
        body=body.body,
        image_id=body.image_id,
    )
    return success_response(CreatedOut(id=message_id).model_dump(mode="json"))


@router.patch("/messages/{message_id}", status_code=204)
def update_message(
    message_id: UUID,
    body: UpdateMessageRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Edit a message body. Only the author may edit."""
    messages_service.update_message(
        db=db, viewer_id=viewer.user_id, message_id=message_id, body=body.body
    )
    return Response(status_code=204)


@router.delete("/messages/{message_id}", status_code=204)
def delete_message(
    message_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a message. The author or a workspace admin may delete."""
    messages_service.delete_message(db=db, viewer_id=viewer.user_id, message_id=message_id)
    return Response(status_code=204)


@router.post("/messages/{message_id}/reactions")
def toggle_reaction(
    message_id: UUID,
    body: ToggleReactionRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Toggle the viewer's reaction and return the new summary."""
    result = messages_service.toggle_message_reaction(
        db=db, viewer_id=viewer.user_id, message_id=message_id, emoji=body.emoji
    )
    return {"data": [r.model_dump(mode="json") for r in result]}
