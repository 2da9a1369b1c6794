"""Direct conversation and direct message API routes.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from huddle.api.deps import get_db, get_storage
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.schemas.conversation import CreateConversationRequest, MarkReadOut
from huddle.schemas.message import (
    CreatedOut,
    SendMessageRequest,
    ToggleReactionRequest,
    UpdateMessageRequest,
)
from huddle.services import direct_messages as dm_service
from huddle.storage.client import StorageClientBase

router = APIRouter(tags=["direct-messages"])


# =============================================================================
# Conversations
# =============================================================================


@router.post("/workspaces/{workspace_id}/conversations")
def get_or_create_conversation(
    workspace_id: UUID,
    body: CreateConversationRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Find or open the conversation between the viewer and another member.

    Idempotent: both participants get the same conversation id.

    Errors:
        E_CANNOT_MESSAGE_SELF (400): other_user_id is the viewer.
        E_MEMBER_NOT_FOUND (404): The other user is not a workspace member.
        E_FORBIDDEN (403): Viewer is not a workspace member.
    """
    conversation_id = dm_service.get_or_create_conversation(
        db=db,
        viewer_id=viewer.user_id,
        workspace_id=workspace_id,
        other_user_id=body.other_user_id,
    )
    return success_response(CreatedOut(id=conversation_id).model_dump(mode="json"))


@router.get("/workspaces/{workspace_id}/conversations")
def list_conversations(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    """List the viewer's conversations, most recent activity first."""
    result = dm_service.list_conversations(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id, storage=storage
    )
    return {"data": [c.model_dump(mode="json") for c in result]}


@router.get("/conversations/{conversation_id}/read-state")
def get_read_state(
    conversation_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = dm_service.get_read_state(
        db=db, viewer_id=viewer.user_id, conversation_id=conversation_id
    )
    return success_response(result.model_dump(mode="json") if result else None)


@router.post("/conversations/{conversation_id}/read")
def mark_conversation_read(
    conversation_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Advance the viewer's read cursor to now. The cursor never moves backwards."""
    at = dm_service.mark_conversation_read(
        db=db, viewer_id=viewer.user_id, conversation_id=conversation_id
    )
    return success_response(MarkReadOut(at=at).model_dump(mode="json"))


# =============================================================================
# Direct messages
# =============================================================================


@router.get("/conversations/{conversation_id}/messages")
def list_direct_messages(
    conversation_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
) -> dict:
    result = dm_service.list_by_conversation(
        db=db, viewer_id=viewer.user_id, conversation_id=conversation_id, storage=storage
    )
    return {"data": [m.model_dump(mode="json") for m in result]}


@router.get("/conversations/{conversation_id}/messages/page")
def list_direct_messages_page(
    conversation_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[StorageClientBase, Depends(get_storage)],
    limit: int | None = Query(default=None, description="Page size (clamped to 1-100)"),
    cursor: str | None = Query(default=None, description="Cursor from a previous page"),
) -> dict:
    result, page = dm_service.list_by_conversation_paginated(
        db=db,
        viewer_id=viewer.user_id,
        conversation_id=conversation_id,
        storage=storage,
        limit=limit,
        cursor=cursor,
    )
    return {
        "data": [m.model_dump(mode="json") for m in result],
        "page": page.model_dump(mode="json"),
    }


@router.post("/conversations/{conversation_id}/messages", status_code=201)
def send_direct_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Send a direct message; the sender's read cursor advances to the send time.

    Errors:
        E_EMPTY_MESSAGE (400): Neither body nor image was provided.
        E_CONVERSATION_NOT_FOUND (404): Conversation does not exist.
        E_FORBIDDEN (403): Viewer is not a participant.
    """
    message_id = dm_service.send_direct_message(
        db=db,
        viewer_id=viewer.user_id,
        conversation_id=conversation_id,
        body=body.body,
        image_id=body.image_id,
    )
    return success_response(CreatedOut(id=message_id).model_dump(mode="json"))


@router.patch("/direct-messages/{message_id}", status_code=204)
def update_direct_message(
    message_id: UUID,
    body: UpdateMessageRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    dm_service.update_direct_message(
        db=db, viewer_id=viewer.user_id, message_id=message_id, body=body.body
    )
    return Response(status_code=204)


@router.delete("/direct-messages/{message_id}", status_code=204)
def delete_direct_message(
    message_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    dm_service.delete_direct_message(db=db, viewer_id=viewer.user_id, message_id=message_id)
    return Response(status_code=204)


@router.post("/direct-messages/{message_id}/reactions")
def toggle_reaction(
    message_id: UUID,
    body: ToggleReactionRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = dm_service.toggle_direct_message_reaction(
        db=db, viewer_id=viewer.user_id, message_id=message_id, emoji=body.emoji
    )
    return {"data": [r.model_dump(mode="json") for r in result]}
