"""Workspace API routes.

Routes are transport-only: each calls exactly one service function.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from huddle.api.deps import get_db
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.schemas.workspace import (
    CreateWorkspaceRequest,
    JoinWorkspaceRequest,
    UpdateWorkspaceRequest,
)
from huddle.services import workspaces as workspaces_service

router = APIRouter(tags=["workspaces"])


@router.get("/workspaces")
def list_workspaces(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    result = workspaces_service.list_workspaces(db=db, viewer_id=viewer.user_id)
    return {"data": [w.model_dump(mode="json") for w in result]}


@router.post("/workspaces", status_code=201)
def create_workspace(
    body: CreateWorkspaceRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create a workspace. The creator becomes its admin.

    Errors:
        E_NAME_INVALID (400): Name is empty or longer than 80 characters.
    """
    result = workspaces_service.create_workspace(db=db, viewer_id=viewer.user_id, name=body.name)
    return success_response(result.model_dump(mode="json"))


@router.post("/workspaces/join")
def join_workspace(
    body: JoinWorkspaceRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Join a workspace by its six-digit join code.

    Errors:
        E_INVALID_JOIN_CODE (400): No workspace has this code.
    """
    result = workspaces_service.join_workspace(
        db=db, viewer_id=viewer.user_id, join_code=body.join_code
    )
    return success_response(result.model_dump(mode="json"))


@router.get("/workspaces/{workspace_id}")
def get_workspace(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get a workspace. Null for non-members."""
    result = workspaces_service.get_workspace(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id
    )
    return success_response(result.model_dump(mode="json") if result else None)


@router.patch("/workspaces/{workspace_id}")
def update_workspace(
    workspace_id: UUID,
    body: UpdateWorkspaceRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Rename a workspace (admin only)."""
    result = workspaces_service.update_workspace_name(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id, name=body.name
    )
    return success_response(result.model_dump(mode="json"))


@router.delete("/workspaces/{workspace_id}", status_code=204)
def delete_workspace(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a workspace and all of its contents (admin only)."""
    workspaces_service.delete_workspace(db=db, viewer_id=viewer.user_id, workspace_id=workspace_id)
    return Response(status_code=204)


@router.post("/workspaces/{workspace_id}/join-code")
def regenerate_join_code(
    workspace_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Issue a new join code (admin only)."""
    result = workspaces_service.regenerate_join_code(
        db=db, viewer_id=viewer.user_id, workspace_id=workspace_id
    )
    return success_response(result.model_dump(mode="json"))
