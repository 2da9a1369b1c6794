"""Current user endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from huddle.api.deps import get_db
from huddle.auth.middleware import Viewer, get_viewer
from huddle.responses import success_response
from huddle.schemas.user import UpdateMeRequest
from huddle.services import users as users_service

router = APIRouter()


@router.get("/me")
def get_me(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get the authenticated user's profile (null if the users row is missing)."""
    result = users_service.get_me(db=db, viewer_id=viewer.user_id)
    return success_response(result.model_dump(mode="json") if result else None)


@router.patch("/me")
def update_me(
    body: UpdateMeRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Update the viewer's display name.

    Errors:
        E_NAME_INVALID (400): Name is empty after trimming.
    """
    result = users_service.update_my_name(db=db, viewer_id=viewer.user_id, name=body.name)
    return success_response(result.model_dump(mode="json"))
