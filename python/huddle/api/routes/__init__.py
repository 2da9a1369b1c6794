"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from huddle.api.routes.channels import router as channels_router
from huddle.api.routes.direct_messages import router as direct_messages_router
from huddle.api.routes.health import router as health_router
from huddle.api.routes.me import router as me_router
from huddle.api.routes.members import router as members_router
from huddle.api.routes.messages import router as messages_router
from huddle.api.routes.notifications import router as notifications_router
from huddle.api.routes.search import router as search_router
from huddle.api.routes.uploads import router as uploads_router
from huddle.api.routes.workspaces import router as workspaces_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(me_router, tags=["user"])
    api_router.include_router(workspaces_router)
    api_router.include_router(members_router)
    api_router.include_router(channels_router)
    api_router.include_router(messages_router)
    api_router.include_router(direct_messages_router)
    api_router.include_router(notifications_router)
    api_router.include_router(search_router)
    api_router.include_router(uploads_router)
    return api_router


__all__ = ["create_api_router"]
