"""FastAPI dependencies for route handlers.

Common dependencies like database sessions and the storage client.
"""

from fastapi import Request

from huddle.db.session import get_db, get_session_factory
from huddle.storage.client import StorageClientBase

__all__ = ["get_db", "get_session_factory", "get_storage"]


def get_storage(request: Request) -> StorageClientBase:
    """Get the shared storage client from app state (set in create_app)."""
    return request.app.state.storage_client
