"""Shared Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserSummaryOut(BaseModel):
    """Author / counterpart summary embedded in message and notification payloads."""

    id: UUID
    name: str | None = None
    image: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PageInfo(BaseModel):
    """Pagination information for list responses."""

    next_cursor: str | None = None
    is_done: bool = True
