"""User Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserOut(BaseModel):
    id: UUID
    name: str | None = None
    image: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UpdateMeRequest(BaseModel):
    """Request schema for PATCH /me. The name is trimmed by the service."""

    name: str = Field(..., max_length=80)
