"""Channel message, direct message and reaction Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from huddle.schemas.common import UserSummaryOut

MAX_MESSAGE_BODY_LENGTH = 50000
MAX_EMOJI_LENGTH = 64


# =============================================================================
# Response Schemas
# =============================================================================


class ReactionSummaryOut(BaseModel):
    """Aggregated reactions for one emoji, computed per viewer on every read."""

    emoji: str
    count: int
    reacted: bool


class MessageOut(BaseModel):
    """Response schema for a channel message."""

    id: UUID
    channel_id: UUID
    workspace_id: UUID
    user_id: UUID
    body: str | None = None
    image_id: str | None = None
    image_url: str | None = None
    reaction_summary: list[ReactionSummaryOut] = []
    created_at: datetime
    updated_at: datetime | None = None
    user: UserSummaryOut
    channel_name: str

    model_config = ConfigDict(from_attributes=True)


class DirectMessageOut(BaseModel):
    """Response schema for a direct message."""

    id: UUID
    conversation_id: UUID
    workspace_id: UUID
    user_id: UUID
    body: str | None = None
    image_id: str | None = None
    image_url: str | None = None
    reaction_summary: list[ReactionSummaryOut] = []
    created_at: datetime
    updated_at: datetime | None = None
    user: UserSummaryOut

    model_config = ConfigDict(from_attributes=True)


class CreatedOut(BaseModel):
    """Id of a newly created row."""

    id: UUID


# =============================================================================
# Request Schemas
# =============================================================================


class SendMessageRequest(BaseModel):
    """Request schema for sending a channel or direct message.

    body is rich-text HTML; the service trims it and rejects a send that
    carries neither text nor an image.
    """

    body: str | None = Field(default=None, max_length=MAX_MESSAGE_BODY_LENGTH)
    image_id: str | None = Field(default=None, max_length=256)


class UpdateMessageRequest(BaseModel):
    body: str = Field(..., max_length=MAX_MESSAGE_BODY_LENGTH)


class ToggleReactionRequest(BaseModel):
    emoji: str = Field(..., max_length=MAX_EMOJI_LENGTH)
