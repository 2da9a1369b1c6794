"""Direct conversation Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from huddle.schemas.common import UserSummaryOut


class ConversationOut(BaseModel):
    """Response schema for a direct conversation.

    The participant pair is canonical: str(user_id_a) < str(user_id_b).
    """

    id: UUID
    workspace_id: UUID
    user_id_a: UUID
    user_id_b: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LastMessageOut(BaseModel):
    id: UUID
    created_at: datetime
    preview: str
    image_url: str | None = None


class ConversationSummaryOut(BaseModel):
    """One row of the viewer's conversation list."""

    conversation_id: UUID
    other_member_id: UUID
    other_user: UserSummaryOut
    last_message: LastMessageOut | None = None
    last_activity_at: datetime
    unread: bool = False


class ReadStateOut(BaseModel):
    """Both read cursors of a conversation, from the viewer's perspective."""

    my_last_read_at: datetime | None = None
    other_last_read_at: datetime | None = None


class MarkReadOut(BaseModel):
    at: datetime


class CreateConversationRequest(BaseModel):
    other_user_id: UUID
