"""Search Pydantic schemas.

Search returns two independent hit lists, newest first:
- channel_messages (with channel and author summaries)
- direct_messages (with the other participant of the conversation)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from huddle.schemas.common import UserSummaryOut


class ChannelRefOut(BaseModel):
    id: UUID
    name: str


class ChannelMessageHitOut(BaseModel):
    id: UUID
    channel_id: UUID
    created_at: datetime
    text: str
    channel: ChannelRefOut | None = None
    user: UserSummaryOut | None = None


class DirectMessageHitOut(BaseModel):
    id: UUID
    conversation_id: UUID
    created_at: datetime
    text: str
    other_member_id: UUID | None = None
    other_user: UserSummaryOut | None = None


class SearchResponse(BaseModel):
    channel_messages: list[ChannelMessageHitOut] = Field(default_factory=list)
    direct_messages: list[DirectMessageHitOut] = Field(default_factory=list)
