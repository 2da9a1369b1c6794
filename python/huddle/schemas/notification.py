"""Notification Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from huddle.schemas.common import UserSummaryOut

NOTIFICATION_TYPES = Literal["dm", "mention"]


class NotificationOut(BaseModel):
    """Response schema for a notification.

    target_member_id is the sender's membership id for DM notifications,
    so clients can open the conversation; None for mentions.
    """

    id: UUID
    workspace_id: UUID
    type: NOTIFICATION_TYPES
    from_user_id: UUID
    channel_id: UUID | None = None
    message_id: UUID | None = None
    conversation_id: UUID | None = None
    direct_message_id: UUID | None = None
    preview: str | None = None
    created_at: datetime
    read_at: datetime | None = None
    is_read: bool
    from_user: UserSummaryOut | None = None
    target_member_id: UUID | None = None

    model_config = ConfigDict(from_attributes=True)


class UnreadCountOut(BaseModel):
    count: int


class MarkAllReadOut(BaseModel):
    count: int
