"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from huddle.schemas.common import PageInfo, UserSummaryOut
from huddle.schemas.conversation import (
    ConversationOut,
    ConversationSummaryOut,
    CreateConversationRequest,
    LastMessageOut,
    MarkReadOut,
    ReadStateOut,
)
from huddle.schemas.message import (
    CreatedOut,
    DirectMessageOut,
    MessageOut,
    ReactionSummaryOut,
    SendMessageRequest,
    ToggleReactionRequest,
    UpdateMessageRequest,
)
from huddle.schemas.notification import MarkAllReadOut, NotificationOut, UnreadCountOut
from huddle.schemas.search import (
    ChannelMessageHitOut,
    ChannelRefOut,
    DirectMessageHitOut,
    SearchResponse,
)
from huddle.schemas.upload import ImageUploadOut, ImageUploadRequest
from huddle.schemas.user import UpdateMeRequest, UserOut
from huddle.schemas.workspace import (
    ChannelOut,
    CreateChannelRequest,
    CreateWorkspaceRequest,
    JoinCodeOut,
    JoinWorkspaceRequest,
    MemberOut,
    UpdateChannelRequest,
    UpdateMemberRoleRequest,
    UpdateNotificationSettingsRequest,
    UpdateWorkspaceRequest,
    WorkspaceOut,
)

__all__ = [
    # Common
    "PageInfo",
    "UserSummaryOut",
    # Users
    "UserOut",
    "UpdateMeRequest",
    # Workspaces, members, channels
    "WorkspaceOut",
    "JoinCodeOut",
    "MemberOut",
    "ChannelOut",
    "CreateWorkspaceRequest",
    "UpdateWorkspaceRequest",
    "JoinWorkspaceRequest",
    "UpdateMemberRoleRequest",
    "UpdateNotificationSettingsRequest",
    "CreateChannelRequest",
    "UpdateChannelRequest",
    # Messages
    "MessageOut",
    "DirectMessageOut",
    "ReactionSummaryOut",
    "CreatedOut",
    "SendMessageRequest",
    "UpdateMessageRequest",
    "ToggleReactionRequest",
    # Conversations
    "ConversationOut",
    "ConversationSummaryOut",
    "LastMessageOut",
    "ReadStateOut",
    "MarkReadOut",
    "CreateConversationRequest",
    # Notifications
    "NotificationOut",
    "UnreadCountOut",
    "MarkAllReadOut",
    # Search
    "SearchResponse",
    "ChannelMessageHitOut",
    "DirectMessageHitOut",
    "ChannelRefOut",
    # Uploads
    "ImageUploadRequest",
    "ImageUploadOut",
]
