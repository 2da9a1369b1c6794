"""Workspace, member and channel Pydantic schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from huddle.schemas.common import UserSummaryOut

# Must match DB constraints
MEMBER_ROLES = Literal["admin", "member"]
NOTIFICATION_LEVELS = Literal["all", "mentions", "none"]


# =============================================================================
# Response Schemas
# =============================================================================


class WorkspaceOut(BaseModel):
    """Response schema for a workspace.

    join_code is only populated for admins; other members see None.
    """

    id: UUID
    name: str
    owner_user_id: UUID
    join_code: str | None = None
    created_at: datetime
    role: MEMBER_ROLES | None = None

    model_config = ConfigDict(from_attributes=True)


class JoinCodeOut(BaseModel):
    join_code: str


class MemberOut(BaseModel):
    """A membership row with its user summary."""

    id: UUID
    workspace_id: UUID
    user_id: UUID
    role: MEMBER_ROLES
    muted: bool
    notification_level: NOTIFICATION_LEVELS
    created_at: datetime
    user: UserSummaryOut

    model_config = ConfigDict(from_attributes=True)


class ChannelOut(BaseModel):
    id: UUID
    workspace_id: UUID
    name: str
    created_by: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Request Schemas
# =============================================================================


class CreateWorkspaceRequest(BaseModel):
    name: str = Field(..., max_length=200)


class UpdateWorkspaceRequest(BaseModel):
    name: str = Field(..., max_length=200)


class JoinWorkspaceRequest(BaseModel):
    join_code: str = Field(..., max_length=32)


class UpdateMemberRoleRequest(BaseModel):
    role: MEMBER_ROLES


class UpdateNotificationSettingsRequest(BaseModel):
    """Request schema for PUT /workspaces/{id}/members/me/notifications."""

    muted: bool
    notification_level: NOTIFICATION_LEVELS


class CreateChannelRequest(BaseModel):
    name: str = Field(..., max_length=200)


class UpdateChannelRequest(BaseModel):
    name: str = Field(..., max_length=200)
