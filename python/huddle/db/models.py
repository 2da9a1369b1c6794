"""SQLAlchemy ORM models for Huddle.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Enum-like columns are Text with CHECK constraints; the Python enums below
carry the allowed values. Column types are portable (PostgreSQL in
production, SQLite in tests).
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamp.

    Values are normalized to UTC on the way in; naive values read back
    from backends without timezone support are tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================


class MemberRole(str, PyEnum):
    """Roles a user can have in a workspace."""

    admin = "admin"
    member = "member"


class NotificationLevel(str, PyEnum):
    """Per-member notification preference.

    Levels:
        all: Notify on direct messages and mentions
        mentions: Notify on direct messages and mentions (channel chatter excluded)
        none: Never notify
    """

    all = "all"
    mentions = "mentions"
    none = "none"


class NotificationType(str, PyEnum):
    """Kinds of notification records."""

    dm = "dm"
    mention = "mention"


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """User account model.

    The user ID matches the identity provider's subject (sub claim).
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)


class Workspace(Base):
    """Workspace model - the tenant boundary for channels, DMs and members."""

    __tablename__ = "workspaces"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    owner_user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    join_code: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("length(name) BETWEEN 1 AND 80", name="ck_workspaces_name_length"),
        Index("ix_workspaces_join_code", "join_code"),
    )


class Member(Base):
    """Workspace membership - a user's role and notification preferences."""

    __tablename__ = "members"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(Text, nullable=False)
    muted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notification_level: Mapped[str] = mapped_column(
        Text, default=NotificationLevel.all.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_members_workspace_user"),
        CheckConstraint("role IN ('admin', 'member')", name="ck_members_role"),
        CheckConstraint(
            "notification_level IN ('all', 'mentions', 'none')",
            name="ck_members_notification_level",
        ),
        Index("ix_members_user_id", "user_id"),
    )


class Channel(Base):
    """Channel within a workspace."""

    __tablename__ = "channels"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("length(name) BETWEEN 3 AND 80", name="ck_channels_name_length"),
        Index("ix_channels_workspace_id", "workspace_id"),
    )


class Message(Base):
    """Channel message.

    reactions is an ordered JSON list of {"emoji": str, "user_id": str};
    uniqueness of (emoji, user_id) is enforced by the toggle operation.
    """

    __tablename__ = "messages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    channel_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    reactions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "body IS NOT NULL OR image_id IS NOT NULL", name="ck_messages_has_content"
        ),
        Index("ix_messages_channel_created", "channel_id", "created_at"),
        Index("ix_messages_workspace_created", "workspace_id", "created_at"),
    )


class DirectConversation(Base):
    """One-to-one conversation between two workspace members.

    The participant pair is stored in canonical order (user_id_a < user_id_b
    by string representation), so there is exactly one row per unordered pair.
    """

    __tablename__ = "direct_conversations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id_a: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    user_id_b: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    last_read_at_a: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_read_at_b: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "user_id_a", "user_id_b", name="uq_direct_conversations_pair"
        ),
        CheckConstraint("user_id_a < user_id_b", name="ck_direct_conversations_pair_order"),
        Index("ix_direct_conversations_user_a", "workspace_id", "user_id_a"),
        Index("ix_direct_conversations_user_b", "workspace_id", "user_id_b"),
    )


class DirectMessage(Base):
    """Message within a direct conversation."""

    __tablename__ = "direct_messages"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    conversation_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("direct_conversations.id", ondelete="CASCADE"), nullable=False
    )
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    reactions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "body IS NOT NULL OR image_id IS NOT NULL", name="ck_direct_messages_has_content"
        ),
        Index("ix_direct_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_direct_messages_workspace_created", "workspace_id", "created_at"),
    )


class Notification(Base):
    """Per-recipient notification record.

    Immutable except read_at, which moves once from NULL to a timestamp.
    """

    __tablename__ = "notifications"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    workspace_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)
    from_user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    channel_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("channels.id", ondelete="CASCADE"), nullable=True
    )
    message_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), nullable=True
    )
    conversation_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("direct_conversations.id", ondelete="CASCADE"), nullable=True
    )
    direct_message_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("direct_messages.id", ondelete="CASCADE"), nullable=True
    )
    preview: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("type IN ('dm', 'mention')", name="ck_notifications_type"),
        CheckConstraint(
            "(type = 'mention' AND channel_id IS NOT NULL AND message_id IS NOT NULL)"
            " OR (type = 'dm' AND conversation_id IS NOT NULL"
            " AND direct_message_id IS NOT NULL)",
            name="ck_notifications_target",
        ),
        CheckConstraint(
            "preview IS NULL OR length(preview) <= 140", name="ck_notifications_preview_length"
        ),
        Index("ix_notifications_user_workspace_read", "user_id", "workspace_id", "read_at"),
        Index(
            "ix_notifications_user_workspace_created", "user_id", "workspace_id", "created_at"
        ),
    )
