"""Initial schema - users, workspaces, members, channels, messages, DMs, notifications

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        sa.UUID(),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def upgrade() -> None:
    # Enable pgcrypto extension for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ==========================================================================
    # users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # workspaces table
    # ==========================================================================
    op.create_table(
        "workspaces",
        _uuid_pk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("owner_user_id", sa.UUID(), nullable=False),
        sa.Column("join_code", sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("length(name) BETWEEN 1 AND 80", name="ck_workspaces_name_length"),
    )
    op.create_index("ix_workspaces_join_code", "workspaces", ["join_code"])

    # ==========================================================================
    # members table
    # ==========================================================================
    op.create_table(
        "members",
        _uuid_pk(),
        sa.Column("workspace_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False),
        sa.Column("muted", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("notification_level", sa.Text(), server_default="all", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_members_workspace_user"),
        sa.CheckConstraint("role IN ('admin', 'member')", name="ck_members_role"),
        sa.CheckConstraint(
            "notification_level IN ('all', 'mentions', 'none')",
            name="ck_members_notification_level",
        ),
    )
    op.create_index("ix_members_user_id", "members", ["user_id"])

    # ==========================================================================
    # channels table
    # ==========================================================================
    op.create_table(
        "channels",
        _uuid_pk(),
        sa.Column("workspace_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_by", sa.UUID(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("length(name) BETWEEN 3 AND 80", name="ck_channels_name_length"),
    )
    op.create_index("ix_channels_workspace_id", "channels", ["workspace_id"])

    # ==========================================================================
    # messages table
    # ==========================================================================
    op.create_table(
        "messages",
        _uuid_pk(),
        sa.Column("channel_id", sa.UUID(), nullable=False),
        sa.Column("workspace_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("image_id", sa.Text(), nullable=True),
        sa.Column("reactions", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["channel_id"], ["channels.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "body IS NOT NULL OR image_id IS NOT NULL", name="ck_messages_has_content"
        ),
    )
    op.create_index("ix_messages_channel_created", "messages", ["channel_id", "created_at"])
    op.create_index("ix_messages_workspace_created", "messages", ["workspace_id", "created_at"])

    # ==========================================================================
    # direct_conversations table
    # ==========================================================================
    op.create_table(
        "direct_conversations",
        _uuid_pk(),
        sa.Column("workspace_id", sa.UUID(), nullable=False),
        sa.Column("user_id_a", sa.UUID(), nullable=False),
        sa.Column("user_id_b", sa.UUID(), nullable=False),
        _created_at(),
        sa.Column("last_read_at_a", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_read_at_b", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id_a"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id_b"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "workspace_id", "user_id_a", "user_id_b", name="uq_direct_conversations_pair"
        ),
        # Canonical pair order: one row per unordered pair
        sa.CheckConstraint("user_id_a < user_id_b", name="ck_direct_conversations_pair_order"),
    )
    op.create_index(
        "ix_direct_conversations_user_a", "direct_conversations", ["workspace_id", "user_id_a"]
    )
    op.create_index(
        "ix_direct_conversations_user_b", "direct_conversations", ["workspace_id", "user_id_b"]
    )

    # ==========================================================================
    # direct_messages table
    # ==========================================================================
    op.create_table(
        "direct_messages",
        _uuid_pk(),
        sa.Column("conversation_id", sa.UUID(), nullable=False),
        sa.Column("workspace_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("image_id", sa.Text(), nullable=True),
        sa.Column("reactions", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["direct_conversations.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "body IS NOT NULL OR image_id IS NOT NULL", name="ck_direct_messages_has_content"
        ),
    )
    op.create_index(
        "ix_direct_messages_conversation_created",
        "direct_messages",
        ["conversation_id", "created_at"],
    )
    op.create_index(
        "ix_direct_messages_workspace_created", "direct_messages", ["workspace_id", "created_at"]
    )

    # ==========================================================================
    # notifications table
    # ==========================================================================
    op.create_table(
        "notifications",
        _uuid_pk(),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("workspace_id", sa.UUID(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("from_user_id", sa.UUID(), nullable=False),
        sa.Column("channel_id", sa.UUID(), nullable=True),
        sa.Column("message_id", sa.UUID(), nullable=True),
        sa.Column("conversation_id", sa.UUID(), nullable=True),
        sa.Column("direct_message_id", sa.UUID(), nullable=True),
        sa.Column("preview", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("read_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["from_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["channel_id"], ["channels.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["message_id"], ["messages.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["conversation_id"], ["direct_conversations.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["direct_message_id"], ["direct_messages.id"], ondelete="CASCADE"
        ),
        sa.CheckConstraint("type IN ('dm', 'mention')", name="ck_notifications_type"),
        sa.CheckConstraint(
            "(type = 'mention' AND channel_id IS NOT NULL AND message_id IS NOT NULL)"
            " OR (type = 'dm' AND conversation_id IS NOT NULL"
            " AND direct_message_id IS NOT NULL)",
            name="ck_notifications_target",
        ),
        sa.CheckConstraint(
            "preview IS NULL OR length(preview) <= 140", name="ck_notifications_preview_length"
        ),
    )
    op.create_index(
        "ix_notifications_user_workspace_read",
        "notifications",
        ["user_id", "workspace_id", "read_at"],
    )
    op.create_index(
        "ix_notifications_user_workspace_created",
        "notifications",
        ["user_id", "workspace_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("direct_messages")
    op.drop_table("direct_conversations")
    op.drop_table("messages")
    op.drop_table("channels")
    op.drop_table("members")
    op.drop_table("workspaces")
    op.drop_table("users")
