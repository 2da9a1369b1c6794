"""Database module for Huddle.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from huddle.db.engine import create_db_engine, get_engine
from huddle.db.models import (
    Base,
    Channel,
    DirectConversation,
    DirectMessage,
    Member,
    MemberRole,
    Message,
    Notification,
    NotificationLevel,
    NotificationType,
    User,
    Workspace,
)
from huddle.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "MemberRole",
    "NotificationLevel",
    "NotificationType",
    # Models
    "User",
    "Workspace",
    "Member",
    "Channel",
    "Message",
    "DirectConversation",
    "DirectMessage",
    "Notification",
]
