"""Message search service.

A bounded, recency-windowed substring scan rather than a full-text index:
for each message kind, the most recent `scan` rows in the workspace are
loaded, stripped of markup, and tested for a case-insensitive substring
match. The first `limit` hits are returned in recency order. Matches older
than the scan window are not found.

Direct messages are only scanned in conversations the viewer takes part in.

Raw queries are never logged; only a hash.
"""

import hashlib
import time
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from huddle.auth.permissions import other_participant, require_member
from huddle.db.models import Channel, DirectConversation, DirectMessage, Member, Message
from huddle.logging import get_logger
from huddle.schemas.search import (
    ChannelMessageHitOut,
    ChannelRefOut,
    DirectMessageHitOut,
    SearchResponse,
)
from huddle.services.mentions import strip_html_to_text
from huddle.services.users import load_user_summaries

logger = get_logger(__name__)

DEFAULT_LIMIT = 8
MAX_LIMIT = 20
MIN_SCAN = 50
MAX_SCAN = 600
SCAN_PER_RESULT = 60


def hash_query(q: str) -> str:
    """Hash a normalized query for logging (privacy-safe)."""
    return hashlib.sha256(q.strip().lower().encode("utf-8")).hexdigest()[:16]


def clamp_search_limit(limit: int | None) -> int:
    if limit is None:
        limit = DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, limit))


def scan_window(limit: int) -> int:
    """Number of recent rows scanned per message kind."""
    return max(MIN_SCAN, min(MAX_SCAN, limit * SCAN_PER_RESULT))


def _matches(body: str | None, needle: str) -> bool:
    return needle in strip_html_to_text(body).lower()


def search_messages_and_dms(
    db: Session,
    viewer_id: UUID | None,
    workspace_id: UUID,
    q: str,
    limit: int | None = None,
) -> SearchResponse:
    """Search recent channel and direct messages in a workspace.

    Raises:
        UnauthenticatedError: If viewer_id is None.
        ForbiddenError: If the viewer is not a member of the workspace.
    """
    require_member(db, viewer_id, workspace_id)

    needle = (q or "").strip().lower()
    if not needle:
        return SearchResponse()

    start = time.monotonic()
    limit = clamp_search_limit(limit)
    scan = scan_window(limit)

    # Channel messages
    recent_messages = db.scalars(
        select(Message)
        .where(Message.workspace_id == workspace_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(scan)
    ).all()
    channel_hits = [m for m in recent_messages if _matches(m.body, needle)][:limit]

    channel_ids = {m.channel_id for m in channel_hits}
    channels = {}
    if channel_ids:
        channels = {
            c.id: c for c in db.scalars(select(Channel).where(Channel.id.in_(channel_ids))).all()
        }

    # Direct messages, restricted to the viewer's conversations
    recent_direct = db.execute(
        select(DirectMessage, DirectConversation)
        .join(DirectConversation, DirectConversation.id == DirectMessage.conversation_id)
        .where(
            DirectMessage.workspace_id == workspace_id,
            or_(
                DirectConversation.user_id_a == viewer_id,
                DirectConversation.user_id_b == viewer_id,
            ),
        )
        .order_by(DirectMessage.created_at.desc(), DirectMessage.id.desc())
        .limit(scan)
    ).all()
    direct_hits = [(dm, conv) for dm, conv in recent_direct if _matches(dm.body, needle)][:limit]

    other_ids = {other_participant(conv, viewer_id) for _, conv in direct_hits}
    other_member_ids = {}
    if other_ids:
        other_member_ids = dict(
            db.execute(
                select(Member.user_id, Member.id).where(
                    Member.workspace_id == workspace_id, Member.user_id.in_(other_ids)
                )
            ).all()
        )

    users = load_user_summaries(db, {m.user_id for m in channel_hits} | other_ids)

    channel_messages = []
    for m in channel_hits:
        channel = channels.get(m.channel_id)
        channel_messages.append(
            ChannelMessageHitOut(
                id=m.id,
                channel_id=m.channel_id,
                created_at=m.created_at,
                text=strip_html_to_text(m.body),
                channel=ChannelRefOut(id=channel.id, name=channel.name) if channel else None,
                user=users.get(m.user_id),
            )
        )

    direct_messages = []
    for dm, conv in direct_hits:
        other_id = other_participant(conv, viewer_id)
        direct_messages.append(
            DirectMessageHitOut(
                id=dm.id,
                conversation_id=dm.conversation_id,
                created_at=dm.created_at,
                text=strip_html_to_text(dm.body),
                other_member_id=other_member_ids.get(other_id),
                other_user=users.get(other_id),
            )
        )

    logger.info(
        "search_executed",
        query_hash=hash_query(needle),
        workspace_id=str(workspace_id),
        limit=limit,
        scan=scan,
        channel_hits=len(channel_messages),
        direct_hits=len(direct_messages),
        latency_ms=round((time.monotonic() - start) * 1000, 2),
    )
    return SearchResponse(channel_messages=channel_messages, direct_messages=direct_messages)
