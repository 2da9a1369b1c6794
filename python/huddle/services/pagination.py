"""Cursor pagination helpers for message listings.

Pages are ordered newest first by (created_at DESC, id DESC). A cursor is
the (created_at, id) key of the last row on the previous page.

Cursor payload: {"created_at": "<iso>", "id": "<uuid>"}
Encoding: base64url without padding
"""

import base64
import binascii
import json
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, and_, or_

from huddle.errors import ApiErrorCode, InvalidRequestError

DEFAULT_LIMIT = 50
MIN_LIMIT = 1
MAX_LIMIT = 100


def clamp_limit(limit: int | None, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    """Clamp limit to [MIN_LIMIT, maximum], using default when None."""
    if limit is None:
        limit = default
    return min(max(limit, MIN_LIMIT), maximum)


def encode_cursor(created_at: datetime, id: UUID) -> str:
    payload = {"created_at": created_at.isoformat(), "id": str(id)}
    json_bytes = json.dumps(payload).encode("utf-8")
    return base64.urlsafe_b64encode(json_bytes).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Decode a message cursor.

    Raises:
        InvalidRequestError(E_INVALID_CURSOR): If the cursor is malformed.
    """
    try:
        padding = 4 - len(cursor) % 4
        if padding != 4:
            cursor += "=" * padding

        payload = json.loads(base64.urlsafe_b64decode(cursor).decode("utf-8"))
        created_at = datetime.fromisoformat(payload["created_at"])
        id = UUID(payload["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        raise InvalidRequestError(ApiErrorCode.E_INVALID_CURSOR, "Invalid cursor") from None
    if created_at.tzinfo is None:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_CURSOR, "Invalid cursor")
    return created_at, id


def apply_desc_cursor(stmt: Select, model, cursor: str | None) -> Select:
    """Order stmt newest first and, given a cursor, keep only rows strictly after it."""
    if cursor is not None:
        created_at, id = decode_cursor(cursor)
        stmt = stmt.where(
            or_(
                model.created_at < created_at,
                and_(model.created_at == created_at, model.id < id),
            )
        )
    return stmt.order_by(model.created_at.desc(), model.id.desc())


def split_page(rows: list, limit: int) -> tuple[list, str | None]:
    """Split a limit+1 fetch into (page, next_cursor)."""
    if len(rows) <= limit:
        return rows, None
    page = rows[:limit]
    last = page[-1]
    return page, encode_cursor(last.created_at, last.id)
