"""Mention extraction and plain-text previews for rich-text message bodies.

Mention wire format (version 1), emitted by the editor:

    <span data-mention-user-id="<user uuid>" data-mention-member-id="<member uuid>">@Name</span>

Only the data-mention-user-id attribute is significant here. Free-text
"@name" strings are not mentions.

This module uses lxml for HTML parsing; previews use the same tag-stripping
rule as search so both agree on what a message "says".
"""

import re
from uuid import UUID

from lxml.etree import ParserError
from lxml.html import document_fromstring

MENTION_USER_ATTR = "data-mention-user-id"
MESSAGE_PREVIEW_CHARS = 140
IMAGE_ONLY_PREVIEW = "Sent an image"

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_html_to_text(html: str | None) -> str:
    """Replace every tag with a space, collapse whitespace and trim."""
    if not html:
        return ""
    return _WHITESPACE_RE.sub(" ", _TAG_RE.sub(" ", html)).strip()


def build_preview(body: str | None) -> str:
    """Plain-text preview of a message body, at most 140 characters."""
    return strip_html_to_text(body)[:MESSAGE_PREVIEW_CHARS]


def build_dm_preview(body: str | None, has_image: bool) -> str | None:
    """Preview for a DM notification: text, else "Sent an image", else None."""
    preview = build_preview(body)
    if preview:
        return preview
    if has_image:
        return IMAGE_ONLY_PREVIEW
    return None


def extract_mention_user_ids(body: str | None) -> list[UUID]:
    """Collect the distinct user ids referenced by mention spans in body.

    Returns ids in order of first appearance. Attribute values that are not
    UUIDs are ignored, as is markup lxml cannot parse.
    """
    if not body or MENTION_USER_ATTR not in body:
        return []

    try:
        doc = document_fromstring(body)
    except (ParserError, ValueError):
        return []

    seen: set[UUID] = set()
    user_ids: list[UUID] = []
    for raw in doc.xpath(f"//@{MENTION_USER_ATTR}"):
        try:
            user_id = UUID(str(raw).strip())
        except ValueError:
            continue
        if user_id not in seen:
            seen.add(user_id)
            user_ids.append(user_id)
    return user_ids
