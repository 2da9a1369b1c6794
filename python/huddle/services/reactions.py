"""Reaction list operations.

A message's reactions are stored as an ordered list of
{"emoji": str, "user_id": str} entries. Uniqueness of (emoji, user_id)
is maintained by toggle_reaction; the list itself has no constraint.

Both functions are pure: they never mutate their input.
"""

from typing import Any
from uuid import UUID

from huddle.schemas.message import ReactionSummaryOut


def _is_well_formed(entry: Any) -> bool:
    return isinstance(entry, dict) and bool(entry.get("emoji")) and bool(entry.get("user_id"))


def toggle_reaction(reactions: list[dict] | None, emoji: str, user_id: UUID) -> list[dict]:
    """Return the reaction list with (emoji, user_id) toggled.

    Malformed entries (missing emoji or user_id) are dropped. If the pair is
    present its first occurrence is removed, otherwise it is appended.
    Applying the same toggle twice restores the original set of pairs.
    """
    user_key = str(user_id)
    cleaned = [dict(entry) for entry in (reactions or []) if _is_well_formed(entry)]

    for idx, entry in enumerate(cleaned):
        if entry["emoji"] == emoji and str(entry["user_id"]) == user_key:
            return cleaned[:idx] + cleaned[idx + 1 :]

    return [*cleaned, {"emoji": emoji, "user_id": user_key}]


def summarize_reactions(
    reactions: list[dict] | None, viewer_id: UUID | None
) -> list[ReactionSummaryOut]:
    """Group reactions by emoji for display.

    Each group carries its count and whether the viewer is in it. Groups are
    sorted by count descending; sorted() is stable so ties keep the order in
    which each emoji was first seen.
    """
    viewer_key = str(viewer_id) if viewer_id is not None else None
    groups: dict[str, dict[str, Any]] = {}

    for entry in reactions or []:
        if not _is_well_formed(entry):
            continue
        group = groups.setdefault(entry["emoji"], {"count": 0, "reacted": False})
        group["count"] += 1
        if str(entry["user_id"]) == viewer_key:
            group["reacted"] = True

    summary = [
        ReactionSummaryOut(emoji=emoji, count=g["count"], reacted=g["reacted"])
        for emoji, g in groups.items()
    ]
    return sorted(summary, key=lambda s: s.count, reverse=True)
