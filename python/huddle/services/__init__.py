"""Business logic services.

This module contains service-layer functions that implement business logic.
Services are called by route handlers and orchestrate database operations.
Every function takes the caller's identity as an explicit viewer_id.
"""

from huddle.services.bootstrap import ensure_user
from huddle.services.mentions import extract_mention_user_ids
from huddle.services.reactions import summarize_reactions, toggle_reaction

__all__ = [
    "ensure_user",
    "extract_mention_user_ids",
    "summarize_reactions",
    "toggle_reaction",
]
