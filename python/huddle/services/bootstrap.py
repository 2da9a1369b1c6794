"""User bootstrap service.

Provides race-safe creation of the users row on first authenticated request.
"""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from huddle.db.models import User
from huddle.db.session import transaction
from huddle.logging import get_logger

logger = get_logger(__name__)


def ensure_user(db: Session, user_id: UUID) -> None:
    """Ensure a users row exists for user_id.

    Idempotent and race-safe: a concurrent request that inserts the same row
    first makes our insert fail on the primary key, which we treat as success.

    Raises:
        RuntimeError: If the row is still missing after race recovery.
    """
    if db.get(User, user_id) is not None:
        return

    try:
        with transaction(db):
            db.add(User(id=user_id))
        logger.info("user_bootstrapped", user_id=str(user_id))
    except IntegrityError:
        # Lost race: another request created it
        if db.get(User, user_id) is None:
            logger.error("user_bootstrap_race_recovery_failed", user_id=str(user_id))
            raise RuntimeError(f"Failed to bootstrap user {user_id}") from None


def create_bootstrap_callback(session_factory: sessionmaker[Session]):
    """Create the auth middleware's bootstrap callback.

    Each call opens its own short-lived session so bootstrap never shares
    state with the request's session.
    """

    def callback(user_id: UUID) -> None:
        db = session_factory()
        try:
            ensure_user(db, user_id)
        finally:
            db.close()

    return callback
