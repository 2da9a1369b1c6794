"""Sessions and the unit-of-work helper every service mutation runs in.

Route handlers get one session per request through ``get_db``. Services
wrap each guarded change (a membership check plus its writes) in
``transaction`` so a rejected or failed request leaves nothing behind.
User bootstrap runs outside any request and opens its own sessions from
``get_session_factory``.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from huddle.db.engine import get_engine
from huddle.logging import get_logger

logger = get_logger(__name__)


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Build a sessionmaker for the given engine, or the application engine.

    Objects stay loaded after commit because services return ids and
    response models built from rows they just wrote.
    """
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """The application's session factory, built on first use."""
    return create_session_factory()


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped session."""
    with get_session_factory()() as db:
        yield db


@contextmanager
def transaction(db: Session) -> Iterator[None]:
    """Commit the enclosed work, or roll it back and re-raise.

    Usage:
        with transaction(db):
            require_member(db, viewer_id, workspace_id)
            db.add(channel)
    """
    try:
        yield
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.debug("transaction_rolled_back", error_type=type(exc).__name__)
        raise
