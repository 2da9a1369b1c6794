"""Pytest configuration and fixtures for Huddle tests.

Test isolation strategy:
- Every test gets a fresh in-memory SQLite database (StaticPool, one shared
  connection, foreign keys on) built from the ORM metadata
- Service tests use db_session: a session joined to an outer transaction with
  join_transaction_mode="create_savepoint", so a failing service call only
  rolls back its own work; factories commit like the code under test does
- Route tests go through client/authenticated_client only; the app's sessions
  share the test engine through a get_db override and the bootstrap callback
- Auth uses MockJwtVerifier with locally minted RSA tokens (see helpers.py)
"""

import os
from collections.abc import Generator
from uuid import UUID

os.environ.setdefault("HUDDLE_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from huddle.app import add_request_id_middleware, create_app
from huddle.auth.middleware import AuthMiddleware
from huddle.config import clear_settings_cache
from huddle.db.engine import configure_sqlite
from huddle.db.models import Base
from huddle.db.session import create_session_factory, get_db
from huddle.services.bootstrap import create_bootstrap_callback
from huddle.storage.client import FakeStorageClient
from tests.helpers import create_test_user_id
from tests.support.test_verifier import MockJwtVerifier
from tests.utils.db import TestDatabaseManager, override_get_db


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create a fresh in-memory database with the full schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """Provide a database session with savepoint isolation.

    Service commits release savepoints inside one outer transaction that is
    rolled back after the test. Do not combine with the client fixtures:
    they share the single in-memory connection.
    """
    with TestDatabaseManager(engine) as session:
        yield session


@pytest.fixture
def storage() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def client(
    session_factory: sessionmaker[Session], storage: FakeStorageClient
) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client without authentication.

    Suitable for public endpoints and envelope behaviour.
    """
    app = create_app(skip_auth_middleware=True, storage=storage)
    app.dependency_overrides[get_db] = override_get_db(session_factory)
    add_request_id_middleware(app, log_requests=False)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def test_verifier() -> MockJwtVerifier:
    return MockJwtVerifier()


@pytest.fixture
def authenticated_app(
    session_factory: sessionmaker[Session],
    storage: FakeStorageClient,
    test_verifier: MockJwtVerifier,
):
    """Provide a FastAPI app with auth middleware using the test verifier.

    User bootstrap writes through the test engine.
    """
    app = create_app(skip_auth_middleware=True, storage=storage)
    app.dependency_overrides[get_db] = override_get_db(session_factory)

    app.add_middleware(
        AuthMiddleware,
        verifier=test_verifier,
        requires_internal_header=False,
        internal_secret=None,
        bootstrap_callback=create_bootstrap_callback(session_factory),
    )
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def authenticated_client(authenticated_app) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client with auth middleware.

    Use auth_headers() to generate valid tokens for requests.
    """
    with TestClient(authenticated_app) as client:
        yield client


@pytest.fixture
def test_user_id() -> UUID:
    return create_test_user_id()


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
