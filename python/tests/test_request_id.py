"""Tests for X-Request-ID middleware.

Tests cover:
- Request ID generation when missing
- Request ID preservation and UUID normalization
- Request ID replacement when invalid
- Request ID presence on auth and internal-header failures
- Request ID in error response body
"""

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from huddle.app import add_request_id_middleware, create_app
from huddle.auth.middleware import AuthMiddleware
from huddle.db.session import get_db
from huddle.middleware.request_id import is_valid_request_id, normalize_request_id
from huddle.services.bootstrap import create_bootstrap_callback
from huddle.storage.client import FakeStorageClient
from tests.helpers import auth_headers, create_test_user_id
from tests.support.test_verifier import MockJwtVerifier
from tests.utils.db import override_get_db


@pytest.fixture
def internal_client(session_factory: sessionmaker[Session]) -> TestClient:
    """Client for an app that requires the internal header."""
    app = create_app(skip_auth_middleware=True, storage=FakeStorageClient())
    app.dependency_overrides[get_db] = override_get_db(session_factory)
    app.add_middleware(
        AuthMiddleware,
        verifier=MockJwtVerifier(),
        requires_internal_header=True,
        internal_secret="test-secret",
        bootstrap_callback=create_bootstrap_callback(session_factory),
    )
    add_request_id_middleware(app, log_requests=False)
    return TestClient(app)


class TestRequestIdValidation:
    @pytest.mark.parametrize(
        "value",
        ["abc_def-123", "request.id.with.dots", "a" * 128, str(uuid4()).upper()],
    )
    def test_valid(self, value):
        assert is_valid_request_id(value)

    @pytest.mark.parametrize("value", ["bad id with spaces", "a" * 129, "é" * 70, "x/y"])
    def test_invalid(self, value):
        assert not is_valid_request_id(value)

    def test_uuid_lowercased_other_tokens_untouched(self):
        assert (
            normalize_request_id("550E8400-E29B-41D4-A716-446655440000")
            == "550e8400-e29b-41d4-a716-446655440000"
        )
        assert normalize_request_id("Trace.ABC") == "Trace.ABC"


class TestRequestIdMiddleware:
    def test_request_id_generated_when_missing(self, authenticated_client: TestClient):
        response = authenticated_client.get("/me", headers=auth_headers(create_test_user_id()))

        assert response.status_code == 200
        UUID(response.headers["X-Request-ID"])

    @pytest.mark.parametrize(
        "sent,echoed",
        [
            ("abc_def-123", "abc_def-123"),
            ("request.id.with.dots", "request.id.with.dots"),
            (
                "550E8400-E29B-41D4-A716-446655440000",
                "550e8400-e29b-41d4-a716-446655440000",
            ),
        ],
    )
    def test_valid_request_id_echoed(self, authenticated_client: TestClient, sent, echoed):
        response = authenticated_client.get(
            "/me", headers={**auth_headers(create_test_user_id()), "X-Request-ID": sent}
        )

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == echoed

    @pytest.mark.parametrize("sent", ["bad id with spaces", "a" * 200])
    def test_invalid_request_id_replaced(self, authenticated_client: TestClient, sent):
        response = authenticated_client.get(
            "/me", headers={**auth_headers(create_test_user_id()), "X-Request-ID": sent}
        )

        assert response.status_code == 200
        new_id = response.headers["X-Request-ID"]
        assert new_id != sent
        UUID(new_id)

    def test_request_id_present_on_auth_failure(self, authenticated_client: TestClient):
        response = authenticated_client.get("/me")

        assert response.status_code == 401
        assert response.json()["error"]["request_id"] == response.headers["X-Request-ID"]

    def test_error_response_includes_request_id_in_body(self, authenticated_client: TestClient):
        response = authenticated_client.post(
            f"/channels/{uuid4()}/messages",
            json={"body": "hi"},
            headers={**auth_headers(create_test_user_id()), "X-Request-ID": "trace-42"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_CHANNEL_NOT_FOUND"
        assert response.json()["error"]["request_id"] == "trace-42"
        assert response.headers["X-Request-ID"] == "trace-42"


class TestInternalHeader:
    def test_missing_internal_header_rejected(self, internal_client: TestClient):
        response = internal_client.get("/me", headers=auth_headers(create_test_user_id()))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "E_INTERNAL_ONLY"
        assert "X-Request-ID" in response.headers

    def test_wrong_internal_header_rejected(self, internal_client: TestClient):
        response = internal_client.get(
            "/me",
            headers={**auth_headers(create_test_user_id()), "X-Huddle-Internal": "nope"},
        )
        assert response.status_code == 403

    def test_correct_internal_header_accepted(self, internal_client: TestClient):
        user_id = create_test_user_id()
        response = internal_client.get(
            "/me",
            headers={**auth_headers(user_id), "X-Huddle-Internal": "test-secret"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(user_id)

    def test_health_is_public(self, internal_client: TestClient):
        assert internal_client.get("/health").status_code == 200
