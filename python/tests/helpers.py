"""Test helpers for authentication and common test operations.

Provides:
- Token minting for test authentication
- Header generation for test requests
- Small API shortcuts for route tests
"""

import time
from uuid import UUID, uuid4

import jwt
from fastapi.testclient import TestClient

from tests.support.test_verifier import MockJwtVerifier

# Default test token settings
DEFAULT_ISSUER = "test-issuer"
DEFAULT_AUDIENCE = "test-audience"
DEFAULT_EXPIRES_IN = 3600  # 1 hour


def mint_test_token(
    user_id: UUID | str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE,
    **extra_claims,
) -> str:
    """Mint a valid test JWT.

    Args:
        user_id: The user ID to set as the `sub` claim.
        expires_in: Token validity in seconds from now.
        issuer: The `iss` claim value.
        audience: The `aud` claim value.
        **extra_claims: Additional claims to include in the token.
    """
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }

    return jwt.encode(payload, MockJwtVerifier.get_private_key(), algorithm="RS256")


def mint_expired_token(user_id: UUID | str) -> str:
    """Mint a token that expired 1 hour ago."""
    return mint_test_token(user_id=user_id, expires_in=-3600)


def auth_headers(user_id: UUID | str, **token_kwargs) -> dict[str, str]:
    """Return headers dict with valid Authorization for the given user."""
    token = mint_test_token(user_id, **token_kwargs)
    return {"Authorization": f"Bearer {token}"}


def create_test_user_id() -> UUID:
    """Generate a random UUID for a test user."""
    return uuid4()


# =============================================================================
# API shortcuts
# =============================================================================


def api_create_workspace(client: TestClient, user_id: UUID, name: str = "Acme") -> dict:
    """Create a workspace as user_id and return its payload (includes join_code)."""
    response = client.post("/workspaces", json={"name": name}, headers=auth_headers(user_id))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def api_join_workspace(client: TestClient, user_id: UUID, join_code: str) -> dict:
    response = client.post(
        "/workspaces/join", json={"join_code": join_code}, headers=auth_headers(user_id)
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def api_general_channel(client: TestClient, user_id: UUID, workspace_id: str) -> dict:
    """Return the default channel every new workspace starts with."""
    response = client.get(f"/workspaces/{workspace_id}/channels", headers=auth_headers(user_id))
    assert response.status_code == 200, response.text
    return next(c for c in response.json()["data"] if c["name"] == "general")


def mention_span(user_id: UUID, label: str = "someone") -> str:
    """Markup for an inline mention as the editor produces it."""
    return f'<span data-mention-user-id="{user_id}">@{label}</span>'
