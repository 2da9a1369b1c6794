"""Authentication and authorization module.

This module provides:
- Token verification (JWKS verifier)
- Auth middleware for FastAPI
- Access guard helpers for workspaces, channels and conversations

Note: Test-only verifiers are in tests/support/test_verifier.py
"""

from huddle.auth.middleware import AuthMiddleware, Viewer, get_viewer
from huddle.auth.verifier import JwksTokenVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "JwksTokenVerifier",
    "TokenVerifier",
]
