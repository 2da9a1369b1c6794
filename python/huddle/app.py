"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, auth middleware, request-id middleware, and routes.

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures all requests (including auth failures) get X-Request-ID

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. AuthMiddleware (verifies auth, bootstraps the user, sets viewer)
3. Route handler
4. AuthMiddleware (returns response)
5. RequestIDMiddleware (logs, sets response header)
"""

import json

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session, sessionmaker

from huddle.api.routes import create_api_router
from huddle.auth.middleware import AuthMiddleware
from huddle.auth.verifier import JwksTokenVerifier, TokenVerifier
from huddle.config import get_settings
from huddle.db.session import get_session_factory
from huddle.errors import ApiErrorCode
from huddle.logging import configure_logging, get_logger
from huddle.middleware.request_id import RequestIDMiddleware
from huddle.responses import error_json, register_exception_handlers
from huddle.services.bootstrap import create_bootstrap_callback
from huddle.storage.client import StorageClientBase, get_storage_client

logger = get_logger(__name__)


def create_token_verifier() -> JwksTokenVerifier:
    """Create the JWKS token verifier from settings.

    Every environment uses the same verifier; only the configured
    JWKS URL, issuer and audiences change.
    """
    settings = get_settings()

    return JwksTokenVerifier(
        jwks_url=settings.auth_jwks_url,  # type: ignore[arg-type]
        issuer=settings.normalized_issuer,  # type: ignore[arg-type]
        audiences=settings.audience_list,
    )


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier: TokenVerifier | None = None,
    storage: StorageClientBase | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_verifier: Optional custom token verifier (for testing).
        storage: Optional storage client; defaults to get_storage_client().
        session_factory: Optional session factory used by user bootstrap.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json)

    app = FastAPI(
        title="Huddle API",
        description="Backend API for Huddle - workspace chat with channels, DMs and mentions",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.storage_client = storage or get_storage_client()

    register_exception_handlers(app)

    @app.middleware("http")
    async def catch_json_decode_errors(request: Request, call_next):
        """Reject malformed JSON bodies before they reach route handlers."""
        if request.method in ("POST", "PUT", "PATCH"):
            content_type = request.headers.get("content-type", "")
            if "application/json" in content_type:
                body = await request.body()
                if body:
                    try:
                        json.loads(body)
                    except json.JSONDecodeError:
                        return error_json(
                            400, ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body"
                        )
        return await call_next(request)

    app.include_router(create_api_router())

    if not skip_auth_middleware:
        verifier = token_verifier or create_token_verifier()
        bootstrap_callback = create_bootstrap_callback(session_factory or get_session_factory())

        app.add_middleware(
            AuthMiddleware,
            verifier=verifier,
            requires_internal_header=settings.requires_internal_header,
            internal_secret=settings.huddle_internal_secret,
            bootstrap_callback=bootstrap_callback,
        )

        logger.info(
            "auth_middleware_enabled",
            env=settings.huddle_env.value,
            internal_header_required=settings.requires_internal_header,
        )

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.
    This ensures every response includes X-Request-ID, including auth failures.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
