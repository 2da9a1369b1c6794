"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: Global middleware for bearer token + internal header verification
- get_viewer: Dependency for accessing the authenticated viewer identity
"""

import hmac
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from huddle.auth.verifier import TokenVerifier
from huddle.errors import ApiError, ApiErrorCode, UnauthenticatedError
from huddle.logging import get_logger, set_request_context
from huddle.responses import error_response

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "authorization"
INTERNAL_HEADER = "x-huddle-internal"

PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@dataclass(frozen=True)
class Viewer:
    """Authenticated caller identity.

    Attributes:
        user_id: The viewer's user ID (from the JWT sub claim).
    """

    user_id: UUID


class AuthMiddleware(BaseHTTPMiddleware):
    """Authentication middleware.

    Order of checks:
    1. Skip if public path
    2. Verify internal header (if required)
    3. Extract bearer token
    4. Verify token via TokenVerifier
    5. Bootstrap the users row via callback
    6. Attach Viewer to request.state
    """

    def __init__(
        self,
        app: ASGIApp,
        verifier: TokenVerifier,
        requires_internal_header: bool = False,
        internal_secret: str | None = None,
        bootstrap_callback: Callable[[UUID], None] | None = None,
    ):
        super().__init__(app)
        self.verifier = verifier
        self.requires_internal_header = requires_internal_header
        self.internal_secret = internal_secret
        self.bootstrap_callback = bootstrap_callback

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        if self.requires_internal_header:
            rejection = self._verify_internal_header(request)
            if rejection is not None:
                return rejection

        token, rejection = self._extract_bearer_token(request)
        if rejection is not None:
            return rejection

        try:
            payload = self.verifier.verify(token)
        except ApiError as e:
            return self._error_json_response(e.code, e.message, e.status_code)

        user_id = UUID(str(payload["sub"]))

        if self.bootstrap_callback is not None:
            try:
                self.bootstrap_callback(user_id)
            except Exception:
                logger.exception("user_bootstrap_failed", user_id=str(user_id))
                return self._error_json_response(
                    ApiErrorCode.E_INTERNAL, "Internal server error", 500
                )

        set_request_context(
            request_id=getattr(request.state, "request_id", None),
            user_id=str(user_id),
            path=request.url.path,
            method=request.method,
        )
        request.state.viewer = Viewer(user_id=user_id)

        return await call_next(request)

    def _verify_internal_header(self, request: Request) -> JSONResponse | None:
        """Constant-time check of the internal header. Returns a rejection or None."""
        header_value = request.headers.get(INTERNAL_HEADER)

        if header_value is None:
            logger.warning(
                "auth_failure", reason="internal_header_missing", request_path=request.url.path
            )
            return self._error_json_response(
                ApiErrorCode.E_INTERNAL_ONLY, "Internal API access required", 403
            )

        if not self.internal_secret:
            logger.error("internal_secret_not_configured")
            return self._error_json_response(ApiErrorCode.E_INTERNAL, "Internal server error", 500)

        if not hmac.compare_digest(header_value.encode(), self.internal_secret.encode()):
            logger.warning(
                "auth_failure", reason="internal_header_mismatch", request_path=request.url.path
            )
            return self._error_json_response(
                ApiErrorCode.E_INTERNAL_ONLY, "Internal API access required", 403
            )

        return None

    def _extract_bearer_token(self, request: Request) -> tuple[str, JSONResponse | None]:
        auth_header = request.headers.get(AUTHORIZATION_HEADER)

        if not auth_header:
            logger.warning("auth_failure", reason="missing_header", request_path=request.url.path)
            return "", self._error_json_response(
                ApiErrorCode.E_UNAUTHENTICATED, "Authentication required", 401
            )

        if not auth_header.lower().startswith("bearer "):
            logger.warning(
                "auth_failure", reason="invalid_header_format", request_path=request.url.path
            )
            return "", self._error_json_response(
                ApiErrorCode.E_UNAUTHENTICATED, "Invalid authorization header format", 401
            )

        token = auth_header[7:].strip()
        if not token:
            logger.warning(
                "auth_failure", reason="invalid_header_format", request_path=request.url.path
            )
            return "", self._error_json_response(
                ApiErrorCode.E_UNAUTHENTICATED, "Invalid authorization header format", 401
            )

        return token, None

    def _error_json_response(
        self, code: ApiErrorCode, message: str, status_code: int
    ) -> JSONResponse:
        return JSONResponse(status_code=status_code, content=error_response(code, message))


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency returning the authenticated viewer.

    Raises:
        UnauthenticatedError: If the middleware did not attach a viewer.
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise UnauthenticatedError(message="Authentication required")
    return viewer


ViewerDep = Depends(get_viewer)
