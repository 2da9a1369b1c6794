"""Response envelopes and the exception handlers that produce them.

Every Huddle response body is either ``{"data": ...}`` or
``{"error": {"code": "E_...", "message": "...", "request_id": "..."}}``.
Errors raised anywhere below a route (service ApiErrors, framework
404/405s, body validation failures, crashes) are turned into the error
envelope here, so clients only ever parse one shape.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from huddle.errors import ApiError, ApiErrorCode
from huddle.logging import get_logger, get_request_id

logger = get_logger(__name__)

# Framework-raised HTTP errors carry a status but no Huddle code
HTTP_STATUS_TO_CODE: dict[int, ApiErrorCode] = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    403: ApiErrorCode.E_FORBIDDEN,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
    422: ApiErrorCode.E_INVALID_REQUEST,
}


def success_response(data: Any) -> dict[str, Any]:
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build the error envelope.

    The request id defaults to the one bound for the current request and
    is left out entirely when there is none (e.g. outside a request).
    """
    error: dict[str, Any] = {"code": code.value, "message": message}
    request_id = request_id or get_request_id()
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def error_json(status_code: int, code: ApiErrorCode, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(code, message))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("api_error", code=exc.code.value, path=request.url.path)
    return error_json(exc.status_code, exc.code, exc.message)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = HTTP_STATUS_TO_CODE.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    return error_json(exc.status_code, code, str(exc.detail) if exc.detail else "An error occurred")


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body and query validation failures are plain 400s; field details stay server-side."""
    logger.debug("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return error_json(400, ApiErrorCode.E_INVALID_REQUEST, "Invalid request")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the crash and answer 500 without leaking anything about it."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return error_json(500, ApiErrorCode.E_INTERNAL, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
