"""Tests for error handling and response envelopes.

Verifies:
- Error envelope shape is correct
- Every error code maps to correct HTTP status
- Unknown exceptions return E_INTERNAL with 500
- Malformed JSON and schema violations return E_INVALID_REQUEST
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from huddle.errors import (
    ERROR_CODE_TO_STATUS,
    ApiError,
    ApiErrorCode,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
)
from huddle.responses import (
    error_response,
    success_response,
    unhandled_exception_handler,
)
from tests.helpers import auth_headers, create_test_user_id


class TestErrorResponse:
    """Tests for error response envelope format."""

    def test_error_response_has_correct_shape(self):
        response = error_response(ApiErrorCode.E_CHANNEL_NOT_FOUND, "Channel not found")

        assert response["error"]["code"] == "E_CHANNEL_NOT_FOUND"
        assert response["error"]["message"] == "Channel not found"

    def test_error_response_code_is_string(self):
        response = error_response(ApiErrorCode.E_FORBIDDEN, "Access denied")
        assert isinstance(response["error"]["code"], str)

    def test_explicit_request_id(self):
        response = error_response(ApiErrorCode.E_INTERNAL, "boom", request_id="req-1")
        assert response["error"]["request_id"] == "req-1"

    def test_no_request_id_outside_a_request(self):
        response = error_response(ApiErrorCode.E_INTERNAL, "boom")
        assert "request_id" not in response["error"]


class TestSuccessResponse:
    def test_success_response_has_data_key(self):
        assert success_response({"id": "123"}) == {"data": {"id": "123"}}

    def test_success_response_with_list(self):
        items = [{"id": "1"}, {"id": "2"}]
        assert success_response(items)["data"] == items

    def test_success_response_with_none(self):
        response = success_response(None)
        assert "data" in response
        assert response["data"] is None


class TestErrorCodeToStatus:
    def test_all_error_codes_have_status_mapping(self):
        """Every ApiErrorCode has a corresponding HTTP status."""
        for code in ApiErrorCode:
            assert code in ERROR_CODE_TO_STATUS, f"Missing status mapping for {code}"

    @pytest.mark.parametrize(
        "code,expected_status",
        [
            (ApiErrorCode.E_UNAUTHENTICATED, 401),
            (ApiErrorCode.E_FORBIDDEN, 403),
            (ApiErrorCode.E_INTERNAL_ONLY, 403),
            (ApiErrorCode.E_WORKSPACE_NOT_FOUND, 404),
            (ApiErrorCode.E_MEMBER_NOT_FOUND, 404),
            (ApiErrorCode.E_CHANNEL_NOT_FOUND, 404),
            (ApiErrorCode.E_MESSAGE_NOT_FOUND, 404),
            (ApiErrorCode.E_CONVERSATION_NOT_FOUND, 404),
            (ApiErrorCode.E_NOTIFICATION_NOT_FOUND, 404),
            (ApiErrorCode.E_INVALID_REQUEST, 400),
            (ApiErrorCode.E_NAME_INVALID, 400),
            (ApiErrorCode.E_EMPTY_MESSAGE, 400),
            (ApiErrorCode.E_CANNOT_MESSAGE_SELF, 400),
            (ApiErrorCode.E_INVALID_CURSOR, 400),
            (ApiErrorCode.E_INVALID_JOIN_CODE, 400),
            (ApiErrorCode.E_AUTH_UNAVAILABLE, 503),
            (ApiErrorCode.E_INTERNAL, 500),
            (ApiErrorCode.E_SIGN_UPLOAD_FAILED, 500),
        ],
    )
    def test_error_code_maps_to_correct_status(self, code: ApiErrorCode, expected_status: int):
        assert ERROR_CODE_TO_STATUS[code] == expected_status


class TestApiErrorClass:
    def test_api_error_has_code_and_message(self):
        error = ApiError(ApiErrorCode.E_MESSAGE_NOT_FOUND, "Message not found")

        assert error.code == ApiErrorCode.E_MESSAGE_NOT_FOUND
        assert error.message == "Message not found"
        assert error.status_code == 404

    @pytest.mark.parametrize(
        "error,code,status",
        [
            (UnauthenticatedError(), ApiErrorCode.E_UNAUTHENTICATED, 401),
            (NotFoundError(), ApiErrorCode.E_NOT_FOUND, 404),
            (ForbiddenError(), ApiErrorCode.E_FORBIDDEN, 403),
            (InvalidRequestError(), ApiErrorCode.E_INVALID_REQUEST, 400),
        ],
    )
    def test_subclass_defaults(self, error: ApiError, code: ApiErrorCode, status: int):
        assert error.code == code
        assert error.status_code == status


class TestRequestBodyHandling:
    def test_malformed_json_returns_400(self, client: TestClient):
        response = client.post(
            "/workspaces",
            content="{invalid json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == {
            "code": "E_INVALID_REQUEST",
            "message": "Malformed JSON body",
            "request_id": response.headers["X-Request-ID"],
        }

    def test_schema_violation_returns_400(self, authenticated_client: TestClient):
        response = authenticated_client.post(
            "/workspaces", json={"nom": "Acme"}, headers=auth_headers(create_test_user_id())
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"

    def test_unknown_route_returns_enveloped_404(self, client: TestClient):
        response = client.get("/no-such-route")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E_NOT_FOUND"

    def test_wrong_method_returns_enveloped_405(self, client: TestClient):
        response = client.delete("/health")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "E_INVALID_REQUEST"


class TestUnhandledExceptionHandling:
    def _crashing_client(self) -> TestClient:
        test_app = FastAPI()

        @test_app.get("/crash")
        def crash_endpoint():
            raise RuntimeError("SECRET_INTERNAL_DETAIL")

        test_app.add_exception_handler(Exception, unhandled_exception_handler)
        return TestClient(test_app, raise_server_exceptions=False)

    def test_unhandled_exception_returns_500_with_e_internal(self):
        response = self._crashing_client().get("/crash")

        assert response.status_code == 500
        data = response.json()
        assert data["error"]["code"] == "E_INTERNAL"
        assert data["error"]["message"] == "Internal server error"

    def test_unhandled_exception_does_not_leak_details(self):
        response = self._crashing_client().get("/crash")
        assert "SECRET_INTERNAL_DETAIL" not in response.text
