"""Tests for failure classification."""

import asyncio
from types import SimpleNamespace

import httpx
import pytest

from clubnet.core.errors import (
    ClassifiedError,
    OperationExpiredError,
    QueueClearedError,
    TimeoutException,
)
from clubnet.core.resilience import (
    ErrorInfo,
    ErrorKind,
    SuggestedAction,
    classify_error,
    classify_status,
    create_error_message,
    should_show_retry,
)


def _status_error(status: int, json_body=None) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://api.example.test/clubs/1/join")
    if json_body is None:
        response = httpx.Response(status, request=request)
    else:
        response = httpx.Response(status, json=json_body, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestClassifyStatus:
    """Tests for the HTTP status table."""

    @pytest.mark.parametrize(
        "status, kind, retryable, action",
        [
            (0, ErrorKind.NETWORK, True, SuggestedAction.CHECK_NETWORK),
            (400, ErrorKind.VALIDATION, False, None),
            (401, ErrorKind.AUTHORIZATION, False, SuggestedAction.LOGIN),
            (403, ErrorKind.AUTHORIZATION, False, None),
            (404, ErrorKind.SERVER, False, None),
            (408, ErrorKind.TIMEOUT, True, SuggestedAction.REFRESH),
            (409, ErrorKind.VALIDATION, True, SuggestedAction.REFRESH),
            (429, ErrorKind.SERVER, True, None),
            (500, ErrorKind.SERVER, True, SuggestedAction.CONTACT_SUPPORT),
            (502, ErrorKind.SERVER, True, SuggestedAction.CONTACT_SUPPORT),
            (503, ErrorKind.SERVER, True, SuggestedAction.CONTACT_SUPPORT),
            (504, ErrorKind.SERVER, True, SuggestedAction.CONTACT_SUPPORT),
            (418, ErrorKind.SERVER, False, None),
            (507, ErrorKind.SERVER, True, None),
        ],
    )
    def test_table(self, status, kind, retryable, action):
        info = classify_status(status, "Join club")
        assert info.kind == kind
        assert info.retryable is retryable
        assert info.suggested_action == action
        assert info.status_code == status
        assert info.context == "Join club"

    def test_server_message_used_for_validation(self):
        """The body's message replaces the generic text for 400."""
        info = classify_status(400, server_message="Club name is required")
        assert info.message == "Club name is required"
        assert info.user_message == "Club name is required"

    def test_server_message_ignored_for_auth(self):
        info = classify_status(401, server_message="token expired")
        assert info.message == "Authentication required"


class TestClassifyError:
    """Tests for classify_error."""

    def test_http_status_error(self):
        info = classify_error(_status_error(503), "Load club")
        assert info.kind == ErrorKind.SERVER
        assert info.status_code == 503
        assert info.retryable is True

    def test_http_status_error_with_body_message(self):
        info = classify_error(_status_error(409, {"message": "Already a member"}))
        assert info.kind == ErrorKind.VALIDATION
        assert info.message == "Already a member"

    def test_duck_typed_status_code(self):
        """Objects carrying an int status_code are classified by status."""
        error = SimpleNamespace(status_code=400, body={"message": "Bad date"})
        info = classify_error(error)
        assert info.kind == ErrorKind.VALIDATION
        assert info.message == "Bad date"

    @pytest.mark.parametrize(
        "error",
        [
            asyncio.TimeoutError(),
            TimeoutError("slow"),
            httpx.ReadTimeout("read timed out"),
            TimeoutException("took too long", timeout_seconds=5.0),
        ],
    )
    def test_timeouts(self, error):
        info = classify_error(error)
        assert info.kind == ErrorKind.TIMEOUT
        assert info.retryable is True
        assert info.suggested_action == SuggestedAction.REFRESH

    def test_transport_error_is_network(self):
        info = classify_error(httpx.ConnectError("connection refused"))
        assert info.kind == ErrorKind.NETWORK
        assert info.suggested_action == SuggestedAction.CHECK_NETWORK
        assert info.status_code is None

    def test_fetch_message_is_network(self):
        info = classify_error(RuntimeError("Failed to fetch"))
        assert info.kind == ErrorKind.NETWORK

    def test_unknown_exception_is_retryable(self):
        info = classify_error(ValueError("weird"))
        assert info.kind == ErrorKind.UNKNOWN
        assert info.retryable is True
        assert info.message == "weird"

    def test_non_exception_object(self):
        info = classify_error({"unexpected": True})
        assert info.kind == ErrorKind.UNKNOWN
        assert info.retryable is True

    def test_classified_error_passes_through(self):
        """Already classified failures keep their original info."""
        original = ErrorInfo(kind=ErrorKind.AUTHORIZATION, retryable=False, context="first")
        info = classify_error(ClassifiedError(original), "second")
        assert info is original

    def test_package_errors_use_registry(self):
        expired = classify_error(OperationExpiredError(context="Join club"), "Queued")
        assert expired.kind == ErrorKind.UNKNOWN
        assert expired.retryable is False
        assert expired.suggested_action == SuggestedAction.REFRESH

        cleared = classify_error(QueueClearedError())
        assert cleared.retryable is False


class TestMessages:
    """Tests for user-facing helpers."""

    def test_create_error_message_appends_hint(self):
        info = classify_status(500)
        assert create_error_message(info) == (
            "Server is experiencing issues. Please try again in a moment. "
            "If the problem persists, please contact support."
        )

    def test_create_error_message_without_action(self):
        info = classify_status(403)
        assert create_error_message(info) == "You do not have permission to perform this action."

    def test_network_hint(self):
        message = create_error_message(classify_status(0))
        assert message.endswith("Please check your internet connection and try again.")

    def test_should_show_retry(self):
        assert should_show_retry(classify_status(503)) is True
        assert should_show_retry(classify_status(400)) is False
        assert should_show_retry(classify_status(401)) is False

    def test_to_dict(self):
        data = classify_status(408, "Save event").to_dict()
        assert data["kind"] == "timeout"
        assert data["suggested_action"] == "refresh"
        assert data["context"] == "Save event"
