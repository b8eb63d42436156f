"""Failure classification.

``classify_error`` maps any raw failure (httpx error, HTTP status, local
timeout, arbitrary object) to an ErrorInfo. It is pure and deterministic:
no logging, no state, no I/O.

Classification rules (applied in order):
    1. ``ClassifiedError`` → its ErrorInfo, unchanged (never re-classified)
    2. Registered package exceptions → ``ERROR_MAPPINGS``
    3. ``httpx.HTTPStatusError`` / objects with an int ``status_code`` → status table
    4. Local timeouts (``TimeoutError``, ``httpx.TimeoutException``) → timeout
    5. Transport failures without a response → network
    6. Other exceptions mentioning network/fetch → network
    7. Anything else → unknown, retryable
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from clubnet.core.errors.base import error_to_info
from clubnet.core.errors.resilience import ClassifiedError
from clubnet.core.resilience.models import ErrorInfo, ErrorKind, SuggestedAction

_SERVER_ERROR_CODES = frozenset({500, 502, 503, 504})


def classify_error(error: Any, context: str = "") -> ErrorInfo:
    """Classify a raw failure.

    Args:
        error: The exception (or arbitrary error object) to classify.
        context: Where the failure happened, e.g. ``"Join club"``.

    Returns:
        An ErrorInfo describing kind, retryability and suggested action.
    """
    if isinstance(error, ClassifiedError):
        return error.info

    if isinstance(error, BaseException):
        mapped = error_to_info(error, context)
        if mapped is not None:
            return mapped

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return classify_status(
            response.status_code,
            context,
            server_message=_message_from_response(response),
        )

    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int) and not isinstance(status_code, bool):
        return classify_status(
            status_code,
            context,
            server_message=_message_from_body(getattr(error, "body", None)),
        )

    if isinstance(error, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorInfo(
            kind=ErrorKind.TIMEOUT,
            retryable=True,
            context=context,
            suggested_action=SuggestedAction.REFRESH,
            message=str(error) or "Operation timed out",
            user_message="The operation took too long. Please try again.",
        )

    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return _network_info(context, str(error) or "Network connection failed")

    if isinstance(error, Exception):
        text = str(error)
        lowered = text.lower()
        if "network" in lowered or "fetch" in lowered:
            return _network_info(context, text)
        return ErrorInfo(
            kind=ErrorKind.UNKNOWN,
            retryable=True,
            context=context,
            message=text or type(error).__name__,
            user_message="An unexpected error occurred. Please try again.",
        )

    return ErrorInfo(
        kind=ErrorKind.UNKNOWN,
        retryable=True,
        context=context,
        message="An unexpected error occurred",
        user_message="Something went wrong. Please try again.",
    )


def classify_status(
    status: int,
    context: str = "",
    *,
    server_message: Optional[str] = None,
) -> ErrorInfo:
    """Classify an HTTP status code.

    ``server_message`` (the ``message`` field of the response body) replaces
    the generic text for 400, 409 and unlisted codes.
    """
    if status == 0:
        return _network_info(context, "Network connection failed", status_code=0)

    if status == 400:
        return ErrorInfo(
            kind=ErrorKind.VALIDATION,
            retryable=False,
            context=context,
            status_code=status,
            message=server_message or "Invalid request",
            user_message=server_message or "Please check your input and try again.",
        )

    if status == 401:
        return ErrorInfo(
            kind=ErrorKind.AUTHORIZATION,
            retryable=False,
            context=context,
            status_code=status,
            suggested_action=SuggestedAction.LOGIN,
            message="Authentication required",
            user_message="Please log in to continue.",
        )

    if status == 403:
        return ErrorInfo(
            kind=ErrorKind.AUTHORIZATION,
            retryable=False,
            context=context,
            status_code=status,
            message="Access denied",
            user_message="You do not have permission to perform this action.",
        )

    if status == 404:
        return ErrorInfo(
            kind=ErrorKind.SERVER,
            retryable=False,
            context=context,
            status_code=status,
            message="Resource not found",
            user_message="The requested resource was not found.",
        )

    if status == 408:
        return ErrorInfo(
            kind=ErrorKind.TIMEOUT,
            retryable=True,
            context=context,
            status_code=status,
            suggested_action=SuggestedAction.REFRESH,
            message="Request timeout",
            user_message="The request took too long. Please try again.",
        )

    # Conflict is treated as recoverable via refetch
    if status == 409:
        return ErrorInfo(
            kind=ErrorKind.VALIDATION,
            retryable=True,
            context=context,
            status_code=status,
            suggested_action=SuggestedAction.REFRESH,
            message=server_message or "Conflict with current state",
            user_message=server_message
            or "This action conflicts with the current state. Please refresh and try again.",
        )

    if status == 429:
        return ErrorInfo(
            kind=ErrorKind.SERVER,
            retryable=True,
            context=context,
            status_code=status,
            message="Too many requests",
            user_message="Too many requests. Please wait a moment and try again.",
        )

    if status in _SERVER_ERROR_CODES:
        return ErrorInfo(
            kind=ErrorKind.SERVER,
            retryable=True,
            context=context,
            status_code=status,
            suggested_action=SuggestedAction.CONTACT_SUPPORT,
            message="Server error",
            user_message="Server is experiencing issues. Please try again in a moment.",
        )

    return ErrorInfo(
        kind=ErrorKind.SERVER,
        retryable=status >= 500,
        context=context,
        status_code=status,
        message=server_message or f"HTTP {status} error",
        user_message=server_message or "An error occurred. Please try again.",
    )


def create_error_message(info: ErrorInfo) -> str:
    """User-facing message with the action hint appended."""
    message = info.user_message or info.message
    hints = {
        SuggestedAction.CHECK_NETWORK: "Please check your internet connection and try again.",
        SuggestedAction.LOGIN: "Please log in to continue.",
        SuggestedAction.REFRESH: "Please refresh the page and try again.",
        SuggestedAction.CONTACT_SUPPORT: "If the problem persists, please contact support.",
    }
    if info.suggested_action is not None:
        message = f"{message} {hints[info.suggested_action]}".strip()
    return message


def should_show_retry(info: ErrorInfo) -> bool:
    """Whether the UI should offer a retry button for this failure."""
    return info.retryable and info.kind is not ErrorKind.AUTHORIZATION


def _network_info(context: str, message: str, status_code: Optional[int] = None) -> ErrorInfo:
    return ErrorInfo(
        kind=ErrorKind.NETWORK,
        retryable=True,
        context=context,
        status_code=status_code,
        suggested_action=SuggestedAction.CHECK_NETWORK,
        message=message,
        user_message="Unable to connect to the server. Please check your internet connection.",
    )


def _message_from_response(response: httpx.Response) -> Optional[str]:
    try:
        return _message_from_body(response.json())
    except ValueError:
        return None


def _message_from_body(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return None
