"""Exception-to-ErrorInfo mapping registry.

Provides a centralized mapping from locally raised exception types to their
classification, so the classifier treats package errors consistently.

Usage:
    from clubnet.core.errors.base import error_to_info

    info = error_to_info(exc, "Queued: Join club")
    if info is None:
        ...  # not a package error, classify by shape instead
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional, Tuple, Type

from clubnet.core.errors.resilience import (
    OperationExpiredError,
    OperationInProgressError,
    QueueClearedError,
    TimeoutException,
)

if TYPE_CHECKING:
    from clubnet.core.resilience.models import ErrorInfo

# (kind, retryable, suggested_action, user_message)
ERROR_MAPPINGS: Dict[Type[Exception], Tuple[str, bool, Optional[str], str]] = {
    TimeoutException: (
        "timeout",
        True,
        "refresh",
        "The operation took too long. Please try again.",
    ),
    OperationExpiredError: (
        "unknown",
        False,
        "refresh",
        "This action was queued too long while offline and was discarded.",
    ),
    QueueClearedError: (
        "unknown",
        False,
        None,
        "This action was cancelled.",
    ),
    OperationInProgressError: (
        "validation",
        False,
        None,
        "This action is already in progress.",
    ),
}


def error_to_info(exc: BaseException, context: str = "") -> Optional[ErrorInfo]:
    """Convert a known package exception to an ErrorInfo, or None if unknown.

    Looks up the exception's *exact* type in ERROR_MAPPINGS.

    Args:
        exc: The exception to convert.
        context: Where the failure happened.

    Returns:
        ErrorInfo for registered exception types, None otherwise.
    """
    mapping = ERROR_MAPPINGS.get(type(exc))
    if mapping is None:
        return None

    from clubnet.core.resilience.models import ErrorInfo, ErrorKind, SuggestedAction

    kind, retryable, action, user_message = mapping
    return ErrorInfo(
        kind=ErrorKind(kind),
        retryable=retryable,
        context=context,
        suggested_action=SuggestedAction(action) if action else None,
        message=str(exc),
        user_message=user_message,
    )
