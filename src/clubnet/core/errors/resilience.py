"""Resilience error classes.

Raised by the retry coordinator, the offline queue and the concurrency guard.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from clubnet.core.resilience.models import ErrorInfo


class ClassifiedError(Exception):
    """Terminal failure carrying its classification.

    Every failure that leaves the retry coordinator is wrapped in this
    exception exactly once; upper layers re-raise it unchanged.

    Attributes:
        info: The ErrorInfo produced by the classifier.
    """

    def __init__(self, info: ErrorInfo):
        super().__init__(info.message or info.kind.value)
        self.info = info

    @property
    def retryable(self) -> bool:
        return self.info.retryable


class TimeoutException(Exception):
    """Operation timed out locally.

    Attributes:
        timeout_seconds: The timeout duration that was exceeded.
        operation: Name of the operation that timed out.
    """

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
        self.operation = operation


class OperationExpiredError(Exception):
    """Queued operation was older than the replay window when dequeued.

    Attributes:
        context: Context label of the discarded operation.
        age_seconds: How long the operation sat in the queue.
        max_age_seconds: The configured replay window.
    """

    def __init__(
        self,
        message: str = "Operation expired",
        context: Optional[str] = None,
        age_seconds: Optional[float] = None,
        max_age_seconds: Optional[float] = None,
    ):
        super().__init__(message)
        self.context = context
        self.age_seconds = age_seconds
        self.max_age_seconds = max_age_seconds


class QueueClearedError(Exception):
    """Pending queued operation was cancelled by ``OfflineQueue.clear()``.

    Attributes:
        context: Context label of the cancelled operation.
    """

    def __init__(self, message: str = "Operation queue cleared", context: Optional[str] = None):
        super().__init__(message)
        self.context = context


class OperationInProgressError(Exception):
    """A held operation key was requested again before release.

    Attributes:
        key: The operation key that is already held.
    """

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key
