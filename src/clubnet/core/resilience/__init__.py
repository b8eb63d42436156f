"""Client-side resilience primitives.

Centralized resilience utilities for backend calls including:
- Error classification into a single ErrorInfo shape
- Quality-aware retry with exponential backoff and jitter
- Per-key deduplication, debounce and refresh ordering
- Offline queue replay and staleness-aware response caching
- ResilienceStack singleton for lifecycle management
"""

from clubnet.core.errors.resilience import (
    ClassifiedError,
    OperationExpiredError,
    OperationInProgressError,
    QueueClearedError,
)
from clubnet.core.resilience.cache import CacheEntry, ResponseCache
from clubnet.core.resilience.classifier import (
    classify_error,
    classify_status,
    create_error_message,
    should_show_retry,
)
from clubnet.core.resilience.client import HttpTransport, ResilientClient
from clubnet.core.resilience.guard import ConcurrencyGuard, operation_key
from clubnet.core.resilience.keys import (
    GEOCODE_PRECISION,
    WEATHER_PRECISION,
    coordinate_key,
    geocode_key,
    is_valid_coordinate,
    weather_key,
)
from clubnet.core.resilience.models import (
    DEFAULT_RETRYABLE_STATUS_CODES,
    Clock,
    ErrorInfo,
    ErrorKind,
    RetryPolicy,
    SleepFunc,
    SuggestedAction,
)
from clubnet.core.resilience.offline_queue import OfflineQueue, QueuedOperation
from clubnet.core.resilience.retry import DEFAULT_RETRY_POLICY, RetryCoordinator
from clubnet.core.resilience.stack import (
    ResilienceStack,
    build_resilience_stack,
    get_resilience_stack,
    reset_resilience_stack_for_testing,
)

__all__ = [
    # Models & enums
    "ErrorKind",
    "SuggestedAction",
    "ErrorInfo",
    "RetryPolicy",
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "SleepFunc",
    "Clock",
    # Classification
    "classify_error",
    "classify_status",
    "create_error_message",
    "should_show_retry",
    # Retry
    "RetryCoordinator",
    "DEFAULT_RETRY_POLICY",
    # Guard
    "ConcurrencyGuard",
    "operation_key",
    # Queue
    "OfflineQueue",
    "QueuedOperation",
    # Cache
    "CacheEntry",
    "ResponseCache",
    "GEOCODE_PRECISION",
    "WEATHER_PRECISION",
    "coordinate_key",
    "geocode_key",
    "is_valid_coordinate",
    "weather_key",
    # Client
    "HttpTransport",
    "ResilientClient",
    # Stack
    "ResilienceStack",
    "build_resilience_stack",
    "get_resilience_stack",
    "reset_resilience_stack_for_testing",
    # Error re-exports
    "ClassifiedError",
    "OperationExpiredError",
    "OperationInProgressError",
    "QueueClearedError",
]
