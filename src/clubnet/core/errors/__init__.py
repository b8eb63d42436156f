"""Unified error hierarchy for clubnet.

Custom exception classes are defined in domain-specific modules within this
package. This __init__.py re-exports everything for convenient access.

Usage:
    from clubnet.core.errors import ClassifiedError, OperationExpiredError
    from clubnet.core.errors import error_to_info
"""

from clubnet.core.errors.base import ERROR_MAPPINGS, error_to_info
from clubnet.core.errors.resilience import (
    ClassifiedError,
    OperationExpiredError,
    OperationInProgressError,
    QueueClearedError,
    TimeoutException,
)

__all__ = [
    "ERROR_MAPPINGS",
    "error_to_info",
    "ClassifiedError",
    "OperationExpiredError",
    "OperationInProgressError",
    "QueueClearedError",
    "TimeoutException",
]
