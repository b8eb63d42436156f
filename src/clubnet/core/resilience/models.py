"""Resilience data models, enums, and protocols.

Defines the core types used across the resilience sub-package:
- ErrorKind / SuggestedAction enums for failure classification
- ErrorInfo, the single failure shape surfaced to callers
- RetryPolicy for backoff tuning
- SleepFunc / Clock protocols for injectable time
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, FrozenSet, Optional, Protocol


class ErrorKind(str, Enum):
    """Classification of failures for retry and messaging decisions."""

    NETWORK = "network"
    SERVER = "server"
    TIMEOUT = "timeout"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class SuggestedAction(str, Enum):
    """What the UI should offer the user after a failure."""

    LOGIN = "login"
    REFRESH = "refresh"
    CONTACT_SUPPORT = "contact_support"
    CHECK_NETWORK = "check_network"


@dataclass(frozen=True)
class ErrorInfo:
    """Classified failure.

    Created once per failure by the classifier and passed through every
    layer above it unchanged.
    """

    kind: ErrorKind
    retryable: bool
    context: str = ""
    status_code: Optional[int] = None
    suggested_action: Optional[SuggestedAction] = None
    message: str = ""
    user_message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging and UI payloads."""
        return {
            "kind": self.kind.value,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "suggested_action": self.suggested_action.value if self.suggested_action else None,
            "context": self.context,
            "message": self.message,
            "user_message": self.user_message,
        }


DEFAULT_RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({0, 408, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff configuration for RetryCoordinator.

    Delays are in milliseconds. ``jitter_fraction`` is the symmetric range
    applied to computed exponential delays (0.15 => 85-115%).
    """

    max_retries: int = 3
    base_delay_ms: float = 1000.0
    max_delay_ms: float = 30000.0
    backoff_multiplier: float = 2.0
    retryable_status_codes: FrozenSet[int] = field(
        default_factory=lambda: DEFAULT_RETRYABLE_STATUS_CODES
    )
    jitter_fraction: float = 0.15
    use_network_based_delays: bool = True

    def with_overrides(self, **overrides: Any) -> "RetryPolicy":
        """Return a copy with the given fields replaced."""
        if "retryable_status_codes" in overrides:
            overrides["retryable_status_codes"] = frozenset(overrides["retryable_status_codes"])
        return replace(self, **overrides)


class SleepFunc(Protocol):
    """Protocol for injectable sleep function."""

    async def __call__(self, seconds: float) -> None: ...


class Clock(Protocol):
    """Protocol for injectable wall clock (epoch seconds)."""

    def __call__(self) -> float: ...
