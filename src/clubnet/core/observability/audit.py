"""Audit logging for resilience events.

Provides structured audit logging with automatic correlation ID population
from the operation context. Audit records go to a dedicated logger so hosts
can route them separately from diagnostic logs.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from clubnet.core.context import get_correlation_id

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    """Types of audit events emitted by the resilience layer."""

    RETRY_ATTEMPT = "retry_attempt"
    RETRY_EXHAUSTED = "retry_exhausted"
    CONNECTIVITY_CHANGE = "connectivity_change"
    OPERATION_QUEUED = "operation_queued"
    OPERATION_EXPIRED = "operation_expired"
    QUEUE_CLEARED = "queue_cleared"
    CACHE_FALLBACK = "cache_fallback"
    REFRESH_WAIT_TIMEOUT = "refresh_wait_timeout"
    OTHER = "other"


@dataclass
class AuditEvent:
    """Structured audit event."""

    event_type: AuditEventType
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    correlation_id: Optional[str] = None

    def __post_init__(self) -> None:
        """Auto-populate correlation_id from context if not set."""
        if self.correlation_id is None:
            self.correlation_id = get_correlation_id() or None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "event_type": self.event_type.value,
            "timestamp": self.timestamp,
            "details": self.details,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        return result


class AuditLogger:
    """
    Structured audit logging for resilience events.

    Audit logs are written to a separate logger for easy filtering.
    """

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        self._logger.info(f"AUDIT: {event.event_type.value}", extra={"audit": event.to_dict()})

    def retry_attempt(self, context: str, attempt: int, delay_ms: float, **details: Any) -> None:
        """Log a scheduled retry."""
        self.log(
            AuditEvent(
                event_type=AuditEventType.RETRY_ATTEMPT,
                details={"context": context, "attempt": attempt, "delay_ms": delay_ms, **details},
            )
        )

    def connectivity_change(self, online: bool, quality: str, **details: Any) -> None:
        """Log an online/offline transition."""
        self.log(
            AuditEvent(
                event_type=AuditEventType.CONNECTIVITY_CHANGE,
                details={"online": online, "quality": quality, **details},
            )
        )


# Global audit logger
_audit = AuditLogger()


def get_audit_logger() -> AuditLogger:
    """Get the global audit logger."""
    return _audit


def audit_log(event_type: str, **details: Any) -> None:
    """
    Convenience function for audit logging.

    Args:
        event_type: Type of event (retry_attempt, retry_exhausted,
                    connectivity_change, operation_queued, operation_expired,
                    queue_cleared, cache_fallback, refresh_wait_timeout)
        **details: Additional details to include in the audit log
    """
    try:
        event_enum = AuditEventType(event_type)
    except ValueError:
        event_enum = AuditEventType.OTHER
        details["original_event_type"] = event_type

    _audit.log(AuditEvent(event_type=event_enum, details=details))
