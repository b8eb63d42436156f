"""
Observability utilities for clubnet.

Provides structured audit logging for retries, connectivity transitions,
queue replay and cache fallbacks. Diagnostic logging uses the standard
``logging`` module with per-module loggers.

Example:
    from clubnet.core.observability import audit_log

    audit_log("cache_fallback", key="48.86,2.35", context="Weather")
"""

from clubnet.core.observability.audit import (
    AuditEvent,
    AuditEventType,
    AuditLogger,
    audit_log,
    get_audit_logger,
)

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditLogger",
    "audit_log",
    "get_audit_logger",
]
