"""Tests for audit logging and correlation context."""

import logging

from clubnet.core.context import correlation_scope, get_correlation_id
from clubnet.core.observability import (
    AuditEvent,
    AuditEventType,
    audit_log,
    get_audit_logger,
)


class TestCorrelationScope:
    """Tests for correlation_scope."""

    def test_binds_and_restores(self):
        assert get_correlation_id() == ""
        with correlation_scope("join-42") as value:
            assert value == "join-42"
            assert get_correlation_id() == "join-42"
        assert get_correlation_id() == ""

    def test_falsy_value_keeps_current(self):
        with correlation_scope("join-42"):
            with correlation_scope(None) as value:
                assert value == "join-42"
                assert get_correlation_id() == "join-42"


class TestAuditEvent:
    """Tests for AuditEvent."""

    def test_to_dict(self):
        event = AuditEvent(event_type=AuditEventType.QUEUE_CLEARED, details={"cancelled": 2})
        data = event.to_dict()

        assert data["event_type"] == "queue_cleared"
        assert data["details"] == {"cancelled": 2}
        assert "timestamp" in data
        assert "correlation_id" not in data

    def test_correlation_id_from_context(self):
        with correlation_scope("leave-7"):
            event = AuditEvent(event_type=AuditEventType.OPERATION_QUEUED)
        assert event.to_dict()["correlation_id"] == "leave-7"


class TestAuditLog:
    """Tests for audit_log and AuditLogger."""

    def test_records_go_to_audit_logger(self, caplog):
        caplog.set_level(logging.INFO, logger="clubnet.core.observability.audit.audit")
        audit_log("cache_fallback", key="48.86,2.35")

        record = caplog.records[-1]
        assert record.name == "clubnet.core.observability.audit.audit"
        assert record.getMessage() == "AUDIT: cache_fallback"
        assert record.audit["details"]["key"] == "48.86,2.35"

    def test_unknown_event_type(self, audit_events):
        audit_log("something_new", value=1)

        event = audit_events("other")[0]
        assert event["details"]["original_event_type"] == "something_new"
        assert event["details"]["value"] == 1

    def test_helpers(self, audit_events):
        audit = get_audit_logger()
        audit.retry_attempt("Join club", 1, 2000.0, status_code=503)
        audit.connectivity_change(online=False, quality="offline")

        attempt = audit_events("retry_attempt")[0]["details"]
        assert attempt == {"context": "Join club", "attempt": 1, "delay_ms": 2000.0, "status_code": 503}
        assert audit_events("connectivity_change")[0]["details"]["online"] is False
