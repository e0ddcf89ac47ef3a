"""
Tests for services/audit.py - best-effort audit writes
"""

import json

from services.audit import AuditLogger, RequestInfo


class TestAuditLogger:
    """Tests for AuditLogger.record."""

    def test_row_carries_request_info(self, db, user, audit_entries):
        audit = AuditLogger(RequestInfo(ip_address="10.0.0.1", user_agent="pytest"))

        audit.record(db, user.id, "download", file_id="f1", file_name="a.txt", metadata={"size": 3})

        (entry,) = audit_entries("download")
        assert entry.ip_address == "10.0.0.1"
        assert entry.user_agent == "pytest"
        assert json.loads(entry.metadata_json) == {"size": 3}

    def test_unknown_action_is_logged_not_raised(self, db, user, audit, audit_entries, caplog):
        audit.record(db, user.id, "rename", file_id="f1")

        assert audit_entries() == []
        assert "unknown action=rename" in caplog.text
