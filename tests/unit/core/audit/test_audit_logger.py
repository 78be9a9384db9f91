"""Tests for the AuditLogger and sender hashing."""

from __future__ import annotations

import json

from cpad.core.audit.logger import AuditEvent, AuditLogger, hash_sender


class TestHashSender:
    def test_sha256_hex(self):
        digest = hash_sender("alice")
        assert len(digest) == 64
        assert digest == hash_sender("alice")

    def test_different_senders_differ(self):
        assert hash_sender("alice") != hash_sender("bob")

    def test_empty_sender(self):
        assert hash_sender("") == ""


class TestLogging:
    def test_log_message(self, audit_logger):
        event_id = audit_logger.log_message(
            "alice", padding_level="medium", domain="academic", duration_ms=1.25
        )
        assert event_id
        events = audit_logger.get_events(action="message_processed")
        assert len(events) == 1
        event = events[0]
        assert event["sender_hash"] == hash_sender("alice")
        assert event["padding_level"] == "medium"
        assert event["domain"] == "academic"
        assert event["status"] == "success"

    def test_no_sender_id_or_text_is_stored(self, audit_logger, preference_db):
        audit_logger.log_message(
            "alice@example.com", padding_level="light", metadata={"fallback": False}
        )
        row = preference_db.connection.execute("SELECT * FROM audit_log").fetchone()
        assert "alice@example.com" not in " ".join(str(v) for v in tuple(row))

    def test_failure_status(self, audit_logger):
        audit_logger.log_message("alice", status="failure", error_type="TimeoutError")
        event = audit_logger.get_events()[0]
        assert event["status"] == "failure"
        assert event["error_type"] == "TimeoutError"

    def test_log_feedback(self, audit_logger):
        audit_logger.log_feedback("alice", satisfaction="negative", requested_level="light")
        event = audit_logger.get_events(action="feedback_applied")[0]
        assert event["padding_level"] == "light"
        assert json.loads(event["metadata_json"]) == {"satisfaction": "negative", "context_key": None}

    def test_log_user_deleted(self, audit_logger):
        audit_logger.log_user_deleted("alice", existed=True)
        assert audit_logger.count_events(action="user_deleted") == 1

    def test_log_event_directly(self, audit_logger):
        assert audit_logger.log_event(AuditEvent(action="custom"))
        assert audit_logger.count_events() == 1

    def test_write_failure_returns_empty_id(self, audit_logger, preference_db):
        preference_db.close()
        assert audit_logger.log_message("alice") == ""


class TestQueries:
    def test_filter_by_sender(self, audit_logger):
        audit_logger.log_message("alice")
        audit_logger.log_message("alice")
        audit_logger.log_message("bob")
        assert len(audit_logger.get_events(sender_id="alice")) == 2
        assert len(audit_logger.get_events(sender_id="bob")) == 1

    def test_since_filter(self, audit_logger):
        audit_logger.log_message("alice")
        assert audit_logger.get_events(since="2000-01-01T00:00:00") != []
        assert audit_logger.get_events(since="2999-01-01T00:00:00") == []

    def test_limit(self, audit_logger):
        for _ in range(5):
            audit_logger.log_message("alice")
        assert len(audit_logger.get_events(limit=3)) == 3

    def test_count_by_action(self, audit_logger):
        audit_logger.log_message("alice")
        audit_logger.log_feedback("alice", satisfaction="positive")
        assert audit_logger.count_events(action="message_processed") == 1
        assert audit_logger.count_events(action="feedback_applied") == 1
        assert audit_logger.count_events() == 2
