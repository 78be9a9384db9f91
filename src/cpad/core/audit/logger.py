"""Audit logger: text-free trail of pipeline activity.

Records message processing, feedback and deletion events without storing
any message text. Senders are identified only by a SHA-256 hash of their id.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from cpad.core.storage.database import PreferenceDatabase

logger = logging.getLogger(__name__)


def hash_sender(sender_id: str) -> str:
    """SHA-256 of the sender id; empty string for an empty id."""
    if not sender_id:
        return ""
    return hashlib.sha256(sender_id.encode("utf-8")).hexdigest()


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # 'message_processed' | 'feedback_applied' | 'user_deleted'
    sender_hash: str = ""
    padding_level: str | None = None
    domain: str | None = None
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'failure'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` table.

    Audit failures are logged and swallowed: an audit write never blocks
    a response.

    Usage::

        audit = AuditLogger(db)
        audit.log_message("alice", padding_level="medium", domain="general", duration_ms=1.2)
        audit.count_events(action="message_processed")  # 1
    """

    def __init__(self, database: PreferenceDatabase) -> None:
        self._db = database

    # ---------------------------------------------------------------
    # Write
    # ---------------------------------------------------------------

    def log_event(self, event: AuditEvent) -> str:
        """Insert an event and return its id ("" if the write failed)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"), sort_keys=True)
            if event.metadata
            else None
        )

        try:
            with self._db.lock:
                conn = self._db.connection
                conn.execute(
                    """INSERT INTO audit_log
                       (id, timestamp, action, sender_hash, padding_level, domain,
                        duration_ms, status, error_type, metadata_json)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        event_id,
                        now,
                        event.action,
                        event.sender_hash or None,
                        event.padding_level,
                        event.domain,
                        event.duration_ms,
                        event.status,
                        event.error_type,
                        metadata_json,
                    ),
                )
                conn.commit()
        except Exception:
            logger.exception("Failed to write audit event; event lost")
            return ""
        return event_id

    def log_message(
        self,
        sender_id: str,
        *,
        padding_level: str | None = None,
        domain: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        return self.log_event(AuditEvent(
            action="message_processed",
            sender_hash=hash_sender(sender_id),
            padding_level=padding_level,
            domain=domain,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def log_feedback(
        self,
        sender_id: str,
        *,
        satisfaction: str,
        requested_level: str | None = None,
        context_key: str | None = None,
    ) -> str:
        return self.log_event(AuditEvent(
            action="feedback_applied",
            sender_hash=hash_sender(sender_id),
            padding_level=requested_level,
            metadata={"satisfaction": satisfaction, "context_key": context_key},
        ))

    def log_user_deleted(self, sender_id: str, *, existed: bool) -> str:
        return self.log_event(AuditEvent(
            action="user_deleted",
            sender_hash=hash_sender(sender_id),
            metadata={"existed": existed},
        ))

    # ---------------------------------------------------------------
    # Read
    # ---------------------------------------------------------------

    def get_events(
        self,
        *,
        action: str | None = None,
        sender_id: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query events, newest first."""
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if sender_id:
            conditions.append("sender_hash = ?")
            params.append(hash_sender(sender_id))
        if since:
            conditions.append("timestamp >= ?")
            params.append(since)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        with self._db.lock:
            rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None) -> int:
        with self._db.lock:
            if action:
                row = self._db.connection.execute(
                    "SELECT COUNT(*) FROM audit_log WHERE action = ?", (action,)
                ).fetchone()
            else:
                row = self._db.connection.execute("SELECT COUNT(*) FROM audit_log").fetchone()
        return row[0]
