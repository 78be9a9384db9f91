"""Preference repository: persistence for learned per-sender state.

The repository mediates between the preference models and SQLite, using
FieldEncryptor to encrypt conversation text. Preference records are stored
as JSON alongside a few clear columns for inspection.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime
from typing import Any

from cpad.core.classification.models import Domain
from cpad.core.padding.levels import PaddingLevel
from cpad.core.preferences.models import ConversationEntry, Satisfaction, UserPreferenceRecord
from cpad.core.storage.database import DatabaseError, PreferenceDatabase
from cpad.core.storage.encryption import EncryptionError, FieldEncryptor

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


class PreferenceRepository:
    """CRUD repository for preference records and encrypted history.

    Usage::

        db = PreferenceDatabase(":memory:")
        db.initialize()
        repo = PreferenceRepository(db, FieldEncryptor(key))

        repo.save_preferences(record)
        repo.append_entry("alice", entry, history_limit=100)
        records = repo.load_preferences()
    """

    def __init__(self, database: PreferenceDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            return self._db.connection.execute(sql, params)
        except (sqlite3.Error, DatabaseError) as exc:
            raise RepositoryError(f"Query failed: {exc}") from exc

    def _commit(self) -> None:
        try:
            self._db.connection.commit()
        except (sqlite3.Error, DatabaseError) as exc:
            raise RepositoryError(f"Commit failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Preference records
    # ------------------------------------------------------------------

    def save_preferences(self, record: UserPreferenceRecord) -> None:
        """Insert or replace one preference record."""
        with self._db.lock:
            self._execute(
                """INSERT INTO user_preferences
                   (user_id, preferred_level, communication_style, effectiveness,
                    total_interactions, record_json, last_updated)
                   VALUES (?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET
                     preferred_level = excluded.preferred_level,
                     communication_style = excluded.communication_style,
                     effectiveness = excluded.effectiveness,
                     total_interactions = excluded.total_interactions,
                     record_json = excluded.record_json,
                     last_updated = excluded.last_updated""",
                (
                    record.user_id,
                    record.preferred_padding_level.value,
                    record.communication_style.value,
                    record.effectiveness,
                    record.total_interactions,
                    json.dumps(record.to_dict(), separators=(",", ":")),
                    record.last_updated.isoformat(),
                ),
            )
            self._commit()

    def get_preferences(self, user_id: str) -> UserPreferenceRecord | None:
        with self._db.lock:
            row = self._execute(
                "SELECT record_json FROM user_preferences WHERE user_id = ?", (user_id,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def load_preferences(self, limit: int | None = None) -> list[UserPreferenceRecord]:
        """Most recently updated records first."""
        query = "SELECT record_json FROM user_preferences ORDER BY last_updated DESC"
        params: tuple[Any, ...] = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._db.lock:
            rows = self._execute(query, params).fetchall()
        records = []
        for row in rows:
            try:
                records.append(self._row_to_record(row))
            except RepositoryError:
                logger.warning("Skipping unreadable preference record")
        return records

    def count_users(self) -> int:
        with self._db.lock:
            return self._execute("SELECT COUNT(*) FROM user_preferences").fetchone()[0]

    def delete_user(self, user_id: str) -> int:
        """Delete a sender's record and history. Returns rows deleted."""
        with self._db.lock:
            entries = self._execute(
                "DELETE FROM conversation_entries WHERE user_id = ?", (user_id,)
            ).rowcount
            records = self._execute(
                "DELETE FROM user_preferences WHERE user_id = ?", (user_id,)
            ).rowcount
            self._commit()
        logger.info("Deleted %d records and %d history entries for one user", records, entries)
        return records + entries

    # ------------------------------------------------------------------
    # Conversation history
    # ------------------------------------------------------------------

    def append_entry(self, user_id: str, entry: ConversationEntry, history_limit: int = 100) -> str:
        """Append one entry and trim the sender's history to ``history_limit``."""
        try:
            text_enc = self._enc.encrypt({"input": entry.input_text, "output": entry.output_text})
        except EncryptionError as exc:
            raise RepositoryError(f"Cannot encrypt conversation entry: {exc}") from exc

        entry_id = str(uuid.uuid4())
        with self._db.lock:
            self._execute(
                """INSERT INTO conversation_entries
                   (id, user_id, timestamp, level_used, domain_flag, satisfaction,
                    latency_ms, text_enc)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry_id,
                    user_id,
                    entry.timestamp.isoformat(),
                    entry.level_used.value,
                    entry.domain_flag.value,
                    entry.satisfaction.value if entry.satisfaction else None,
                    entry.latency_ms,
                    text_enc,
                ),
            )
            self._execute(
                """DELETE FROM conversation_entries
                   WHERE user_id = ? AND id NOT IN (
                     SELECT id FROM conversation_entries WHERE user_id = ?
                     ORDER BY timestamp DESC, rowid DESC LIMIT ?
                   )""",
                (user_id, user_id, history_limit),
            )
            self._commit()
        return entry_id

    def get_history(self, user_id: str, limit: int = 100) -> list[ConversationEntry]:
        """Oldest first, at most ``limit`` most recent entries."""
        with self._db.lock:
            rows = self._execute(
                """SELECT * FROM conversation_entries WHERE user_id = ?
                   ORDER BY timestamp DESC, rowid DESC LIMIT ?""",
                (user_id, limit),
            ).fetchall()
        return [self._row_to_entry(row) for row in reversed(rows)]

    def reencrypt_history(self) -> int:
        """Re-encrypt every stored entry under the active key. Returns count."""
        with self._db.lock:
            rows = self._execute("SELECT id, text_enc FROM conversation_entries").fetchall()
            for row in rows:
                try:
                    token = self._enc.rotate(row["text_enc"])
                except EncryptionError as exc:
                    raise RepositoryError(f"Cannot rotate entry {row['id']}: {exc}") from exc
                self._execute(
                    "UPDATE conversation_entries SET text_enc = ? WHERE id = ?", (token, row["id"])
                )
            self._commit()
        logger.info("Re-encrypted %d conversation entries", len(rows))
        return len(rows)

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_record(row: Any) -> UserPreferenceRecord:
        try:
            return UserPreferenceRecord.from_dict(json.loads(row["record_json"]))
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as exc:
            raise RepositoryError(f"Corrupt preference record: {exc}") from exc

    def _row_to_entry(self, row: Any) -> ConversationEntry:
        try:
            text = self._enc.decrypt(row["text_enc"]) or {}
        except EncryptionError as exc:
            raise RepositoryError(f"Cannot decrypt conversation entry: {exc}") from exc
        return ConversationEntry(
            input_text=text.get("input", ""),
            output_text=text.get("output", ""),
            level_used=PaddingLevel(row["level_used"]),
            domain_flag=Domain(row["domain_flag"]),
            satisfaction=Satisfaction(row["satisfaction"]) if row["satisfaction"] else None,
            latency_ms=row["latency_ms"] or 0.0,
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )
