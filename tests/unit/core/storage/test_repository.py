"""Tests for PreferenceRepository: records and encrypted history in SQLite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cpad.core.classification.models import Domain
from cpad.core.padding.levels import PaddingLevel
from cpad.core.preferences.models import (
    CommunicationStyle,
    ConversationEntry,
    Satisfaction,
    UserPreferenceRecord,
)
from cpad.core.storage.encryption import FieldEncryptor
from cpad.core.storage.repository import PreferenceRepository, RepositoryError

_BASE_TIME = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)


def _entry(n: int, **overrides) -> ConversationEntry:
    defaults = dict(
        input_text=f"message {n}",
        output_text=f"Message {n}.",
        level_used=PaddingLevel.LIGHT,
        domain_flag=Domain.GENERAL,
        latency_ms=1.5,
        timestamp=_BASE_TIME + timedelta(seconds=n),
    )
    defaults.update(overrides)
    return ConversationEntry(**defaults)


class TestPreferences:
    def test_save_and_get(self, preference_repository):
        record = UserPreferenceRecord(
            user_id="alice",
            preferred_padding_level=PaddingLevel.LIGHT,
            communication_style=CommunicationStyle.DIRECT,
            context_overrides={"academic": PaddingLevel.NONE},
            effectiveness=0.32,
        )
        preference_repository.save_preferences(record)

        loaded = preference_repository.get_preferences("alice")
        assert loaded.preferred_padding_level == PaddingLevel.LIGHT
        assert loaded.communication_style == CommunicationStyle.DIRECT
        assert loaded.context_overrides == {"academic": PaddingLevel.NONE}
        assert loaded.effectiveness == pytest.approx(0.32)

    def test_missing_user(self, preference_repository):
        assert preference_repository.get_preferences("nobody") is None

    def test_save_is_an_upsert(self, preference_repository):
        preference_repository.save_preferences(UserPreferenceRecord(user_id="alice"))
        preference_repository.save_preferences(
            UserPreferenceRecord(user_id="alice", preferred_padding_level=PaddingLevel.ENHANCED)
        )
        assert preference_repository.count_users() == 1
        assert preference_repository.get_preferences("alice").preferred_padding_level == PaddingLevel.ENHANCED

    def test_load_most_recent_first(self, preference_repository):
        for i, user in enumerate(["old", "middle", "new"]):
            preference_repository.save_preferences(
                UserPreferenceRecord(user_id=user, last_updated=_BASE_TIME + timedelta(minutes=i))
            )
        records = preference_repository.load_preferences(limit=2)
        assert [r.user_id for r in records] == ["new", "middle"]

    def test_load_skips_corrupt_rows(self, preference_repository, preference_db):
        preference_repository.save_preferences(UserPreferenceRecord(user_id="alice"))
        preference_db.connection.execute(
            """INSERT INTO user_preferences
               (user_id, preferred_level, communication_style, effectiveness,
                total_interactions, record_json, last_updated)
               VALUES ('broken', 'medium', 'unknown', 0.5, 0, '{not json', '2026-01-01')"""
        )
        records = preference_repository.load_preferences()
        assert [r.user_id for r in records] == ["alice"]

    def test_closed_database_raises_repository_error(self, preference_repository, preference_db):
        preference_db.close()
        with pytest.raises(RepositoryError):
            preference_repository.save_preferences(UserPreferenceRecord(user_id="alice"))


class TestHistory:
    def test_append_and_read_back(self, preference_repository):
        preference_repository.append_entry(
            "alice", _entry(1, satisfaction=Satisfaction.POSITIVE, domain_flag=Domain.ACADEMIC)
        )
        history = preference_repository.get_history("alice")
        assert len(history) == 1
        assert history[0].input_text == "message 1"
        assert history[0].output_text == "Message 1."
        assert history[0].satisfaction == Satisfaction.POSITIVE
        assert history[0].domain_flag == Domain.ACADEMIC

    def test_text_is_encrypted_at_rest(self, preference_repository, preference_db):
        preference_repository.append_entry("alice", _entry(1))
        row = preference_db.connection.execute(
            "SELECT text_enc FROM conversation_entries"
        ).fetchone()
        assert "message 1" not in row["text_enc"]

    def test_history_is_trimmed_to_limit(self, preference_repository):
        for n in range(5):
            preference_repository.append_entry("alice", _entry(n), history_limit=3)
        history = preference_repository.get_history("alice")
        assert [e.input_text for e in history] == ["message 2", "message 3", "message 4"]

    def test_trimming_is_per_user(self, preference_repository):
        preference_repository.append_entry("bob", _entry(0), history_limit=1)
        for n in range(3):
            preference_repository.append_entry("alice", _entry(n), history_limit=1)
        assert len(preference_repository.get_history("bob")) == 1

    def test_delete_user_removes_record_and_history(self, preference_repository):
        preference_repository.save_preferences(UserPreferenceRecord(user_id="alice"))
        preference_repository.append_entry("alice", _entry(1))
        preference_repository.append_entry("alice", _entry(2))

        assert preference_repository.delete_user("alice") == 3
        assert preference_repository.get_preferences("alice") is None
        assert preference_repository.get_history("alice") == []
        assert preference_repository.delete_user("alice") == 0


class TestKeyRotation:
    def test_reencrypt_history(self, preference_db, field_encryptor):
        old_key = FieldEncryptor.generate_key()
        PreferenceRepository(preference_db, FieldEncryptor(old_key)).append_entry("alice", _entry(1))

        new_key = FieldEncryptor.generate_key()
        rotating = PreferenceRepository(preference_db, FieldEncryptor(new_key, previous_keys=[old_key]))
        assert rotating.reencrypt_history() == 1

        fresh = PreferenceRepository(preference_db, FieldEncryptor(new_key))
        assert fresh.get_history("alice")[0].input_text == "message 1"

    def test_unreadable_history_raises(self, preference_db, field_encryptor):
        PreferenceRepository(preference_db, field_encryptor).append_entry("alice", _entry(1))
        stranger = PreferenceRepository(preference_db, FieldEncryptor(FieldEncryptor.generate_key()))
        with pytest.raises(RepositoryError):
            stranger.get_history("alice")
