"""Per-sender preference store.

One of the two pieces of shared mutable state in the pipeline. A store lock
guards the record map; a per-user lock serializes updates for one sender so
concurrent messages from the same sender cannot lose effectiveness or
interaction-count updates, while different senders update in parallel.
User locks come from a fixed stripe of locks keyed by user id, so deleting
or evicting a sender never hands a second lock to a concurrent writer.

When a repository is attached, every update is written through while the
user lock is held, so a delete cannot interleave with a pending write. Write
failures leave the in-memory state updated and surface as
StoreUnavailableError so callers can log and carry on.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import threading
from collections import Counter, deque
from datetime import datetime, timezone

from cpad.core.classification.models import Domain
from cpad.core.padding.levels import PaddingLevel
from cpad.core.preferences.models import (
    CommunicationStyle,
    ConversationEntry,
    Satisfaction,
    UserPreferenceRecord,
)
from cpad.core.preferences.patterns import extract_patterns, style_from_patterns, update_patterns
from cpad.core.storage.database import DatabaseError
from cpad.core.storage.repository import PreferenceRepository, RepositoryError

logger = logging.getLogger(__name__)

EFFECTIVENESS_ALPHA = 0.2
EVICTION_FRACTION = 0.1
USER_LOCK_STRIPES = 64


class StoreUnavailableError(Exception):
    """Raised when the backing store cannot be read or written."""


class UserPreferenceStore:
    """Learned per-sender preferences with bounded history.

    Usage::

        store = UserPreferenceStore(capacity=500, history_limit=100)
        store.get("alice").preferred_padding_level  # PaddingLevel.MEDIUM
        store.apply_feedback("alice", Satisfaction.NEGATIVE, PaddingLevel.LIGHT)
        store.get("alice").preferred_padding_level  # PaddingLevel.LIGHT
    """

    def __init__(
        self,
        capacity: int = 500,
        history_limit: int = 100,
        repository: PreferenceRepository | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("Profile capacity must be at least 1")
        if history_limit < 1:
            raise ValueError("History limit must be at least 1")
        self._capacity = capacity
        self._history_limit = history_limit
        self._repository = repository
        self._records: dict[str, UserPreferenceRecord] = {}
        self._histories: dict[str, deque[ConversationEntry]] = {}
        self._user_locks = tuple(threading.Lock() for _ in range(USER_LOCK_STRIPES))
        self._lock = threading.Lock()
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def history_limit(self) -> int:
        return self._history_limit

    @property
    def evictions(self) -> int:
        return self._evictions

    @property
    def persistent(self) -> bool:
        return self._repository is not None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._records

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, user_id: str) -> UserPreferenceRecord:
        """Return a copy of the sender's record, creating a default one if needed."""
        with self._user_lock(user_id):
            return _copy(self._get_or_create(user_id))

    def history(self, user_id: str) -> list[ConversationEntry]:
        with self._lock:
            entries = self._histories.get(user_id)
            return list(entries) if entries else []

    def snapshot(self) -> dict[str, dict]:
        """Serializable view of every record, keyed by user id."""
        with self._lock:
            records = list(self._records.values())
        return {r.user_id: r.to_dict() for r in records}

    def aggregate_effectiveness(self) -> float:
        """Mean effectiveness over all records; 0.5 when the store is empty."""
        with self._lock:
            values = [r.effectiveness for r in self._records.values()]
        return sum(values) / len(values) if values else 0.5

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_interaction(self, user_id: str, entry: ConversationEntry) -> UserPreferenceRecord:
        """Append ``entry`` to the bounded history and update interaction state.

        Raises:
            StoreUnavailableError: If the write-through to the repository fails.
        """
        with self._user_lock(user_id):
            record = self._get_or_create(user_id)
            with self._lock:
                history = self._histories.setdefault(user_id, deque(maxlen=self._history_limit))
                history.append(entry)
                recent = list(history)

            record.total_interactions += 1
            record.learned_patterns = update_patterns(
                record.learned_patterns, extract_patterns(entry.input_text)
            )
            if entry.domain_flag == Domain.NEURODIVERSITY:
                record.neurodiversity_aware = True
            record.domain_affinity = _domain_affinity(recent)
            record.last_updated = _utcnow()
            result = _copy(record)
            self._write_through(result, entry)
        return result

    def apply_feedback(
        self,
        user_id: str,
        satisfaction: Satisfaction,
        requested_level: PaddingLevel | None = None,
        context_key: str | None = None,
    ) -> UserPreferenceRecord:
        """Fold one piece of feedback into the sender's record.

        Effectiveness moves toward the satisfaction score by an EMA with
        alpha 0.2. An explicit ``requested_level`` becomes the preferred
        level, or, with ``context_key``, the override for that context.
        The communication style follows the direction of the requested
        change, falling back to learned conversation patterns.

        Raises:
            StoreUnavailableError: If the write-through to the repository fails.
        """
        with self._user_lock(user_id):
            record = self._get_or_create(user_id)
            record.effectiveness = _clamp(
                (1 - EFFECTIVENESS_ALPHA) * record.effectiveness
                + EFFECTIVENESS_ALPHA * satisfaction.score
            )
            record.feedback_count += 1

            style: CommunicationStyle | None = None
            if requested_level is not None:
                if context_key:
                    previous = record.context_overrides.get(context_key, record.preferred_padding_level)
                    record.context_overrides[context_key] = requested_level
                else:
                    previous = record.preferred_padding_level
                    record.preferred_padding_level = requested_level
                    record.level_score = (
                        (1 - EFFECTIVENESS_ALPHA) * record.level_score
                        + EFFECTIVENESS_ALPHA * requested_level.rank
                    )
                if requested_level.rank < previous.rank:
                    style = CommunicationStyle.DIRECT
                elif requested_level.rank > previous.rank:
                    style = CommunicationStyle.SUPPORTIVE
            if style is None:
                style = style_from_patterns(record.learned_patterns)
            if style is not None and style != record.communication_style:
                logger.debug("Communication style for one user: %s -> %s",
                             record.communication_style.value, style.value)
                record.communication_style = style

            with self._lock:
                history = self._histories.get(user_id)
                if history and history[-1].satisfaction is None:
                    history[-1].satisfaction = satisfaction

            record.last_updated = _utcnow()
            result = _copy(record)
            self._write_through(result)

        logger.info(
            "Feedback applied: satisfaction=%s requested=%s context=%s effectiveness=%.3f",
            satisfaction.value,
            requested_level.value if requested_level else None,
            context_key,
            result.effectiveness,
        )
        return result

    def set_context_override(self, user_id: str, context_key: str, level: PaddingLevel) -> None:
        with self._user_lock(user_id):
            record = self._get_or_create(user_id)
            record.context_overrides[context_key] = level
            record.last_updated = _utcnow()
            self._write_through(_copy(record))

    def clear_context_override(self, user_id: str, context_key: str) -> bool:
        with self._user_lock(user_id):
            record = self._get_or_create(user_id)
            removed = record.context_overrides.pop(context_key, None) is not None
            if removed:
                record.last_updated = _utcnow()
                self._write_through(_copy(record))
        return removed

    def delete_user(self, user_id: str) -> bool:
        """Forget a sender entirely, including any persisted state.

        Waits for any in-flight update for the sender, including its
        write-through, before deleting.
        """
        with self._user_lock(user_id):
            with self._lock:
                existed = self._records.pop(user_id, None) is not None
                self._histories.pop(user_id, None)
            if self._repository is not None:
                try:
                    existed = self._repository.delete_user(user_id) > 0 or existed
                except (RepositoryError, DatabaseError) as exc:
                    raise StoreUnavailableError(f"Cannot delete persisted preferences: {exc}") from exc
        return existed

    def warm_start(self) -> int:
        """Load the most recently updated persisted records. Returns count loaded."""
        if self._repository is None:
            return 0
        try:
            records = self._repository.load_preferences(limit=self._capacity)
        except (RepositoryError, DatabaseError) as exc:
            raise StoreUnavailableError(f"Cannot load persisted preferences: {exc}") from exc
        with self._lock:
            for record in records:
                self._records.setdefault(record.user_id, record)
        logger.info("Warm-started %d preference records", len(records))
        return len(records)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _user_lock(self, user_id: str) -> threading.Lock:
        return self._user_locks[hash(user_id) % len(self._user_locks)]

    def _get_or_create(self, user_id: str) -> UserPreferenceRecord:
        # Caller holds the user lock
        with self._lock:
            record = self._records.get(user_id)
            if record is not None:
                return record
            record = UserPreferenceRecord(user_id=user_id)
            self._records[user_id] = record
            if len(self._records) > self._capacity:
                self._evict(keep=user_id)
            return record

    def _evict(self, keep: str) -> None:
        # Caller holds the store lock
        count = max(1, math.ceil(self._capacity * EVICTION_FRACTION))
        candidates = sorted(
            (r for r in self._records.values() if r.user_id != keep),
            key=lambda r: r.last_updated,
        )
        for record in candidates[:count]:
            del self._records[record.user_id]
            self._histories.pop(record.user_id, None)
        self._evictions += min(count, len(candidates))
        logger.info("Preference store over capacity; evicted %d least-recently-updated records",
                    min(count, len(candidates)))

    def _write_through(self, record: UserPreferenceRecord, entry: ConversationEntry | None = None) -> None:
        if self._repository is None:
            return
        try:
            self._repository.save_preferences(record)
            if entry is not None:
                self._repository.append_entry(record.user_id, entry, self._history_limit)
        except (RepositoryError, DatabaseError) as exc:
            raise StoreUnavailableError(f"Preference write-through failed: {exc}") from exc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _copy(record: UserPreferenceRecord) -> UserPreferenceRecord:
    return dataclasses.replace(
        record,
        context_overrides=dict(record.context_overrides),
        learned_patterns=dict(record.learned_patterns),
    )


def _domain_affinity(history: list[ConversationEntry]) -> Domain:
    counts = Counter(e.domain_flag for e in history if e.domain_flag != Domain.GENERAL)
    if not counts:
        return Domain.GENERAL
    return counts.most_common(1)[0][0]
