"""Conversation recorder: writes each processed message to the preference store."""

from __future__ import annotations

import logging

from cpad.core.classification.models import Domain, DomainClassification
from cpad.core.padding.levels import PaddingLevel
from cpad.core.preferences.models import ConversationEntry
from cpad.core.preferences.store import StoreUnavailableError, UserPreferenceStore

logger = logging.getLogger(__name__)


class ConversationRecorder:
    """Builds a ConversationEntry and records it; never blocks the response."""

    def __init__(self, store: UserPreferenceStore) -> None:
        self._store = store
        self._skipped = 0

    @property
    def skipped(self) -> int:
        """Entries not recorded because the store was unavailable."""
        return self._skipped

    def record(
        self,
        sender_id: str,
        input_text: str,
        output_text: str,
        level: PaddingLevel,
        classification: DomainClassification,
        latency_ms: float,
    ) -> ConversationEntry:
        entry = ConversationEntry(
            input_text=input_text,
            output_text=output_text,
            level_used=level,
            domain_flag=(
                Domain.NEURODIVERSITY if classification.sensitive else classification.domain_tag
            ),
            latency_ms=latency_ms,
        )
        try:
            self._store.record_interaction(sender_id, entry)
        except StoreUnavailableError as exc:
            self._skipped += 1
            logger.warning("Conversation not recorded: %s", exc)
        return entry
