"""Padding pipeline: the synchronous entry point for one message.

Flow per message:
1. Trim and filter the text (lexical filter)
2. Structural classification of the filtered text
3. Domain, emotional and cultural classification of the normalized text
4. Padding decision from those signals plus the sender's learned record
5. Compose the response and record the interaction

Any unexpected error is logged and the unmodified input is returned.
"""

from __future__ import annotations

import logging
import re
import threading
import time

from cpad.core.alignment.validator import AlignmentConfig, AlignmentReport, AlignmentValidator
from cpad.core.audit.logger import AuditLogger
from cpad.core.classification.cache import ClassificationCache
from cpad.core.classification.cultural import CulturalContextDetector
from cpad.core.classification.domain_classifier import DomainClassifier
from cpad.core.classification.emotional import EmotionalIndicatorDetector
from cpad.core.classification.models import CulturalContext
from cpad.core.config.settings import Settings, get_settings
from cpad.core.padding.composer import ResponseComposer
from cpad.core.padding.levels import PaddingLevel
from cpad.core.padding.selector import PaddingSelector
from cpad.core.pipeline.models import PipelineMetrics, PipelineResult
from cpad.core.pipeline.recorder import ConversationRecorder
from cpad.core.preferences.models import Satisfaction
from cpad.core.preferences.store import StoreUnavailableError, UserPreferenceStore
from cpad.core.storage.repository import PreferenceRepository
from cpad.core.text.lexical_filter import LexicalFilter
from cpad.core.text.normalizer import normalize
from cpad.core.text.structure import StructuralClassifier

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w")


class PaddingPipeline:
    """Adaptive response padding for short messages.

    The classification cache and the preference store are the only shared
    state; both are injected so several pipelines (or tests) can share or
    isolate them explicitly.

    Usage::

        pipeline = PaddingPipeline(ClassificationCache(), UserPreferenceStore())
        pipeline.process("Can you help me with this?", "alice")
        # "I understand you're asking about this. Can you help me with this? Please."
    """

    def __init__(
        self,
        cache: ClassificationCache,
        store: UserPreferenceStore,
        *,
        alignment: AlignmentValidator | None = None,
        lexical_filter: LexicalFilter | None = None,
        structural: StructuralClassifier | None = None,
        classifier: DomainClassifier | None = None,
        emotional: EmotionalIndicatorDetector | None = None,
        cultural: CulturalContextDetector | None = None,
        selector: PaddingSelector | None = None,
        composer: ResponseComposer | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self._cache = cache
        self._store = store
        self._alignment = alignment or AlignmentValidator()
        self._filter = lexical_filter or LexicalFilter()
        self._structural = structural or StructuralClassifier()
        self._classifier = classifier or DomainClassifier(cache)
        self._emotional = emotional or EmotionalIndicatorDetector()
        self._cultural = cultural
        self._selector = selector or PaddingSelector()
        self._composer = composer or ResponseComposer()
        self._recorder = ConversationRecorder(store)
        self._audit = audit

        self._counter_lock = threading.Lock()
        self._processed = 0
        self._fallbacks = 0

        if self._alignment.degraded:
            logger.warning("Pipeline starting in degraded mode (alignment check failed)")

    @property
    def store(self) -> UserPreferenceStore:
        return self._store

    @property
    def cache(self) -> ClassificationCache:
        return self._cache

    @property
    def alignment(self) -> AlignmentValidator:
        return self._alignment

    @property
    def lexical_filter(self) -> LexicalFilter:
        return self._filter

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def process(self, text: str, sender_id: str) -> str:
        """Return the padded response for ``text``; never raises."""
        return self.process_message(text, sender_id).output_text

    def process_message(
        self, text: str, sender_id: str, context_key: str | None = None
    ) -> PipelineResult:
        """Run the full pipeline and return every intermediate result."""
        start = time.perf_counter()
        try:
            result = self._run(text or "", sender_id, context_key, start)
        except Exception as exc:
            logger.exception("Pipeline failed; returning input unchanged")
            with self._counter_lock:
                self._processed += 1
                self._fallbacks += 1
            if self._audit is not None:
                self._audit.log_message(
                    sender_id,
                    duration_ms=(time.perf_counter() - start) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                )
            return PipelineResult(input_text=text or "", output_text=text or "", fallback=True)

        with self._counter_lock:
            self._processed += 1
        return result

    def apply_feedback(
        self,
        sender_id: str,
        satisfaction: Satisfaction,
        requested_level: PaddingLevel | None = None,
        context_key: str | None = None,
    ) -> None:
        """Fold feedback into the sender's record. Store failures are logged, not raised."""
        try:
            self._store.apply_feedback(sender_id, satisfaction, requested_level, context_key)
        except StoreUnavailableError as exc:
            logger.warning("Feedback kept in memory only: %s", exc)
        if self._audit is not None:
            self._audit.log_feedback(
                sender_id,
                satisfaction=satisfaction.value,
                requested_level=requested_level.value if requested_level else None,
                context_key=context_key,
            )

    def forget(self, sender_id: str) -> bool:
        """Delete everything learned about a sender."""
        existed = self._store.delete_user(sender_id)
        if self._audit is not None:
            self._audit.log_user_deleted(sender_id, existed=existed)
        return existed

    def configure_alignment(self, config: AlignmentConfig) -> AlignmentReport:
        """Re-run the alignment self-check with new constants; never raises."""
        return self._alignment.configure(config)

    def metrics(self) -> PipelineMetrics:
        return PipelineMetrics(
            cache_hits=self._cache.hits,
            cache_misses=self._cache.misses,
            cache_size=len(self._cache),
            cache_hit_rate=self._cache.hit_rate,
            profile_count=len(self._store),
            aggregate_effectiveness=self._store.aggregate_effectiveness(),
            filter_activations=self._filter.activations,
            alignment_valid=self._alignment.valid,
            degraded=self._alignment.degraded,
            messages_processed=self._processed,
            fallbacks=self._fallbacks,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(
        self, text: str, sender_id: str, context_key: str | None, start: float
    ) -> PipelineResult:
        stripped = text.strip()
        filtered = self._filter.apply(stripped)
        # A message made only of filler keeps its original wording
        working = filtered.text if _WORD.search(filtered.text) else stripped

        structure = self._structural.classify(working)
        normalized = normalize(working)
        classification = self._classifier.classify(normalized)
        emotions = self._emotional.detect(normalized)
        culture = self._cultural.detect(normalized) if self._cultural else CulturalContext()

        record = self._store.get(sender_id)
        decision = self._selector.select(
            classification,
            emotions,
            record,
            culture=culture if self._cultural else None,
            context_key=context_key,
        )
        output = self._composer.compose(
            working, decision.level, classification.domain_tag, structure.top_kind
        )
        latency_ms = (time.perf_counter() - start) * 1000

        if stripped:
            self._recorder.record(
                sender_id, stripped, output, decision.level, classification, latency_ms
            )
        if self._audit is not None:
            self._audit.log_message(
                sender_id,
                padding_level=decision.level.value,
                domain=classification.domain_tag.value,
                duration_ms=latency_ms,
                metadata={"source": decision.source, "filtered": filtered.modified},
            )

        logger.info(
            "Processed message: level=%s source=%s domain=%s (%.2f ms)",
            decision.level.value, decision.source, classification.domain_tag.value, latency_ms,
        )
        return PipelineResult(
            input_text=text,
            output_text=output,
            filtered_text=filtered.text,
            filter_modified=filtered.modified,
            uncertainty=self._filter.uncertainty(stripped),
            structure=structure,
            classification=classification,
            emotions=emotions,
            culture=culture,
            decision=decision,
            latency_ms=latency_ms,
        )


def build_pipeline(
    settings: Settings | None = None,
    *,
    repository: PreferenceRepository | None = None,
    audit: AuditLogger | None = None,
) -> PaddingPipeline:
    """Construct a pipeline and its shared stores from settings."""
    settings = settings or get_settings()
    alignment = AlignmentValidator(
        AlignmentConfig(
            value_a=settings.alignment_value_a,
            value_b=settings.alignment_value_b,
            value_c=settings.alignment_value_c,
            tolerance=settings.alignment_tolerance,
        )
    )
    cache = ClassificationCache(capacity=settings.cache_capacity)
    store = UserPreferenceStore(
        capacity=settings.profile_capacity,
        history_limit=settings.history_limit,
        repository=repository,
    )
    if repository is not None:
        try:
            store.warm_start()
        except StoreUnavailableError as exc:
            logger.warning("Starting with an empty preference store: %s", exc)

    return PaddingPipeline(
        cache,
        store,
        alignment=alignment,
        cultural=CulturalContextDetector() if settings.cultural_context else None,
        audit=audit,
    )
