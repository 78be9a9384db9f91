"""Domain classifier: weighted keyword scoring with a shared cache.

Scoring:
1. Cache lookup by normalized text
2. Per-domain sum of weights for every keyword found as a substring
3. Separate sum over the personal/general vocabulary
4. Primary = highest-scoring domain; secondaries score above half of it
5. Specialized iff the primary weight beats the personal weight and 1.0
6. Formality from marker phrases (peer > formal > casual), else by domain
"""

from __future__ import annotations

import logging

from cpad.core.classification.cache import ClassificationCache
from cpad.core.classification.lexicon import load_classifier_lexicon, phrase_pattern
from cpad.core.classification.models import (
    NEUTRAL_CLASSIFICATION,
    SENSITIVE_DOMAINS,
    ClassifierLexicon,
    Domain,
    DomainClassification,
    Formality,
)
from cpad.core.text.normalizer import normalize

logger = logging.getLogger(__name__)

SECONDARY_FRACTION = 0.5
SPECIALIZED_THRESHOLD = 1.0
FORMALITY_PRECEDENCE = (Formality.PEER, Formality.FORMAL, Formality.CASUAL)


class DomainClassifier:
    """Classifies normalized text into a domain. Never raises.

    Usage::

        classifier = DomainClassifier(ClassificationCache(capacity=1000))
        result = classifier.classify("peer-review methodology hypothesis")
        result.primary_domain  # Domain.ACADEMIC
        result.formality       # Formality.PEER
    """

    def __init__(
        self,
        cache: ClassificationCache,
        lexicon: ClassifierLexicon | None = None,
    ) -> None:
        self._cache = cache
        self._lexicon = lexicon or load_classifier_lexicon()
        self._formality_patterns = {
            tier: [phrase_pattern(p) for p in self._lexicon.formality_markers.get(tier, ())]
            for tier in FORMALITY_PRECEDENCE
        }
        self._sensitive_patterns = [phrase_pattern(p) for p in self._lexicon.sensitive_markers]

    @property
    def cache(self) -> ClassificationCache:
        return self._cache

    def classify(self, text: str) -> DomainClassification:
        """Classify ``text`` (normalized here as well, so raw input is accepted)."""
        key = normalize(text)
        if not key:
            return NEUTRAL_CLASSIFICATION

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            result = self._score(key)
        except Exception:
            logger.exception("Domain classification failed; falling back to general")
            return NEUTRAL_CLASSIFICATION

        self._cache.put(key, result)
        return result

    def has_sensitive_marker(self, text: str) -> bool:
        key = normalize(text)
        return any(p.search(key) for p in self._sensitive_patterns)

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _score(self, text: str) -> DomainClassification:
        scores: dict[Domain, float] = {}
        matched: set[str] = set()
        for table in self._lexicon.domains:
            total = 0.0
            for entry in table.entries:
                if entry.keyword in text:
                    total += entry.weight
                    matched.add(entry.keyword)
            if total > 0:
                scores[table.domain] = total

        personal = 0.0
        for entry in self._lexicon.personal:
            if entry.keyword in text:
                personal += entry.weight
                matched.add(entry.keyword)

        # Ties keep lexicon order
        primary = Domain.GENERAL
        primary_weight = 0.0
        for domain, score in scores.items():
            if score > primary_weight:
                primary, primary_weight = domain, score

        secondary = frozenset(
            domain for domain, score in scores.items()
            if domain != primary and score > SECONDARY_FRACTION * primary_weight
        )
        is_specialized = primary_weight > personal and primary_weight > SPECIALIZED_THRESHOLD
        total = primary_weight + personal
        confidence = primary_weight / total if total > 0 else 0.5
        sensitive = primary in SENSITIVE_DOMAINS or any(
            p.search(text) for p in self._sensitive_patterns
        )

        result = DomainClassification(
            is_specialized=is_specialized,
            primary_domain=primary,
            secondary_domains=secondary,
            confidence=confidence,
            weighted_score=primary_weight,
            matched_keywords=frozenset(matched),
            formality=self._formality(text, primary),
            sensitive=sensitive,
        )
        logger.debug(
            "Classified domain=%s specialized=%s weight=%.2f personal=%.2f formality=%s",
            primary.value, is_specialized, primary_weight, personal, result.formality.value,
        )
        return result

    def _formality(self, text: str, primary: Domain) -> Formality:
        for tier in FORMALITY_PRECEDENCE:
            if any(p.search(text) for p in self._formality_patterns[tier]):
                return tier
        table = self._lexicon.for_domain(primary)
        return table.default_formality if table else Formality.STANDARD
