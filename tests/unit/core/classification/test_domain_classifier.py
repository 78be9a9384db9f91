"""Tests for the domain classifier and its cache."""

from __future__ import annotations

import pytest

from cpad.core.classification.cache import ClassificationCache
from cpad.core.classification.domain_classifier import DomainClassifier
from cpad.core.classification.models import (
    NEUTRAL_CLASSIFICATION,
    Domain,
    DomainClassification,
    Formality,
)


@pytest.fixture
def classifier(cache) -> DomainClassifier:
    return DomainClassifier(cache)


class TestScoring:
    def test_academic_peer_review(self, classifier):
        result = classifier.classify("peer-review methodology hypothesis")
        assert result.is_specialized is True
        assert result.primary_domain == Domain.ACADEMIC
        assert result.formality == Formality.PEER
        assert result.domain_tag == Domain.ACADEMIC
        # substring matching: "hypothesis" also contains "thesis"
        assert {"peer-review", "methodology", "hypothesis", "thesis"} <= result.matched_keywords
        assert result.weighted_score == pytest.approx(5.1)

    def test_specialized_needs_more_than_threshold(self, classifier):
        result = classifier.classify("Our research study")
        assert result.is_specialized is True
        assert result.confidence == pytest.approx(1.0)
        assert result.formality == Formality.FORMAL

    def test_personal_vocabulary_blocks_specialization(self, classifier):
        result = classifier.classify("I think the research is personal")
        assert result.primary_domain == Domain.ACADEMIC
        assert result.is_specialized is False
        assert result.domain_tag == Domain.GENERAL

    def test_personal_message_is_general(self, classifier):
        result = classifier.classify("I feel upset about my family")
        assert result.primary_domain == Domain.GENERAL
        assert result.is_specialized is False
        assert result.confidence == 0.0

    def test_casual_formality_marker(self, classifier):
        result = classifier.classify("hey, the poem and painting are done")
        assert result.primary_domain == Domain.CREATIVE
        assert result.formality == Formality.CASUAL

    def test_secondary_domains(self, classifier):
        result = classifier.classify("Academic research on neurodiversity")
        assert result.primary_domain == Domain.ACADEMIC
        assert result.secondary_domains == frozenset({Domain.NEURODIVERSITY})

    def test_unmatched_text_has_standard_formality(self, classifier):
        result = classifier.classify("see you at lunch")
        assert result.formality == Formality.STANDARD
        assert result.is_specialized is False


class TestSensitivity:
    def test_neurodiversity_primary_is_sensitive(self, classifier):
        result = classifier.classify("My autistic son has sensory overload")
        assert result.primary_domain == Domain.NEURODIVERSITY
        assert result.sensitive is True

    def test_marker_makes_any_domain_sensitive(self, classifier):
        result = classifier.classify("Academic research on neurodiversity")
        assert result.primary_domain == Domain.ACADEMIC
        assert result.sensitive is True

    def test_plain_message_is_not_sensitive(self, classifier):
        assert classifier.classify("Deploy the server tonight").sensitive is False

    def test_has_sensitive_marker(self, classifier):
        assert classifier.has_sensitive_marker("Dealing with ADHD at work") is True
        assert classifier.has_sensitive_marker("Dealing with deadlines at work") is False


class TestCaching:
    def test_empty_input_is_neutral(self, classifier, cache):
        assert classifier.classify("") is NEUTRAL_CLASSIFICATION
        assert classifier.classify("   ") is NEUTRAL_CLASSIFICATION
        assert len(cache) == 0

    def test_repeat_returns_identical_object(self, classifier, cache):
        first = classifier.classify("peer-review methodology hypothesis")
        second = classifier.classify("peer-review methodology hypothesis")
        assert second is first
        assert cache.hits == 1
        assert cache.misses == 1

    def test_key_is_normalized(self, classifier, cache):
        first = classifier.classify("peer-review methodology")
        second = classifier.classify("  Peer-Review   METHODOLOGY ")
        assert second is first
        assert "peer-review methodology" in cache

    def test_errors_fall_back_without_caching(self, classifier, cache, monkeypatch):
        def boom(text):
            raise RuntimeError("bad lexicon")

        monkeypatch.setattr(classifier, "_score", boom)
        assert classifier.classify("peer-review methodology") is NEUTRAL_CLASSIFICATION
        assert len(cache) == 0


class TestClassificationCache:
    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            ClassificationCache(capacity=0)

    def test_evicts_oldest_fifth_when_full(self):
        cache = ClassificationCache(capacity=10)
        for i in range(10):
            cache.put(f"k{i}", DomainClassification())
        cache.put("k10", DomainClassification())

        assert len(cache) == 9
        assert "k0" not in cache
        assert "k1" not in cache
        assert "k2" in cache
        assert "k10" in cache
        assert cache.evictions == 2

    def test_small_cache_evicts_at_least_one(self):
        cache = ClassificationCache(capacity=2)
        cache.put("a", DomainClassification())
        cache.put("b", DomainClassification())
        cache.put("c", DomainClassification())
        assert "a" not in cache
        assert len(cache) == 2

    def test_overwriting_existing_key_does_not_evict(self):
        cache = ClassificationCache(capacity=2)
        cache.put("a", DomainClassification())
        cache.put("b", DomainClassification())
        cache.put("a", DomainClassification(is_specialized=True))
        assert len(cache) == 2
        assert cache.evictions == 0

    def test_hit_rate_and_stats(self):
        cache = ClassificationCache(capacity=5)
        cache.put("a", DomainClassification())
        cache.get("a")
        cache.get("a")
        cache.get("missing")
        assert cache.hit_rate == pytest.approx(2 / 3)
        stats = cache.stats()
        assert stats["hits"] == 2
        assert stats["misses"] == 1
        assert stats["size"] == 1

    def test_clear(self):
        cache = ClassificationCache(capacity=5)
        cache.put("a", DomainClassification())
        cache.get("a")
        cache.clear()
        assert len(cache) == 0
        assert cache.hits == 0
