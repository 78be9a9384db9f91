"""Tests for emotional indicator and cultural context detection."""

from __future__ import annotations

import pytest

from cpad.core.classification.cultural import CulturalContextDetector
from cpad.core.classification.emotional import EmotionalIndicatorDetector
from cpad.core.classification.lexicon import INDICATOR_WEIGHT_RANGE
from cpad.core.classification.models import EmotionalIndicator, EmotionalProfile


@pytest.fixture(scope="module")
def detector() -> EmotionalIndicatorDetector:
    return EmotionalIndicatorDetector()


@pytest.fixture(scope="module")
def cultures() -> CulturalContextDetector:
    return CulturalContextDetector()


class TestEmotionalIndicators:
    def test_eight_families_within_weight_range(self, detector):
        low, high = INDICATOR_WEIGHT_RANGE
        assert len(detector.families) == 8
        assert all(low <= f.weight <= high for f in detector.families)

    @pytest.mark.parametrize("text,names", [
        ("I'm so excited about this!", ["enthusiastic"]),
        ("This is frustrating and it doesn't work", ["frustrated"]),
        ("I'm confused, this makes no sense", ["confused"]),
        ("Could you please help me professionally?", ["formal"]),
        ("Just tell me the answer.", ["direct"]),
        ("I'm worried about the deadline", ["anxious"]),
        ("Please analyze the data systematically", ["formal", "analytical"]),
        ("Can you help me with this?", []),
    ])
    def test_detects_families(self, detector, text, names):
        assert detector.detect(text).names == names

    def test_one_indicator_per_family(self, detector):
        profile = detector.detect("excited excited amazing awesome")
        assert profile.names == ["enthusiastic"]
        assert profile.combined_influence == pytest.approx(1.3)

    def test_whole_word_matching(self, detector):
        assert detector.detect("The candidate is here").has_indicators is False

    def test_wildcard_keyword(self, detector):
        assert detector.detect("Such frustration today").names == ["frustrated"]

    def test_combined_influence_with_two_indicators(self, detector):
        profile = detector.detect("Please analyze the data systematically")
        # mean(0.9, 0.7) * (0.7 + 0.3 * 2)
        assert profile.combined_influence == pytest.approx(1.04)

    def test_empty_input(self, detector):
        profile = detector.detect("")
        assert profile.has_indicators is False
        assert profile.combined_influence == 1.0


class TestCombinedInfluence:
    def test_multiplier_caps_at_one_and_a_half(self):
        indicators = tuple(EmotionalIndicator(name=f"f{i}", weight=1.0) for i in range(4))
        assert EmotionalProfile(indicators).combined_influence == pytest.approx(1.5)

    def test_single_indicator(self):
        profile = EmotionalProfile((EmotionalIndicator("frustrated", 0.3),))
        assert profile.combined_influence == pytest.approx(0.3)


class TestCulturalContext:
    @pytest.mark.parametrize("text,family", [
        ("I respectfully suggest we consider this scholarly approach with humility.", "east_asian"),
        ("Let's collaborate together on this research project as equals.", "nordic"),
        ("I want to debate and challenge these individual findings personally.", "western"),
        ("This passionate research connects our community and family traditions.", "mediterranean"),
        ("We share this knowledge collectively with community wisdom.", "african"),
        ("With respect to academic hierarchy, I provide detailed explanation.", "south_asian"),
        ("This warm personal approach values our collective academic familia.", "latin_american"),
        ("With honor and respect to tradition, we follow formal wisdom.", "middle_eastern"),
        ("From a global, international, diverse, and inclusive perspective.", "international"),
        ("Following standard academic best practices and principles.", "universal"),
    ])
    def test_detects_family(self, cultures, text, family):
        assert cultures.detect(text).family == family

    def test_bias_values(self, cultures):
        assert cultures.detect("Let's collaborate together as equals").bias == -1
        assert cultures.detect("We humbly seek harmony").bias == 1
        assert cultures.detect("A global and inclusive view").bias == 0

    def test_confidence_is_share_of_all_hits(self, cultures):
        # two nordic markers, one international
        context = cultures.detect("Let's collaborate together on global work")
        assert context.family == "nordic"
        assert context.confidence == pytest.approx(2 / 3)
        assert context.matched_markers == ("collaborate", "together")

    def test_no_markers_is_universal(self, cultures):
        context = cultures.detect("ship the build")
        assert context.family == "universal"
        assert context.bias == 0
        assert context.confidence == 0.0

    def test_empty_input(self, cultures):
        assert cultures.detect("").family == "universal"
