"""Tests for padding levels and response composition."""

from __future__ import annotations

import pytest

from cpad.core.classification.models import Domain
from cpad.core.padding.composer import ENHANCED_WRAPPERS, LEAD_INS, ResponseComposer
from cpad.core.padding.levels import LEVEL_DESCRIPTIONS, PaddingLevel
from cpad.core.text.structure import SentenceKind


@pytest.fixture
def composer() -> ResponseComposer:
    return ResponseComposer()


class TestPaddingLevel:
    def test_order(self):
        assert [level.rank for level in PaddingLevel] == [0, 1, 2, 3]
        assert PaddingLevel.from_rank(2) == PaddingLevel.MEDIUM

    def test_step_clamps(self):
        assert PaddingLevel.LIGHT.step(1) == PaddingLevel.MEDIUM
        assert PaddingLevel.ENHANCED.step(1) == PaddingLevel.ENHANCED
        assert PaddingLevel.NONE.step(-1) == PaddingLevel.NONE
        assert PaddingLevel.from_rank(9) == PaddingLevel.ENHANCED

    def test_cap(self):
        assert PaddingLevel.ENHANCED.cap(PaddingLevel.LIGHT) == PaddingLevel.LIGHT
        assert PaddingLevel.NONE.cap(PaddingLevel.LIGHT) == PaddingLevel.NONE

    def test_every_level_is_described(self):
        assert set(LEVEL_DESCRIPTIONS) == set(PaddingLevel)


class TestCompose:
    def test_medium_question_request(self, composer):
        result = composer.compose(
            "Can you help me with this?", PaddingLevel.MEDIUM, Domain.GENERAL, SentenceKind.QUESTION
        )
        assert result == "I understand you're asking about this. Can you help me with this? Please."

    def test_none_passes_text_through(self, composer):
        assert composer.compose("  keep   me ", PaddingLevel.NONE) == "  keep   me "

    @pytest.mark.parametrize("level", list(PaddingLevel))
    def test_blank_input_is_empty_at_every_level(self, composer, level):
        assert composer.compose("", level) == ""
        assert composer.compose("   ", level) == ""

    def test_light_adds_terminal_punctuation(self, composer):
        assert composer.compose("Send the file", PaddingLevel.LIGHT) == "Send the file."

    def test_light_adds_politeness_to_requests(self, composer):
        assert composer.compose("Could you send it", PaddingLevel.LIGHT) == "Could you send it. Please."

    def test_light_does_not_repeat_please(self, composer):
        text = "Could you please send it?"
        assert composer.compose(text, PaddingLevel.LIGHT) == text

    def test_medium_domain_lead_in(self, composer):
        result = composer.compose(
            "The sample size matters", PaddingLevel.MEDIUM, Domain.ACADEMIC, SentenceKind.STATEMENT
        )
        assert result == "From a scholarly perspective: The sample size matters."

    def test_medium_without_structure(self, composer):
        assert composer.compose("Noted", PaddingLevel.MEDIUM) == "Noted."

    def test_enhanced_general(self, composer):
        result = composer.compose("Thanks for the update", PaddingLevel.ENHANCED)
        assert result == (
            "I appreciate you reaching out. Thanks for the update. "
            "I'm here to help if you have any other questions."
        )

    def test_enhanced_academic(self, composer):
        opening, closing = ENHANCED_WRAPPERS[Domain.ACADEMIC]
        result = composer.compose("The sample is small.", PaddingLevel.ENHANCED, Domain.ACADEMIC)
        assert result == opening + "The sample is small." + closing

    def test_every_domain_has_wording(self):
        assert set(LEAD_INS) == set(Domain)
        assert set(ENHANCED_WRAPPERS) == set(Domain)

    def test_deterministic(self, composer):
        args = ("Could you check this", PaddingLevel.MEDIUM, Domain.TECHNICAL, SentenceKind.QUESTION)
        assert composer.compose(*args) == composer.compose(*args)
