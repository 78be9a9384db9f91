"""Emotional indicator detection over fixed keyword families."""

from __future__ import annotations

import logging

from cpad.core.classification.lexicon import load_indicator_families, phrase_pattern
from cpad.core.classification.models import EmotionalIndicator, EmotionalProfile, IndicatorFamily
from cpad.core.text.normalizer import normalize

logger = logging.getLogger(__name__)


class EmotionalIndicatorDetector:
    """Matches each family's keywords as whole words; one indicator per family."""

    def __init__(self, families: tuple[IndicatorFamily, ...] | None = None) -> None:
        self._families = families if families is not None else load_indicator_families()
        self._patterns = [
            (family, [phrase_pattern(k) for k in family.keywords]) for family in self._families
        ]

    @property
    def families(self) -> tuple[IndicatorFamily, ...]:
        return self._families

    def detect(self, text: str) -> EmotionalProfile:
        key = normalize(text)
        if not key:
            return EmotionalProfile()
        try:
            indicators = tuple(
                EmotionalIndicator(name=family.name, weight=family.weight)
                for family, patterns in self._patterns
                if any(p.search(key) for p in patterns)
            )
        except Exception:
            logger.exception("Emotional detection failed; reporting no indicators")
            return EmotionalProfile()

        profile = EmotionalProfile(indicators=indicators)
        if indicators:
            logger.debug(
                "Emotional indicators %s (influence=%.3f)",
                profile.names, profile.combined_influence,
            )
        return profile
