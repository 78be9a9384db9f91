"""Cultural communication context detection.

Picks the family with the most distinct marker hits. The winning family's
bias nudges the padding level by one step in the selector's domain-default
and style-fallback paths.
"""

from __future__ import annotations

import logging

from cpad.core.classification.lexicon import load_cultural_families, phrase_pattern
from cpad.core.classification.models import CulturalContext, CulturalFamily
from cpad.core.text.normalizer import normalize

logger = logging.getLogger(__name__)


class CulturalContextDetector:
    def __init__(self, families: tuple[CulturalFamily, ...] | None = None) -> None:
        self._families = families if families is not None else load_cultural_families()
        self._patterns = [
            (family, [(m, phrase_pattern(m)) for m in family.markers]) for family in self._families
        ]

    def detect(self, text: str) -> CulturalContext:
        key = normalize(text)
        if not key:
            return CulturalContext()

        best: CulturalFamily | None = None
        best_markers: tuple[str, ...] = ()
        total_hits = 0
        try:
            for family, patterns in self._patterns:
                hits = tuple(marker for marker, pattern in patterns if pattern.search(key))
                total_hits += len(hits)
                if len(hits) > len(best_markers):
                    best, best_markers = family, hits
        except Exception:
            logger.exception("Cultural detection failed; using universal context")
            return CulturalContext()

        if best is None:
            return CulturalContext()

        context = CulturalContext(
            family=best.name,
            bias=best.bias,
            confidence=len(best_markers) / total_hits,
            matched_markers=best_markers,
        )
        logger.debug("Cultural context %s (bias=%+d)", context.family, context.bias)
        return context
