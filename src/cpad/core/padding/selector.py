"""Padding selector: fuses classification, emotion and preference signals.

Decision order (first applicable wins):
1. Emotional override: combined influence mapped through fixed bands
2. Contextual override stored on the sender's record
3. Sensitive domain: Light
4. Domain default for specialized text, shifted by communication style
5. Style fallback

Sensitive inputs are capped at Light on every path. Cultural bias, when
a context is supplied, nudges steps 4 and 5 by one level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from cpad.core.classification.models import (
    CulturalContext,
    Domain,
    DomainClassification,
    EmotionalProfile,
)
from cpad.core.padding.levels import PaddingLevel
from cpad.core.preferences.models import CommunicationStyle, UserPreferenceRecord

logger = logging.getLogger(__name__)

# Emotional bands: (upper bound of combined influence, step from base, confidence).
# The lowest band is absolute (Light) rather than relative.
EMOTIONAL_LIGHT_MAX = 0.4
EMOTIONAL_BANDS = (
    (0.8, -1, 0.75),
    (1.2, 0, 0.7),
)
EMOTIONAL_LIGHT_CONFIDENCE = 0.9
EMOTIONAL_UP_CONFIDENCE = 0.8

CONTEXT_OVERRIDE_CONFIDENCE = 0.9
SENSITIVE_CONFIDENCE = 0.85
SENSITIVE_CEILING = PaddingLevel.LIGHT

DOMAIN_LEVELS = {
    Domain.GENERAL: PaddingLevel.MEDIUM,
    Domain.ACADEMIC: PaddingLevel.MEDIUM,
    Domain.TECHNICAL: PaddingLevel.LIGHT,
    Domain.PROFESSIONAL: PaddingLevel.MEDIUM,
    Domain.CREATIVE: PaddingLevel.ENHANCED,
    Domain.NEURODIVERSITY: PaddingLevel.LIGHT,
}

STYLE_SHIFTS = {
    CommunicationStyle.DIRECT: -1,
    CommunicationStyle.ANALYTICAL: -1,
    CommunicationStyle.SUPPORTIVE: 1,
    CommunicationStyle.EXPRESSIVE: 1,
}

STYLE_LEVELS = {
    CommunicationStyle.DIRECT: PaddingLevel.LIGHT,
    CommunicationStyle.ANALYTICAL: PaddingLevel.LIGHT,
    CommunicationStyle.BALANCED: PaddingLevel.MEDIUM,
    CommunicationStyle.SUPPORTIVE: PaddingLevel.ENHANCED,
    CommunicationStyle.EXPRESSIVE: PaddingLevel.ENHANCED,
}

EXPERIENCED_INTERACTIONS = 10


@dataclass(frozen=True)
class PaddingDecision:
    level: PaddingLevel
    confidence: float
    reasoning: str
    factors: tuple[str, ...] = field(default_factory=tuple)
    source: str = "style_fallback"

    def to_dict(self) -> dict[str, object]:
        return {
            "level": self.level.value,
            "confidence": round(self.confidence, 4),
            "reasoning": self.reasoning,
            "factors": list(self.factors),
            "source": self.source,
        }


class PaddingSelector:
    """Chooses one padding level per message."""

    def select(
        self,
        classification: DomainClassification,
        profile: EmotionalProfile,
        record: UserPreferenceRecord,
        culture: CulturalContext | None = None,
        context_key: str | None = None,
    ) -> PaddingDecision:
        """Return the padding decision for one message.

        ``context_key`` defaults to the classification's domain tag, so an
        override stored under "academic" applies to specialized academic text
        and one stored under "general" applies to everything else.
        """
        sensitive = classification.sensitive
        base = record.preferred_padding_level
        factors = [f"preferred={base.value}", f"domain={classification.primary_domain.value}"]
        if sensitive:
            factors.append("sensitive")

        decision = (
            self._emotional(profile, base, factors)
            or self._context_override(record, context_key or classification.domain_tag.value, factors)
            or self._sensitive(sensitive, factors)
            or self._domain_default(classification, record, culture, factors)
            or self._style_fallback(record, culture, factors)
        )

        if sensitive and decision.level.rank > SENSITIVE_CEILING.rank:
            decision = PaddingDecision(
                level=SENSITIVE_CEILING,
                confidence=decision.confidence,
                reasoning=decision.reasoning + "; capped at light for sensitive content",
                factors=decision.factors + ("sensitive_cap",),
                source=decision.source,
            )

        logger.debug(
            "Padding decision: level=%s source=%s confidence=%.2f",
            decision.level.value, decision.source, decision.confidence,
        )
        return decision

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _emotional(
        profile: EmotionalProfile, base: PaddingLevel, factors: list[str]
    ) -> PaddingDecision | None:
        if not profile.has_indicators:
            return None
        influence = profile.combined_influence
        factors = factors + [f"emotions={','.join(profile.names)}", f"influence={influence:.3f}"]

        if influence <= EMOTIONAL_LIGHT_MAX:
            level, confidence = PaddingLevel.LIGHT, EMOTIONAL_LIGHT_CONFIDENCE
        else:
            for upper, step, band_confidence in EMOTIONAL_BANDS:
                if influence <= upper:
                    level, confidence = base.step(step), band_confidence
                    break
            else:
                level, confidence = base.step(1), EMOTIONAL_UP_CONFIDENCE

        return PaddingDecision(
            level=level,
            confidence=confidence,
            reasoning=f"Emotional influence {influence:.2f} maps {base.value} to {level.value}",
            factors=tuple(factors),
            source="emotional",
        )

    @staticmethod
    def _context_override(
        record: UserPreferenceRecord, context_key: str, factors: list[str]
    ) -> PaddingDecision | None:
        level = record.context_overrides.get(context_key)
        if level is None:
            return None
        return PaddingDecision(
            level=level,
            confidence=CONTEXT_OVERRIDE_CONFIDENCE,
            reasoning=f"Sender override for context '{context_key}'",
            factors=tuple(factors + [f"context={context_key}"]),
            source="context_override",
        )

    @staticmethod
    def _sensitive(sensitive: bool, factors: list[str]) -> PaddingDecision | None:
        if not sensitive:
            return None
        return PaddingDecision(
            level=PaddingLevel.LIGHT,
            confidence=SENSITIVE_CONFIDENCE,
            reasoning="Sensitive content keeps padding minimal",
            factors=tuple(factors),
            source="sensitive_domain",
        )

    @staticmethod
    def _domain_default(
        classification: DomainClassification,
        record: UserPreferenceRecord,
        culture: CulturalContext | None,
        factors: list[str],
    ) -> PaddingDecision | None:
        if not classification.is_specialized:
            return None
        domain = classification.primary_domain
        default = DOMAIN_LEVELS.get(domain, PaddingLevel.MEDIUM)
        shift = STYLE_SHIFTS.get(record.communication_style, 0)
        level = default.step(shift)
        factors = factors + [f"style={record.communication_style.value}"]
        level, factors = _apply_culture(level, culture, factors)
        return PaddingDecision(
            level=level,
            confidence=0.6 + 0.3 * classification.confidence,
            reasoning=f"Specialized {domain.value} text defaults to {default.value}"
            + (f", shifted by {record.communication_style.value} style" if shift else ""),
            factors=tuple(factors),
            source="domain_default",
        )

    @staticmethod
    def _style_fallback(
        record: UserPreferenceRecord,
        culture: CulturalContext | None,
        factors: list[str],
    ) -> PaddingDecision:
        style = record.communication_style
        if style == CommunicationStyle.UNKNOWN or record.feedback_count > 0:
            level = record.preferred_padding_level
            reasoning = f"Learned preference {level.value}"
            source = "learned_preference"
        else:
            level = STYLE_LEVELS.get(style, record.preferred_padding_level)
            reasoning = f"{style.value.capitalize()} style suggests {level.value}"
            source = "style_fallback"
        factors = factors + [f"style={style.value}", f"interactions={record.total_interactions}"]
        level, factors = _apply_culture(level, culture, factors)
        bonus = 0.15 if record.total_interactions > EXPERIENCED_INTERACTIONS else 0.0
        return PaddingDecision(
            level=level,
            confidence=min(0.75, 0.6 + bonus),
            reasoning=reasoning,
            factors=tuple(factors),
            source=source,
        )


def _apply_culture(
    level: PaddingLevel, culture: CulturalContext | None, factors: list[str]
) -> tuple[PaddingLevel, list[str]]:
    if culture is None or culture.bias == 0:
        return level, factors
    return level.step(culture.bias), factors + [f"culture={culture.family}({culture.bias:+d})"]
