"""Ordered padding levels."""

from __future__ import annotations

from enum import Enum


class PaddingLevel(str, Enum):
    """Degree of conversational elaboration added to a response."""

    NONE = "none"
    LIGHT = "light"
    MEDIUM = "medium"
    ENHANCED = "enhanced"

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    @classmethod
    def from_rank(cls, rank: int) -> PaddingLevel:
        return _ORDER[max(0, min(len(_ORDER) - 1, rank))]

    def step(self, delta: int) -> PaddingLevel:
        """Move ``delta`` steps along none < light < medium < enhanced, clamped."""
        return PaddingLevel.from_rank(self.rank + delta)

    def cap(self, ceiling: PaddingLevel) -> PaddingLevel:
        return self if self.rank <= ceiling.rank else ceiling


_ORDER = (PaddingLevel.NONE, PaddingLevel.LIGHT, PaddingLevel.MEDIUM, PaddingLevel.ENHANCED)

LEVEL_DESCRIPTIONS = {
    PaddingLevel.NONE: "Text passes through unchanged.",
    PaddingLevel.LIGHT: "Terminal punctuation plus a short politeness marker for requests.",
    PaddingLevel.MEDIUM: "Light, plus a question acknowledgment and a domain lead-in.",
    PaddingLevel.ENHANCED: "Empathetic opening and a closing offer of further help.",
}
