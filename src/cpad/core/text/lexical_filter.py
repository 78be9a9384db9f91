"""Lexical filter ("heat shield"): strips filler, hedging and meta-commentary.

Three fixed phrase families are removed with case-insensitive whole-phrase
matching. The filter is fail-open: any internal error returns the input
unchanged. Filtering runs to a fixpoint, so applying it twice gives the same
result as applying it once (removing "um" from "you um know" exposes
"you know", which the next round removes).
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FILLER_PHRASES = (
    "um", "uh", "well", "you know", "like", "actually", "basically", "literally",
)
HEDGING_PHRASES = (
    "i think", "i believe", "i guess", "maybe", "perhaps", "possibly",
    "sort of", "kind of",
)
META_PHRASES = (
    "just to clarify", "if i understand correctly", "does that make sense",
)

# Uncertainty markers scored (not removed) for diagnostics
UNCERTAINTY_MARKERS = (
    "i think", "might be", "probably", "could be", "possibly",
    "not sure", "i believe", "perhaps", "maybe", "uncertain",
    "i guess", "appears to", "seems like", "approximately",
)


def _family_pattern(phrases: tuple[str, ...]) -> re.Pattern[str]:
    # Longest phrases first so "you know" wins over any shorter overlap
    ordered = sorted(phrases, key=len, reverse=True)
    alternation = "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in ordered)
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


_FAMILY_PATTERNS = (
    _family_pattern(FILLER_PHRASES),
    _family_pattern(HEDGING_PHRASES),
    _family_pattern(META_PHRASES),
)
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([,;:.!?])")
_REPEATED_COMMA = re.compile(r",(?:\s*,)+")
_LEADING_PUNCT = re.compile(r"^[\s,;:]+")
_WHITESPACE = re.compile(r"\s+")

# Each round removes at least one phrase, so this bounds pathological input
_MAX_ROUNDS = 32


@dataclass(frozen=True)
class FilterResult:
    """Outcome of a single filter pass."""

    text: str
    modified: bool


class LexicalFilter:
    """Removes padding phrases and counts how often it had to.

    Usage::

        shield = LexicalFilter()
        result = shield.apply("Um, I think we should ship it")
        result.text      # "we should ship it"
        shield.activations  # 1
    """

    def __init__(self) -> None:
        self._activations = 0
        self._lock = threading.Lock()

    @property
    def activations(self) -> int:
        """Number of inputs that were modified since creation or last reset."""
        return self._activations

    def reset(self) -> None:
        """Zero the activation counter."""
        with self._lock:
            self._activations = 0

    def apply(self, text: str) -> FilterResult:
        """Filter ``text``; on any internal error return it unchanged."""
        if not text:
            return FilterResult(text="", modified=False)
        try:
            filtered = _filter_to_fixpoint(text)
        except Exception:
            logger.exception("Lexical filter failed; passing input through unchanged")
            return FilterResult(text=text, modified=False)

        modified = filtered != text
        if modified:
            with self._lock:
                self._activations += 1
            logger.debug("Lexical filter modified input (activations=%d)", self._activations)
        return FilterResult(text=filtered, modified=modified)

    def uncertainty(self, text: str) -> float:
        """Score uncertainty in [0, 1] as ``min(1, distinct markers / 5)``."""
        lowered = (text or "").lower()
        count = sum(1 for marker in UNCERTAINTY_MARKERS if marker in lowered)
        return min(1.0, count / 5.0)

    def report(self) -> dict[str, object]:
        """Diagnostic snapshot of the filter state."""
        return {
            "activations": self._activations,
            "families": {
                "filler": list(FILLER_PHRASES),
                "hedging": list(HEDGING_PHRASES),
                "meta": list(META_PHRASES),
            },
        }


def _filter_once(text: str) -> str:
    for pattern in _FAMILY_PATTERNS:
        text = pattern.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    text = _SPACE_BEFORE_PUNCT.sub(r"\1", text)
    text = _REPEATED_COMMA.sub(",", text)
    text = _LEADING_PUNCT.sub("", text)
    return text.strip()


def _filter_to_fixpoint(text: str) -> str:
    current = _filter_once(text)
    for _ in range(_MAX_ROUNDS):
        following = _filter_once(current)
        if following == current:
            return current
        current = following
    return current
