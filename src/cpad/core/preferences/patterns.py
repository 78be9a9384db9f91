"""Conversation pattern learning.

Each message yields a set of surface patterns. Observed patterns are
reinforced; the rest decay, and weak ones are forgotten. The strongest
pattern suggests a communication style when feedback has not given one.
"""

from __future__ import annotations

import re

from cpad.core.preferences.models import CommunicationStyle

NEW_PATTERN_WEIGHT = 0.3
REINFORCEMENT = 0.1
DECAY = 0.95
FORGET_BELOW = 0.1

CONCISE_MAX_WORDS = 5
VERBOSE_MIN_WORDS = 15

_EMOJI = re.compile("[\U0001F300-\U0001FAFF\u2600-\u27BF]")
_GREETING = re.compile(r"^(hi|hello|hey)\b", re.IGNORECASE)

PATTERN_STYLES = {
    "concise": CommunicationStyle.DIRECT,
    "verbose": CommunicationStyle.EXPRESSIVE,
    "exclamation": CommunicationStyle.EXPRESSIVE,
    "emoji_user": CommunicationStyle.EXPRESSIVE,
    "question": CommunicationStyle.BALANCED,
    "greeting": CommunicationStyle.SUPPORTIVE,
}


def extract_patterns(text: str) -> set[str]:
    """Return the surface patterns present in one message."""
    stripped = (text or "").strip()
    if not stripped:
        return set()
    patterns = set()
    if "?" in stripped:
        patterns.add("question")
    if "!" in stripped:
        patterns.add("exclamation")
    if _EMOJI.search(stripped):
        patterns.add("emoji_user")
    if _GREETING.match(stripped):
        patterns.add("greeting")
    words = len(stripped.split())
    if words < CONCISE_MAX_WORDS:
        patterns.add("concise")
    elif words > VERBOSE_MIN_WORDS:
        patterns.add("verbose")
    return patterns


def update_patterns(weights: dict[str, float], observed: set[str]) -> dict[str, float]:
    """Reinforce observed patterns, decay the rest, and drop forgotten ones."""
    updated: dict[str, float] = {}
    for name, weight in weights.items():
        if name in observed:
            updated[name] = min(1.0, weight + REINFORCEMENT)
        else:
            updated[name] = weight * DECAY
    for name in observed:
        updated.setdefault(name, NEW_PATTERN_WEIGHT)
    return {name: w for name, w in updated.items() if w >= FORGET_BELOW}


def style_from_patterns(weights: dict[str, float]) -> CommunicationStyle | None:
    """The style suggested by the strongest known pattern, if any."""
    known = {name: w for name, w in weights.items() if name in PATTERN_STYLES}
    if not known:
        return None
    strongest = max(sorted(known), key=lambda name: known[name])
    return PATTERN_STYLES[strongest]
