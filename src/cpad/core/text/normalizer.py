"""Text normalization used as the matching key for every classifier."""

from __future__ import annotations

import re

_WHITESPACE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    """Lowercase, trim and collapse internal whitespace; curly apostrophes become straight.

    The result is the cache key for domain classification, so two inputs
    that differ only in case or spacing share one cache entry.
    """
    if not text:
        return ""
    text = text.replace("\u2019", "'")
    return _WHITESPACE.sub(" ", text).strip().lower()
