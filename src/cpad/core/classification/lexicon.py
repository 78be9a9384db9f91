"""Lexicon loader: reads YAML keyword tables into validated, typed records."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from cpad.core.classification.models import (
    ClassifierLexicon,
    CulturalFamily,
    Domain,
    DomainLexicon,
    Formality,
    IndicatorFamily,
    LexiconEntry,
)

logger = logging.getLogger(__name__)

# Lexicon YAML files live under src/cpad/domains/messaging/lexicons/
LEXICON_DIR = Path(__file__).resolve().parent.parent.parent / "domains" / "messaging" / "lexicons"

KEYWORD_WEIGHT_RANGE = (0.1, 2.0)
INDICATOR_WEIGHT_RANGE = (0.2, 1.3)
CULTURAL_BIASES = (-1, 0, 1)


class LexiconError(Exception):
    """Raised when a lexicon file is missing, malformed or out of range."""


def phrase_pattern(phrase: str) -> re.Pattern[str]:
    """Compile a whole-word phrase matcher; a trailing ``*`` allows any word continuation."""
    wildcard = phrase.endswith("*")
    body = re.escape(phrase.rstrip("*")).replace(r"\ ", r"\s+")
    return re.compile(rf"\b{body}\w*" if wildcard else rf"\b{body}\b", re.IGNORECASE)


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise LexiconError(f"Cannot read lexicon {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise LexiconError(f"Lexicon {path} must contain a mapping at the top level")
    return data


def _check_range(value: Any, bounds: tuple[float, float], what: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise LexiconError(f"{what}: weight {value!r} is not a number") from exc
    low, high = bounds
    if not low <= number <= high:
        raise LexiconError(f"{what}: weight {number} outside [{low}, {high}]")
    return number


def _entries(raw: list[dict[str, Any]], what: str) -> tuple[LexiconEntry, ...]:
    entries = []
    for item in raw or []:
        keyword = str(item.get("keyword", "")).strip().lower()
        if not keyword:
            raise LexiconError(f"{what}: entry without a keyword")
        weight = _check_range(item.get("weight"), KEYWORD_WEIGHT_RANGE, f"{what} '{keyword}'")
        entries.append(LexiconEntry(keyword=keyword, weight=weight))
    return tuple(entries)


def _phrases(raw: list[Any] | None) -> tuple[str, ...]:
    return tuple(str(p).strip().lower() for p in raw or [] if str(p).strip())


# ---------------------------------------------------------------------------
# Public loaders
# ---------------------------------------------------------------------------

def load_classifier_lexicon(path: str | Path | None = None) -> ClassifierLexicon:
    """Parse ``domains.yaml`` into a :class:`ClassifierLexicon`.

    Raises:
        LexiconError: On unknown domains, unknown formality tiers or
            weights outside their documented range.
    """
    path = Path(path) if path else LEXICON_DIR / "domains.yaml"
    data = _read_yaml(path)

    tables = []
    for name, body in (data.get("domains") or {}).items():
        try:
            domain = Domain(name)
        except ValueError as exc:
            raise LexiconError(f"Unknown domain '{name}' in {path}") from exc
        if domain == Domain.GENERAL:
            raise LexiconError("The general domain takes no keyword table")
        try:
            default_formality = Formality(body.get("default_formality", "standard"))
        except ValueError as exc:
            raise LexiconError(f"Unknown default_formality for domain '{name}'") from exc
        tables.append(
            DomainLexicon(
                domain=domain,
                entries=_entries(body.get("keywords", []), f"domain '{name}'"),
                default_formality=default_formality,
            )
        )

    markers: dict[Formality, tuple[str, ...]] = {}
    for tier, phrases in (data.get("formality") or {}).items():
        try:
            markers[Formality(tier)] = _phrases(phrases)
        except ValueError as exc:
            raise LexiconError(f"Unknown formality tier '{tier}' in {path}") from exc

    lexicon = ClassifierLexicon(
        domains=tuple(tables),
        personal=_entries(data.get("personal", []), "personal"),
        formality_markers=markers,
        sensitive_markers=_phrases(data.get("sensitive_markers")),
    )
    logger.info(
        "Loaded classifier lexicon v%s: %d domains, %d personal keywords",
        data.get("version", "?"), len(tables), len(lexicon.personal),
    )
    return lexicon


def load_indicator_families(path: str | Path | None = None) -> tuple[IndicatorFamily, ...]:
    """Parse ``emotions.yaml`` into indicator families."""
    path = Path(path) if path else LEXICON_DIR / "emotions.yaml"
    data = _read_yaml(path)

    families = []
    for name, body in (data.get("families") or {}).items():
        weight = _check_range(body.get("weight"), INDICATOR_WEIGHT_RANGE, f"indicator '{name}'")
        keywords = _phrases(body.get("keywords"))
        if not keywords:
            raise LexiconError(f"Indicator family '{name}' has no keywords")
        families.append(IndicatorFamily(name=name, weight=weight, keywords=keywords))
    logger.info("Loaded %d emotional indicator families", len(families))
    return tuple(families)


def load_cultural_families(path: str | Path | None = None) -> tuple[CulturalFamily, ...]:
    """Parse ``cultures.yaml`` into cultural families."""
    path = Path(path) if path else LEXICON_DIR / "cultures.yaml"
    data = _read_yaml(path)

    families = []
    for name, body in (data.get("families") or {}).items():
        bias = body.get("bias", 0)
        if bias not in CULTURAL_BIASES:
            raise LexiconError(f"Cultural family '{name}': bias {bias!r} not in {CULTURAL_BIASES}")
        families.append(CulturalFamily(name=name, bias=int(bias), markers=_phrases(body.get("markers"))))
    logger.info("Loaded %d cultural families", len(families))
    return tuple(families)
