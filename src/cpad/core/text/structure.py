"""Structural classification of sentences.

Each sentence lands in exactly one bucket, decided by an ordered rule list
(first match wins): question, directive, conditional, statement.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class SentenceKind(str, Enum):
    QUESTION = "question"
    DIRECTIVE = "directive"
    CONDITIONAL = "conditional"
    STATEMENT = "statement"


@dataclass
class Sentence:
    """One classified sentence with its kind-specific attributes."""

    text: str
    kind: SentenceKind
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass
class StructuralResult:
    """Classified buckets plus whole-message metrics."""

    questions: list[Sentence] = field(default_factory=list)
    directives: list[Sentence] = field(default_factory=list)
    conditionals: list[Sentence] = field(default_factory=list)
    statements: list[Sentence] = field(default_factory=list)
    complexity: float = 0.0
    directness: float = 0.0
    logical_density: float = 0.0

    @property
    def top_item(self) -> Sentence | None:
        """First question, else first directive, else first conditional, else first statement."""
        for bucket in (self.questions, self.directives, self.conditionals, self.statements):
            if bucket:
                return bucket[0]
        return None

    @property
    def top_kind(self) -> SentenceKind | None:
        item = self.top_item
        return item.kind if item else None

    def bucket(self, kind: SentenceKind) -> list[Sentence]:
        return {
            SentenceKind.QUESTION: self.questions,
            SentenceKind.DIRECTIVE: self.directives,
            SentenceKind.CONDITIONAL: self.conditionals,
            SentenceKind.STATEMENT: self.statements,
        }[kind]


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_FRAGMENT = re.compile(r"[^.!?]+[.!?]*")

_INTERROGATIVE = re.compile(
    r"^(what|how|why|when|where|who|which|is|are|do|does|did|can|could|would|will|should)\b",
    re.IGNORECASE,
)
_IMPERATIVE = re.compile(r"^(please|confirm|check|verify|show|tell|explain|help)\b", re.IGNORECASE)
_CONDITIONAL = re.compile(r"\b(if|when|unless|provided|assuming)\b", re.IGNORECASE)

_BOOLEAN_QUESTION = re.compile(
    r"^(is|are|do|does|did|can|could|would|will|should)\b", re.IGNORECASE
)
_FACTUAL_QUESTION = re.compile(r"^(what|who|which|where|when)\b", re.IGNORECASE)

_ACTION = re.compile(
    r"\b(confirm|check|verify|show|tell|explain|help|process|analyze)\b", re.IGNORECASE
)
_PRIORITY_LEVELS = (
    ("urgent", re.compile(r"\b(urgent|critical|immediate|now)\b", re.IGNORECASE)),
    ("high", re.compile(r"\b(important|priority|asap)\b", re.IGNORECASE)),
    ("medium", re.compile(r"\b(please|when possible)\b", re.IGNORECASE)),
)

_CONDITION = re.compile(
    r"\b(?:if|when|unless|provided|assuming)\s+(.+?)\s*(?:\bthen\b|,|$)", re.IGNORECASE
)
_CONSEQUENCE = re.compile(r"(?:\bthen\b|,)\s*(.+)$", re.IGNORECASE)

_CONFIDENCE_LEVELS = (
    (1.0, re.compile(r"\b(definitely|certainly|absolutely|always)\b", re.IGNORECASE)),
    (0.8, re.compile(r"\b(probably|likely|usually)\b", re.IGNORECASE)),
    (0.5, re.compile(r"\b(maybe|perhaps|possibly)\b", re.IGNORECASE)),
)

_FILLER_MARKERS = re.compile(r"\b(um|uh|well|like|actually|basically)\b", re.IGNORECASE)
_BOOLEAN_CONNECTIVES = re.compile(
    r"\b(and|or|not|if|then|true|false|yes|no)\b", re.IGNORECASE
)


# ---------------------------------------------------------------------------
# Rules (ordered; first match wins)
# ---------------------------------------------------------------------------

def _is_question(text: str, terminator: str) -> bool:
    return "?" in terminator or "?" in text or bool(_INTERROGATIVE.match(text))


def _is_directive(text: str, terminator: str) -> bool:
    return bool(_IMPERATIVE.match(text))


def _is_conditional(text: str, terminator: str) -> bool:
    return bool(_CONDITIONAL.search(text))


RULES: tuple[tuple[SentenceKind, Callable[[str, str], bool]], ...] = (
    (SentenceKind.QUESTION, _is_question),
    (SentenceKind.DIRECTIVE, _is_directive),
    (SentenceKind.CONDITIONAL, _is_conditional),
)


def _question_attributes(text: str) -> dict[str, Any]:
    lowered = text.lower()
    if _BOOLEAN_QUESTION.match(lowered):
        question_type = "boolean"
    elif _FACTUAL_QUESTION.match(lowered):
        question_type = "factual"
    elif lowered.startswith("how"):
        question_type = "procedural"
    elif lowered.startswith("why"):
        question_type = "causal"
    else:
        question_type = "general"
    return {"question_type": question_type}


def _directive_attributes(text: str) -> dict[str, Any]:
    action_match = _ACTION.search(text)
    priority = "normal"
    for name, pattern in _PRIORITY_LEVELS:
        if pattern.search(text):
            priority = name
            break
    return {
        "action": action_match.group(1).lower() if action_match else "process",
        "priority": priority,
    }


def _conditional_attributes(text: str) -> dict[str, Any]:
    condition_match = _CONDITION.search(text)
    consequence_match = _CONSEQUENCE.search(text)
    return {
        "condition": condition_match.group(1).strip() if condition_match else "",
        "consequence": (
            consequence_match.group(1).strip() if consequence_match else "process accordingly"
        ),
    }


def _statement_attributes(text: str) -> dict[str, Any]:
    confidence = 0.7
    for value, pattern in _CONFIDENCE_LEVELS:
        if pattern.search(text):
            confidence = value
            break
    return {"assertion": text, "confidence": confidence}


_ATTRIBUTES: dict[SentenceKind, Callable[[str], dict[str, Any]]] = {
    SentenceKind.QUESTION: _question_attributes,
    SentenceKind.DIRECTIVE: _directive_attributes,
    SentenceKind.CONDITIONAL: _conditional_attributes,
    SentenceKind.STATEMENT: _statement_attributes,
}


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------

class StructuralClassifier:
    """Splits text into sentences and buckets them by kind."""

    def classify(self, text: str) -> StructuralResult:
        """Classify ``text``. Empty input gives empty buckets and zero metrics."""
        stripped = (text or "").strip()
        if not stripped:
            return StructuralResult()
        try:
            return self._classify(stripped)
        except Exception:
            logger.exception("Structural classification failed; treating input as a statement")
            return StructuralResult(
                statements=[Sentence(stripped, SentenceKind.STATEMENT, {"assertion": stripped})],
            )

    def classify_sentence(self, fragment: str, terminator: str = "") -> Sentence:
        kind = SentenceKind.STATEMENT
        for candidate, rule in RULES:
            if rule(fragment, terminator):
                kind = candidate
                break
        return Sentence(text=fragment, kind=kind, attributes=_ATTRIBUTES[kind](fragment))

    def _classify(self, text: str) -> StructuralResult:
        result = StructuralResult()
        for match in _FRAGMENT.finditer(text):
            raw = match.group(0)
            fragment = raw.rstrip(".!?").strip()
            if not fragment:
                continue
            terminator = raw[len(raw.rstrip(".!?")):]
            sentence = self.classify_sentence(fragment, terminator)
            result.bucket(sentence.kind).append(sentence)

        words = text.split()
        result.complexity = min(1.0, len(text) / 100.0)
        result.directness = max(0.0, 1.0 - 0.1 * len(_FILLER_MARKERS.findall(text)))
        result.logical_density = (
            min(1.0, len(_BOOLEAN_CONNECTIVES.findall(text)) / len(words)) if words else 0.0
        )
        logger.debug(
            "Structure: %d questions, %d directives, %d conditionals, %d statements",
            len(result.questions), len(result.directives),
            len(result.conditionals), len(result.statements),
        )
        return result
