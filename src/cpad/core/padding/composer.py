"""Response composer: deterministic text transforms per padding level."""

from __future__ import annotations

import re

from cpad.core.classification.models import Domain
from cpad.core.padding.levels import PaddingLevel
from cpad.core.text.structure import SentenceKind

POLITENESS_SUFFIX = " Please."
QUESTION_ACKNOWLEDGMENT = "I understand you're asking about this. "

LEAD_INS = {
    Domain.GENERAL: "",
    Domain.ACADEMIC: "From a scholarly perspective: ",
    Domain.TECHNICAL: "On the technical side: ",
    Domain.PROFESSIONAL: "For your records: ",
    Domain.CREATIVE: "Creatively speaking: ",
    Domain.NEURODIVERSITY: "Processing your request: ",
}

# (opening, closing) wrapped around the text at Enhanced
ENHANCED_WRAPPERS = {
    Domain.GENERAL: (
        "I appreciate you reaching out. ",
        " I'm here to help if you have any other questions.",
    ),
    Domain.ACADEMIC: (
        "Thank you for this thoughtful academic inquiry. ",
        " I hope this provides the scholarly perspective you're seeking.",
    ),
    Domain.TECHNICAL: (
        "Thanks for the detailed technical question. ",
        " Happy to dig deeper into any part of this.",
    ),
    Domain.PROFESSIONAL: (
        "Thank you for your message. ",
        " Please let me know if you need anything further.",
    ),
    Domain.CREATIVE: (
        "What a wonderful idea to explore. ",
        " I'd love to hear where you take it next.",
    ),
    Domain.NEURODIVERSITY: (
        "I want to make sure I'm communicating clearly with you. ",
        " Please let me know if you'd like me to clarify anything.",
    ),
}

_REQUEST = re.compile(r"\b(can|could|would) you\b", re.IGNORECASE)
_PLEASE = re.compile(r"\bplease\b", re.IGNORECASE)
_TERMINAL = (".", "!", "?")


class ResponseComposer:
    """Applies the chosen level's transform. Same inputs, same output."""

    def compose(
        self,
        text: str,
        level: PaddingLevel,
        domain_tag: Domain = Domain.GENERAL,
        top_kind: SentenceKind | None = None,
    ) -> str:
        if not text or not text.strip():
            return ""
        if level == PaddingLevel.NONE:
            return text
        body = text.strip()
        if level == PaddingLevel.LIGHT:
            return self._light(body)
        if level == PaddingLevel.MEDIUM:
            return self._medium(body, domain_tag, top_kind)
        return self._enhanced(body, domain_tag)

    @staticmethod
    def _punctuate(text: str) -> str:
        return text if text.endswith(_TERMINAL) else text + "."

    def _light(self, text: str) -> str:
        text = self._punctuate(text)
        if _REQUEST.search(text) and not _PLEASE.search(text):
            text += POLITENESS_SUFFIX
        return text

    def _medium(self, text: str, domain_tag: Domain, top_kind: SentenceKind | None) -> str:
        prefix = QUESTION_ACKNOWLEDGMENT if top_kind == SentenceKind.QUESTION else ""
        return prefix + LEAD_INS.get(domain_tag, "") + self._light(text)

    def _enhanced(self, text: str, domain_tag: Domain) -> str:
        opening, closing = ENHANCED_WRAPPERS.get(domain_tag, ENHANCED_WRAPPERS[Domain.GENERAL])
        return opening + self._punctuate(text) + closing
