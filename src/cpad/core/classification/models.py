"""Data models for domain, emotional and cultural classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Domain(str, Enum):
    GENERAL = "general"
    ACADEMIC = "academic"
    TECHNICAL = "technical"
    PROFESSIONAL = "professional"
    CREATIVE = "creative"
    NEURODIVERSITY = "neurodiversity"


# Domains whose inputs are never padded beyond Light
SENSITIVE_DOMAINS = frozenset({Domain.NEURODIVERSITY})


class Formality(str, Enum):
    CASUAL = "casual"
    STANDARD = "standard"
    FORMAL = "formal"
    PEER = "peer"


# ---------------------------------------------------------------------------
# Lexicon records (validated at load time)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LexiconEntry:
    """A keyword and the weight it contributes when present."""

    keyword: str
    weight: float


@dataclass(frozen=True)
class DomainLexicon:
    """Ordered keyword table for one domain."""

    domain: Domain
    entries: tuple[LexiconEntry, ...]
    default_formality: Formality = Formality.STANDARD


@dataclass(frozen=True)
class ClassifierLexicon:
    """Everything the domain classifier matches against."""

    domains: tuple[DomainLexicon, ...]
    personal: tuple[LexiconEntry, ...]
    formality_markers: dict[Formality, tuple[str, ...]]
    sensitive_markers: tuple[str, ...]

    def for_domain(self, domain: Domain) -> DomainLexicon | None:
        for table in self.domains:
            if table.domain == domain:
                return table
        return None


@dataclass(frozen=True)
class IndicatorFamily:
    """An emotional indicator family: keywords sharing one influence weight."""

    name: str
    weight: float
    keywords: tuple[str, ...]


@dataclass(frozen=True)
class CulturalFamily:
    """A cultural communication family and its padding bias (-1, 0 or +1)."""

    name: str
    bias: int
    markers: tuple[str, ...]


# ---------------------------------------------------------------------------
# Classification results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainClassification:
    is_specialized: bool = False
    primary_domain: Domain = Domain.GENERAL
    secondary_domains: frozenset[Domain] = frozenset()
    confidence: float = 0.5
    weighted_score: float = 0.0
    matched_keywords: frozenset[str] = frozenset()
    formality: Formality = Formality.STANDARD
    sensitive: bool = False

    @property
    def domain_tag(self) -> Domain:
        """Domain used for response wording: the primary domain only when specialized."""
        return self.primary_domain if self.is_specialized else Domain.GENERAL

    def to_dict(self) -> dict[str, object]:
        return {
            "is_specialized": self.is_specialized,
            "primary_domain": self.primary_domain.value,
            "secondary_domains": sorted(d.value for d in self.secondary_domains),
            "confidence": round(self.confidence, 4),
            "weighted_score": round(self.weighted_score, 4),
            "matched_keywords": sorted(self.matched_keywords),
            "formality": self.formality.value,
            "sensitive": self.sensitive,
        }


NEUTRAL_CLASSIFICATION = DomainClassification()


@dataclass(frozen=True)
class EmotionalIndicator:
    name: str
    weight: float


@dataclass(frozen=True)
class EmotionalProfile:
    """Deduplicated indicators matched in one message."""

    indicators: tuple[EmotionalIndicator, ...] = ()

    @property
    def has_indicators(self) -> bool:
        return bool(self.indicators)

    @property
    def names(self) -> list[str]:
        return [i.name for i in self.indicators]

    @property
    def combined_influence(self) -> float:
        """``mean(weights) * min(1.5, 0.7 + 0.3 * n)``; 1.0 when nothing matched."""
        if not self.indicators:
            return 1.0
        count = len(self.indicators)
        average = sum(i.weight for i in self.indicators) / count
        return average * min(1.5, 0.7 + 0.3 * count)


@dataclass(frozen=True)
class CulturalContext:
    family: str = "universal"
    bias: int = 0
    confidence: float = 0.0
    matched_markers: tuple[str, ...] = field(default_factory=tuple)
