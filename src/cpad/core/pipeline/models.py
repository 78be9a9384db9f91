"""Data models for pipeline inputs, results and metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from cpad.core.classification.models import (
    NEUTRAL_CLASSIFICATION,
    CulturalContext,
    DomainClassification,
    EmotionalProfile,
)
from cpad.core.padding.levels import PaddingLevel
from cpad.core.padding.selector import PaddingDecision
from cpad.core.text.structure import StructuralResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class InboundMessage:
    """A message as received from a transport. Never persisted by the pipeline."""

    text: str
    sender_id: str
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class PipelineResult:
    """Everything the pipeline derived for one message."""

    input_text: str
    output_text: str
    filtered_text: str = ""
    filter_modified: bool = False
    uncertainty: float = 0.0
    structure: StructuralResult = field(default_factory=StructuralResult)
    classification: DomainClassification = NEUTRAL_CLASSIFICATION
    emotions: EmotionalProfile = field(default_factory=EmotionalProfile)
    culture: CulturalContext = field(default_factory=CulturalContext)
    decision: PaddingDecision | None = None
    latency_ms: float = 0.0
    fallback: bool = False

    @property
    def level(self) -> PaddingLevel | None:
        return self.decision.level if self.decision else None

    def to_dict(self) -> dict[str, Any]:
        top = self.structure.top_item
        return {
            "output": self.output_text,
            "filtered_text": self.filtered_text,
            "filter_modified": self.filter_modified,
            "uncertainty": round(self.uncertainty, 4),
            "top_kind": top.kind.value if top else None,
            "complexity": round(self.structure.complexity, 4),
            "directness": round(self.structure.directness, 4),
            "logical_density": round(self.structure.logical_density, 4),
            "classification": self.classification.to_dict(),
            "emotions": self.emotions.names,
            "emotional_influence": round(self.emotions.combined_influence, 4),
            "culture": self.culture.family,
            "decision": self.decision.to_dict() if self.decision else None,
            "latency_ms": round(self.latency_ms, 3),
            "fallback": self.fallback,
        }


@dataclass(frozen=True)
class PipelineMetrics:
    """Read-only counters for external observability."""

    cache_hits: int
    cache_misses: int
    cache_size: int
    cache_hit_rate: float
    profile_count: int
    aggregate_effectiveness: float
    filter_activations: int
    alignment_valid: bool
    degraded: bool
    messages_processed: int
    fallbacks: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "cache_size": self.cache_size,
            "cache_hit_rate": round(self.cache_hit_rate, 4),
            "profile_count": self.profile_count,
            "aggregate_effectiveness": round(self.aggregate_effectiveness, 4),
            "filter_activations": self.filter_activations,
            "alignment_valid": self.alignment_valid,
            "degraded": self.degraded,
            "messages_processed": self.messages_processed,
            "fallbacks": self.fallbacks,
        }
