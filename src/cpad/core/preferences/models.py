"""Data models for learned per-sender preferences."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from cpad.core.classification.models import Domain
from cpad.core.padding.levels import PaddingLevel


class CommunicationStyle(str, Enum):
    UNKNOWN = "unknown"
    DIRECT = "direct"
    BALANCED = "balanced"
    SUPPORTIVE = "supportive"
    EXPRESSIVE = "expressive"
    ANALYTICAL = "analytical"


class Satisfaction(str, Enum):
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"

    @property
    def score(self) -> float:
        return {"negative": 0.0, "neutral": 0.5, "positive": 1.0}[self.value]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConversationEntry:
    """One processed message, kept in a bounded per-sender history."""

    input_text: str
    output_text: str
    level_used: PaddingLevel
    domain_flag: Domain = Domain.GENERAL
    satisfaction: Satisfaction | None = None
    latency_ms: float = 0.0
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "input_text": self.input_text,
            "output_text": self.output_text,
            "level_used": self.level_used.value,
            "domain_flag": self.domain_flag.value,
            "satisfaction": self.satisfaction.value if self.satisfaction else None,
            "latency_ms": round(self.latency_ms, 3),
        }


@dataclass
class UserPreferenceRecord:
    """Learned preferences for one sender.

    ``level_score`` is an EMA of explicitly requested level ranks. It is
    diagnostic only: selection reads ``preferred_padding_level`` and the
    context overrides, and ``level_score`` is reported so drift between the
    latest request and the long-run trend can be inspected.
    """

    user_id: str
    preferred_padding_level: PaddingLevel = PaddingLevel.MEDIUM
    communication_style: CommunicationStyle = CommunicationStyle.UNKNOWN
    domain_affinity: Domain = Domain.GENERAL
    neurodiversity_aware: bool = False
    context_overrides: dict[str, PaddingLevel] = field(default_factory=dict)
    last_updated: datetime = field(default_factory=_utcnow)
    total_interactions: int = 0
    effectiveness: float = 0.5
    learned_patterns: dict[str, float] = field(default_factory=dict)
    level_score: float = float(PaddingLevel.MEDIUM.rank)
    feedback_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "preferred_padding_level": self.preferred_padding_level.value,
            "communication_style": self.communication_style.value,
            "domain_affinity": self.domain_affinity.value,
            "neurodiversity_aware": self.neurodiversity_aware,
            "context_overrides": {k: v.value for k, v in self.context_overrides.items()},
            "last_updated": self.last_updated.isoformat(),
            "total_interactions": self.total_interactions,
            "effectiveness": round(self.effectiveness, 4),
            "learned_patterns": {k: round(v, 4) for k, v in self.learned_patterns.items()},
            "level_score": round(self.level_score, 4),
            "feedback_count": self.feedback_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserPreferenceRecord:
        return cls(
            user_id=data["user_id"],
            preferred_padding_level=PaddingLevel(data.get("preferred_padding_level", "medium")),
            communication_style=CommunicationStyle(data.get("communication_style", "unknown")),
            domain_affinity=Domain(data.get("domain_affinity", "general")),
            neurodiversity_aware=bool(data.get("neurodiversity_aware", False)),
            context_overrides={
                k: PaddingLevel(v) for k, v in (data.get("context_overrides") or {}).items()
            },
            last_updated=(
                datetime.fromisoformat(data["last_updated"])
                if data.get("last_updated") else _utcnow()
            ),
            total_interactions=int(data.get("total_interactions", 0)),
            effectiveness=float(data.get("effectiveness", 0.5)),
            learned_patterns=dict(data.get("learned_patterns") or {}),
            level_score=float(data.get("level_score", PaddingLevel.MEDIUM.rank)),
            feedback_count=int(data.get("feedback_count", 0)),
        )
