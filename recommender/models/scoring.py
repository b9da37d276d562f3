"""
Scoring model: ScoredCandidate and the score helpers shared by the generators.

Contains:
- clamp_score, normalized_count: keep every score in [0, 1]
- ScoredCandidate: a generator's proposal before merge
"""

from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from .content import ContentSummary, ContentType
from .recommendation import RecommendationReason


def clamp_score(score: float) -> float:
    """Clamp to [0, 1]."""
    return max(0.0, min(float(score), 1.0))


def normalized_count(count: float, normalizer: float) -> float:
    """min(count / normalizer, 1), floored at 0."""
    if normalizer <= 0:
        return 0.0
    return clamp_score(count / normalizer)


class ScoredCandidate(BaseModel):
    """A candidate proposed by one generator."""

    item_id: str
    type: ContentType
    snapshot: ContentSummary
    score: float
    reason: RecommendationReason
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("score")
    @classmethod
    def _clamp(cls, v: float) -> float:
        return clamp_score(v)
