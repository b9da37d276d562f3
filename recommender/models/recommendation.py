"""
Recommendation models: the ranked item and the result envelope returned by the engine.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .content import ContentSummary, ContentType

RecommendationReason = Literal["trending", "similar", "continue", "new", "recommended"]

GeneratorStatus = Literal["ok", "failed", "timeout", "skipped"]

# Result reasons for empty or degraded lists
REASON_ALL_GENERATORS_FAILED = "all_generators_failed"
REASON_EXCLUSION_UNAVAILABLE = "exclusion_unavailable"
REASON_NO_CANDIDATES = "no_candidates"


class RecommendationItem(BaseModel):
    item_id: str
    type: ContentType
    snapshot: ContentSummary
    score: float = Field(ge=0.0, le=1.0)
    reason: RecommendationReason
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RecommendationResult(BaseModel):
    """
    Ranked list for one user plus how it was produced.

    as_of is when the items were computed. stale is set when an expired cache is
    served. partial is set when at least one generator did not return normally.
    reason explains an empty or degraded list.
    """

    user_id: str
    items: List[RecommendationItem] = Field(default_factory=list)
    as_of: Optional[datetime] = None
    stale: bool = False
    partial: bool = False
    reason: Optional[str] = None
    generators: Dict[str, GeneratorStatus] = Field(default_factory=dict)
