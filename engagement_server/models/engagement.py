"""Engagement score response model."""

from pydantic import BaseModel

from recommender.models import EnhancedStats


class EngagementResponse(BaseModel):
    user_id: str
    score: int
    stats: EnhancedStats
