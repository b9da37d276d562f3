"""Engagement score and enhanced stats."""

from fastapi import APIRouter

from ..models import EngagementResponse
from ..state import get_state

router = APIRouter()


@router.get("/{user_id}/engagement", response_model=EngagementResponse)
async def get_engagement(user_id: str):
    service = get_state().engagement
    stats = await service.get_enhanced_stats(user_id)
    return EngagementResponse(user_id=user_id, score=stats.engagement_score, stats=stats)
