"""Recommendations: cached read, forced refresh and feedback."""

from typing import Optional

from fastapi import APIRouter, Query

from recommender.models import Interaction, RecommendationReason, RecommendationResult

from ..models import InteractionRequest
from ..services.recommendations import MAX_LIMIT
from ..state import get_state

router = APIRouter()


@router.get("/{user_id}/recommendations", response_model=RecommendationResult)
async def get_recommendations(
    user_id: str,
    limit: Optional[int] = Query(None, ge=1, le=MAX_LIMIT),
    allow_stale: bool = Query(False, description="Serve an expired list while refreshing in the background"),
    category: Optional[str] = Query(None),
    reason: Optional[RecommendationReason] = Query(None),
):
    """
    Ranked recommendations. Served from cache while fresh; as_of tells when
    the list was computed and stale marks a list past its refresh interval.
    An empty list carries a reason (e.g. all_generators_failed).
    """
    return await get_state().engagement.get_recommendations(
        user_id, limit, allow_stale=allow_stale, category=category, reason=reason
    )


@router.post("/{user_id}/recommendations/refresh", response_model=RecommendationResult)
async def refresh_recommendations(
    user_id: str, limit: Optional[int] = Query(None, ge=1, le=MAX_LIMIT)
):
    return await get_state().engagement.refresh_recommendations(user_id, limit)


@router.post("/{user_id}/interactions", response_model=Interaction, status_code=201)
async def record_interaction(user_id: str, request: InteractionRequest):
    """dismiss/not_interested also remove the item from the cached list."""
    return await get_state().engagement.record_interaction(user_id, request.item_id, request.kind)
