"""Video progress, progress summary and continue-watching."""

from fastapi import APIRouter, HTTPException, Query

from recommender.models import ProgressRecord, ProgressSummary

from ..models import ContinueWatchingResponse, ProgressUpdateRequest
from ..state import get_state

router = APIRouter()


@router.get("/{user_id}/progress/summary", response_model=ProgressSummary)
async def progress_summary(user_id: str):
    return await get_state().engagement.get_progress_summary(user_id)


@router.put("/{user_id}/progress/{video_id}", response_model=ProgressRecord)
async def update_progress(user_id: str, video_id: str, request: ProgressUpdateRequest):
    """Upsert progress. Repeated values and out-of-order updates return the stored record."""
    return await get_state().engagement.update_progress(
        user_id,
        video_id,
        request.watched_seconds,
        request.position_seconds,
        request.total_seconds,
        updated_at=request.updated_at,
        course_id=request.course_id,
    )


@router.get("/{user_id}/progress/{video_id}", response_model=ProgressRecord)
async def get_progress(user_id: str, video_id: str):
    record = await get_state().engagement.get_progress(user_id, video_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No progress for video {video_id}")
    return record


@router.post("/{user_id}/progress/{video_id}/reset", response_model=ProgressRecord)
async def reset_progress(user_id: str, video_id: str):
    return await get_state().engagement.reset_progress(user_id, video_id)


@router.get("/{user_id}/continue-watching", response_model=ContinueWatchingResponse)
async def continue_watching(user_id: str, limit: int = Query(10, ge=1, le=100)):
    items = await get_state().engagement.get_continue_watching(user_id, limit)
    return ContinueWatchingResponse(items=items, count=len(items))
