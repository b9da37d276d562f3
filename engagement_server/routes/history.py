"""View history: record views, page/search history, stats and bulk clear."""

from typing import Optional

from fastapi import APIRouter, Query

from recommender.models import ContentType, HistoryPage, HistoryQuery, TimeWindow, ViewHistoryEntry, ViewStats

from ..models import ClearHistoryResponse, HistoryListResponse, RecordViewRequest
from ..state import get_state
from ..utils import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter()


@router.post("/{user_id}/views", response_model=ViewHistoryEntry, status_code=201)
async def record_view(user_id: str, request: RecordViewRequest):
    """Append a view. Views above the auto-favorite ratio also add a favorite."""
    service = get_state().engagement
    return await service.record_view(
        user_id,
        request.item_id,
        request.type,
        request.watch_duration_seconds,
        request.completed,
        duration_seconds=request.duration_seconds,
    )


@router.get("/{user_id}/history", response_model=HistoryPage)
async def query_history(
    user_id: str,
    type: Optional[ContentType] = Query(None),
    completed_only: bool = Query(False),
    time_window: TimeWindow = Query("all"),
    q: Optional[str] = Query(None, description="Text filter over title/description/instructor/category"),
    cursor: Optional[str] = Query(None),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
):
    query = HistoryQuery(
        type=type,
        completed_only=completed_only,
        time_window=time_window,
        text_filter=q,
        cursor=cursor,
        page_size=page_size,
    )
    return await get_state().engagement.query_history(user_id, query)


@router.get("/{user_id}/history/search", response_model=HistoryListResponse)
async def search_history(
    user_id: str,
    q: str = Query(..., min_length=1),
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
):
    entries = await get_state().engagement.search_history(user_id, q, limit)
    return HistoryListResponse(entries=entries, count=len(entries))


@router.get("/{user_id}/history/recent", response_model=HistoryListResponse)
async def recent_history(user_id: str, n: int = Query(10, ge=1, le=MAX_PAGE_SIZE)):
    entries = await get_state().engagement.recent_history(user_id, n)
    return HistoryListResponse(entries=entries, count=len(entries))


@router.get("/{user_id}/history/most-watched", response_model=HistoryListResponse)
async def most_watched(user_id: str, n: int = Query(10, ge=1, le=MAX_PAGE_SIZE)):
    entries = await get_state().engagement.most_watched(user_id, n)
    return HistoryListResponse(entries=entries, count=len(entries))


@router.get("/{user_id}/history/stats", response_model=ViewStats)
async def history_stats(user_id: str, window: Optional[int] = Query(None, ge=1)):
    return await get_state().engagement.get_view_stats(user_id, window)


@router.delete("/{user_id}/history", response_model=ClearHistoryResponse)
async def clear_history(user_id: str, scope: str = Query("all")):
    """Irreversibly delete history entries (scope: all, course or video)."""
    deleted = await get_state().engagement.clear_history(user_id, scope)
    return ClearHistoryResponse(scope=scope, deleted=deleted)
