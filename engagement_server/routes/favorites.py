"""Favorites: list, count, add, remove, toggle and clear."""

from typing import Optional

from fastapi import APIRouter, Query, Response

from recommender.models import ContentType, FavoriteCounts, FavoriteEntry

from ..models import (
    ClearFavoritesResponse,
    FavoriteRequest,
    FavoritesListResponse,
    FavoriteStateResponse,
)
from ..state import get_state
from ..utils import MAX_PAGE_SIZE

router = APIRouter()


@router.get("/{user_id}/favorites", response_model=FavoritesListResponse)
async def list_favorites(
    user_id: str,
    type: Optional[ContentType] = Query(None),
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
):
    favorites = await get_state().engagement.list_favorites(
        user_id, content_type=type, category=category, term=q, limit=limit
    )
    return FavoritesListResponse(favorites=favorites, count=len(favorites))


@router.get("/{user_id}/favorites/count", response_model=FavoriteCounts)
async def favorites_count(user_id: str):
    return await get_state().engagement.favorites_count(user_id)


@router.post("/{user_id}/favorites", response_model=FavoriteEntry, status_code=201)
async def add_favorite(user_id: str, request: FavoriteRequest):
    """Add a favorite; 409 when already favorited."""
    return await get_state().engagement.add_favorite(user_id, request.type, request.item_id)


@router.post("/{user_id}/favorites/toggle", response_model=FavoriteStateResponse)
async def toggle_favorite(user_id: str, request: FavoriteRequest):
    state = await get_state().engagement.toggle_favorite(user_id, request.type, request.item_id)
    return FavoriteStateResponse(item_id=request.item_id, is_favorite=state)


@router.get("/{user_id}/favorites/{item_id}", response_model=FavoriteStateResponse)
async def is_favorite(user_id: str, item_id: str):
    state = await get_state().engagement.is_favorite(user_id, item_id)
    return FavoriteStateResponse(item_id=item_id, is_favorite=state)


@router.delete("/{user_id}/favorites/{item_id}", status_code=204)
async def remove_favorite(user_id: str, item_id: str):
    """Remove a favorite; 404 when it does not exist."""
    await get_state().engagement.remove_favorite(user_id, item_id)
    return Response(status_code=204)


@router.delete("/{user_id}/favorites", response_model=ClearFavoritesResponse)
async def clear_favorites(user_id: str):
    deleted = await get_state().engagement.clear_favorites(user_id)
    return ClearFavoritesResponse(deleted=deleted)
