"""Favorites request/response models."""

from typing import List

from pydantic import BaseModel

from recommender.models import ContentType, FavoriteEntry


class FavoriteRequest(BaseModel):
    item_id: str
    type: ContentType = "video"


class FavoriteStateResponse(BaseModel):
    item_id: str
    is_favorite: bool


class FavoritesListResponse(BaseModel):
    favorites: List[FavoriteEntry]
    count: int


class ClearFavoritesResponse(BaseModel):
    deleted: int
