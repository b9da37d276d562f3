"""Pydantic request/response models for the API."""

from .engagement import EngagementResponse
from .favorites import (
    ClearFavoritesResponse,
    FavoriteRequest,
    FavoritesListResponse,
    FavoriteStateResponse,
)
from .history import ClearHistoryResponse, HistoryListResponse, RecordViewRequest
from .progress import ContinueWatchingResponse, ProgressUpdateRequest
from .recommendations import InteractionRequest

__all__ = [
    "ClearFavoritesResponse",
    "ClearHistoryResponse",
    "ContinueWatchingResponse",
    "EngagementResponse",
    "FavoriteRequest",
    "FavoriteStateResponse",
    "FavoritesListResponse",
    "HistoryListResponse",
    "InteractionRequest",
    "ProgressUpdateRequest",
    "RecordViewRequest",
]
