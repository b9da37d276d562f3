"""View history request/response models."""

from typing import List, Optional

from pydantic import BaseModel, Field

from recommender.models import ContentType, ViewHistoryEntry


class RecordViewRequest(BaseModel):
    item_id: str
    type: ContentType = "video"
    watch_duration_seconds: float = Field(default=0.0, ge=0)
    completed: bool = False
    # Overrides the catalog duration for the auto-favorite ratio
    duration_seconds: Optional[float] = Field(default=None, gt=0)


class HistoryListResponse(BaseModel):
    entries: List[ViewHistoryEntry]
    count: int


class ClearHistoryResponse(BaseModel):
    scope: str
    deleted: int
