"""Progress request/response models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from recommender.models import ContinueWatchingItem


class ProgressUpdateRequest(BaseModel):
    watched_seconds: float = Field(ge=0)
    position_seconds: float = Field(ge=0)
    total_seconds: float = Field(ge=0)
    # Client-side time of the update; out-of-order updates are ignored
    updated_at: Optional[datetime] = None
    course_id: Optional[str] = None


class ContinueWatchingResponse(BaseModel):
    items: List[ContinueWatchingItem]
    count: int
