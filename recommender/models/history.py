"""
View history models: entries, paging query/result and the stats fold output.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from .content import ContentSummary, ContentType

TimeWindow = Literal["today", "week", "month", "all"]

ClearScope = Literal["all", "course", "video"]


class ViewHistoryEntry(BaseModel):
    """One viewing event. Append-only except for the "update last entry" operation."""

    id: str
    user_id: str
    item_id: str
    type: ContentType
    viewed_at: datetime
    watch_duration_seconds: float = 0.0
    completed: bool = False
    snapshot: ContentSummary

    def sort_key(self) -> Tuple[datetime, str]:
        """Key for newest-first ordering; id breaks ties on equal timestamps."""
        return (self.viewed_at, self.id)


class HistoryQuery(BaseModel):
    type: Optional[ContentType] = None
    completed_only: bool = False
    time_window: TimeWindow = "all"
    text_filter: Optional[str] = None
    cursor: Optional[str] = None
    page_size: int = Field(default=20, ge=1, le=200)


class HistoryPage(BaseModel):
    entries: List[ViewHistoryEntry] = Field(default_factory=list)
    next_cursor: Optional[str] = None


class ViewStats(BaseModel):
    """Aggregates over a window of recent history entries."""

    total_views: int = 0
    total_watch_seconds: float = 0.0
    completed_count: int = 0
    completion_rate: float = 0.0
    most_viewed_category: str = ""
    average_session_seconds: float = 0.0
    categories: Dict[str, int] = Field(default_factory=dict)


class EnhancedStats(ViewStats):
    """ViewStats plus favorites, recommendations and engagement for dashboards."""

    favorite_items_count: int = 0
    recommendations_count: int = 0
    engagement_score: int = 0
    last_activity: Optional[datetime] = None
