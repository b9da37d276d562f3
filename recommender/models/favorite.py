"""
Favorite models.
"""

from datetime import datetime

from pydantic import BaseModel

from .content import ContentSummary, ContentType


class FavoriteEntry(BaseModel):
    """At most one per (user_id, item_id)."""

    id: str
    user_id: str
    item_id: str
    type: ContentType
    added_at: datetime
    snapshot: ContentSummary


class FavoriteCounts(BaseModel):
    total: int = 0
    courses: int = 0
    videos: int = 0
