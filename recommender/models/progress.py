"""
Progress models: per-(user, video) watch state, continue-watching rows and the
progress summary.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .content import ContentSummary


def progress_fraction(watched_seconds: float, total_seconds: float) -> float:
    """watched / total clamped to [0, 1]; 0 when total is unknown."""
    if total_seconds <= 0:
        return 0.0
    return max(0.0, min(watched_seconds / total_seconds, 1.0))


class ProgressRecord(BaseModel):
    """
    Watch state for one video.

    completed flips to True the first time watched_seconds reaches
    total_seconds * completion_threshold and stays True until reset.
    """

    user_id: str
    video_id: str
    watched_seconds: float = 0.0
    total_seconds: float = 0.0
    last_position_seconds: float = 0.0
    completed: bool = False
    completed_at: Optional[datetime] = None
    updated_at: datetime
    course_id: Optional[str] = None
    snapshot: Optional[ContentSummary] = None

    @property
    def progress(self) -> float:
        return progress_fraction(self.watched_seconds, self.total_seconds)


class ContinueWatchingItem(BaseModel):
    video_id: str
    course_id: Optional[str] = None
    snapshot: ContentSummary
    watched_seconds: float
    total_seconds: float
    progress: float
    last_position_seconds: float
    last_watched_at: datetime


class WeeklyProgress(BaseModel):
    week: int
    minutes_watched: int = 0
    videos_completed: int = 0


class ProgressSummary(BaseModel):
    videos_started: int = 0
    videos_completed: int = 0
    courses_started: int = 0
    courses_completed: int = 0
    total_watch_seconds: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    weekly: List[WeeklyProgress] = Field(default_factory=list)
