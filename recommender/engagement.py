"""
Engagement score: a bounded 0-100 summary of how active a user is.

Five capped components (views, minutes watched, completions, favorites,
recommendation interactions) are summed and rounded. Always recomputed from
current state; callers may cache the result as a read-through copy only.
"""

import math

from .models.history import ViewStats

VIEW_POINTS, VIEW_CAP = 2, 30
TIME_CAP = 30
COMPLETION_POINTS, COMPLETION_CAP = 5, 25
FAVORITE_POINTS, FAVORITE_CAP = 3, 10
INTERACTION_CAP = 5


def _non_negative(value: float) -> float:
    return max(float(value), 0.0)


def engagement_score(
    view_stats: ViewStats,
    favorites_count: int,
    interaction_count: int,
) -> int:
    """Engagement score in [0, 100]; non-decreasing in each input."""
    view_score = min(_non_negative(view_stats.total_views) * VIEW_POINTS, VIEW_CAP)
    time_score = min(_non_negative(view_stats.total_watch_seconds) / 60.0, TIME_CAP)
    completion_score = min(
        _non_negative(view_stats.completed_count) * COMPLETION_POINTS, COMPLETION_CAP
    )
    favorite_score = min(_non_negative(favorites_count) * FAVORITE_POINTS, FAVORITE_CAP)
    interaction_score = min(_non_negative(interaction_count), INTERACTION_CAP)

    total = view_score + time_score + completion_score + favorite_score + interaction_score
    # Half-up rounding
    return int(math.floor(total + 0.5))
