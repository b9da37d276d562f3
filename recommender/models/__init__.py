"""Data models for engagement tracking and recommendations."""

from .config import DEFAULT_CONFIG, RecommenderConfig, resolve_config
from .content import CONTENT_TYPES, ContentSummary, ContentType, ensure_summary
from .favorite import FavoriteCounts, FavoriteEntry
from .history import ClearScope, EnhancedStats, HistoryPage, HistoryQuery, TimeWindow, ViewHistoryEntry, ViewStats
from .interaction import REMOVING_KINDS, Interaction, InteractionKind
from .progress import (
    ContinueWatchingItem,
    ProgressRecord,
    ProgressSummary,
    WeeklyProgress,
    progress_fraction,
)
from .recommendation import (
    REASON_ALL_GENERATORS_FAILED,
    REASON_EXCLUSION_UNAVAILABLE,
    REASON_NO_CANDIDATES,
    GeneratorStatus,
    RecommendationItem,
    RecommendationReason,
    RecommendationResult,
)
from .scoring import ScoredCandidate, clamp_score, normalized_count

__all__ = [
    "CONTENT_TYPES",
    "DEFAULT_CONFIG",
    "REASON_ALL_GENERATORS_FAILED",
    "REASON_EXCLUSION_UNAVAILABLE",
    "REASON_NO_CANDIDATES",
    "REMOVING_KINDS",
    "ClearScope",
    "ContentSummary",
    "ContentType",
    "ContinueWatchingItem",
    "EnhancedStats",
    "FavoriteCounts",
    "FavoriteEntry",
    "GeneratorStatus",
    "HistoryPage",
    "HistoryQuery",
    "Interaction",
    "InteractionKind",
    "ProgressRecord",
    "ProgressSummary",
    "RecommendationItem",
    "RecommendationReason",
    "RecommendationResult",
    "RecommenderConfig",
    "ScoredCandidate",
    "TimeWindow",
    "ViewHistoryEntry",
    "ViewStats",
    "WeeklyProgress",
    "clamp_score",
    "ensure_summary",
    "normalized_count",
    "progress_fraction",
    "resolve_config",
]
