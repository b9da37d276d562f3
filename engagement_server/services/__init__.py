"""Engagement services: stores, catalog adapters and domain services."""

from .catalog import ContentCatalog, HttpContentCatalog, InMemoryContentCatalog
from .continue_watching import ContinueWatchingAggregator
from .engagement import EngagementService
from .favorites import FavoritesSet
from .history import ViewHistoryLog
from .progress import ProgressTracker
from .recommendations import RecommendationEngine
from .stores import (
    FavoritesStore,
    HistoryStore,
    InMemoryFavoritesStore,
    InMemoryHistoryStore,
    InMemoryInteractionStore,
    InMemoryProgressStore,
    InteractionStore,
    ProgressStore,
)

__all__ = [
    "ContentCatalog",
    "ContinueWatchingAggregator",
    "EngagementService",
    "FavoritesSet",
    "FavoritesStore",
    "HistoryStore",
    "HttpContentCatalog",
    "InMemoryContentCatalog",
    "InMemoryFavoritesStore",
    "InMemoryHistoryStore",
    "InMemoryInteractionStore",
    "InMemoryProgressStore",
    "InteractionStore",
    "ProgressStore",
    "ProgressTracker",
    "RecommendationEngine",
    "ViewHistoryLog",
]
