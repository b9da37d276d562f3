"""
Engagement recommender: trending, content-based and collaborative candidates.

Single entry point for the algorithm package:
- models/: RecommenderConfig, ContentSummary, history/favorite/progress records
- stages/: exclusion set, candidate generators, merge, orchestrator
- engagement: engagement_score
- utils/: time windows, paging cursors, stats folds
"""

from typing import List, Optional

from .engagement import engagement_score
from .models.config import DEFAULT_CONFIG, RecommenderConfig, resolve_config
from .sources import ContentCatalog, FavoritesSource, HistorySource
from .stages.generators import (
    CandidateGenerator,
    CollaborativeGenerator,
    ContentBasedGenerator,
    TrendingGenerator,
)
from .stages.merge import merge_candidates
from .stages.orchestrator import create_recommendations
from .utils.stats import fold_view_stats, summarize_progress
from .utils.time import Clock, utcnow


def default_generators(
    history: HistorySource,
    favorites: FavoritesSource,
    catalog: ContentCatalog,
    config: Optional[RecommenderConfig] = None,
    clock: Clock = utcnow,
) -> List[CandidateGenerator]:
    """Trending, content-based and collaborative generators in merge order."""
    config = resolve_config(config)
    return [
        TrendingGenerator(history, config, clock=clock),
        ContentBasedGenerator(history, favorites, catalog, config),
        CollaborativeGenerator(history, favorites, config),
    ]


__all__ = [
    "CandidateGenerator",
    "CollaborativeGenerator",
    "ContentBasedGenerator",
    "DEFAULT_CONFIG",
    "RecommenderConfig",
    "TrendingGenerator",
    "create_recommendations",
    "default_generators",
    "engagement_score",
    "fold_view_stats",
    "merge_candidates",
    "resolve_config",
    "summarize_progress",
]
