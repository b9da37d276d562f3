"""
Engagement facade: the operations the application layer calls.

Wires the Progress Tracker, View History Log, Favorites Set, Continue-Watching
Aggregator and Recommendation Engine over one EventBus:
- progress.completed and recorded views above auto_favorite_ratio add the
  item to favorites (already favorited is a no-op);
- views, favorites and progress updates hide the item from the cached
  recommendation list;
- every mutation for a user invalidates that user's cached engagement score.
"""

import logging
from typing import Dict, List, Optional, Sequence

from recommender import engagement_score
from recommender.models import (
    ContentSummary,
    ContinueWatchingItem,
    EnhancedStats,
    FavoriteCounts,
    FavoriteEntry,
    HistoryPage,
    HistoryQuery,
    Interaction,
    ProgressRecord,
    ProgressSummary,
    RecommendationItem,
    RecommendationResult,
    RecommenderConfig,
    ViewHistoryEntry,
    ViewStats,
    resolve_config,
)
from recommender.sources import ContentCatalog
from recommender.stages import CandidateGenerator
from recommender.utils import Clock, utcnow

from .. import events as ev
from ..errors import EngagementError, UpstreamUnavailable, validate_id
from ..events import EventBus
from ..utils import BoundedCalls
from .continue_watching import DEFAULT_LIMIT, ContinueWatchingAggregator
from .favorites import FavoritesSet
from .history import ViewHistoryLog, validate_content_type
from .progress import ProgressTracker
from .recommendations import RecommendationEngine
from .stores import FavoritesStore, HistoryStore, InteractionStore, ProgressStore

logger = logging.getLogger(__name__)

# Events after which a user's engagement score must be recomputed
SCORE_EVENTS = (
    ev.VIEW_RECORDED,
    ev.HISTORY_CLEARED,
    ev.FAVORITE_ADDED,
    ev.FAVORITE_REMOVED,
    ev.FAVORITES_CLEARED,
    ev.INTERACTION_RECORDED,
    ev.PROGRESS_UPDATED,
    ev.PROGRESS_RESET,
)

# Events whose item must disappear from the cached recommendation list
HIDE_EVENTS = (ev.VIEW_RECORDED, ev.FAVORITE_ADDED, ev.PROGRESS_UPDATED)


class EngagementService:
    def __init__(
        self,
        *,
        history: ViewHistoryLog,
        favorites: FavoritesSet,
        progress: ProgressTracker,
        continue_watching: ContinueWatchingAggregator,
        engine: RecommendationEngine,
        interactions: InteractionStore,
        catalog: ContentCatalog,
        events: EventBus,
        config: Optional[RecommenderConfig] = None,
    ):
        self.history = history
        self.favorites = favorites
        self.progress = progress
        self.continue_watching = continue_watching
        self.engine = engine
        self.events = events
        self._interactions = interactions
        self._catalog = catalog
        self._config = resolve_config(config)
        self._scores: Dict[str, int] = {}

        for event in SCORE_EVENTS:
            events.subscribe(event, self._invalidate_score)
        for event in HIDE_EVENTS:
            events.subscribe(event, self._hide_recommendation)
        events.subscribe(ev.HISTORY_CLEARED, self._invalidate_recommendations)
        events.subscribe(ev.FAVORITES_CLEARED, self._invalidate_recommendations)
        events.subscribe(ev.PROGRESS_COMPLETED, self._on_progress_completed)

    @classmethod
    def build(
        cls,
        *,
        history_store: HistoryStore,
        favorites_store: FavoritesStore,
        progress_store: ProgressStore,
        interaction_store: InteractionStore,
        catalog: ContentCatalog,
        config: Optional[RecommenderConfig] = None,
        events: Optional[EventBus] = None,
        store_timeout: float = 2.0,
        clock: Clock = utcnow,
        generators: Optional[Sequence[CandidateGenerator]] = None,
    ) -> "EngagementService":
        """Assemble the services over raw stores, bounding every store/catalog call."""
        config = resolve_config(config)
        events = events or EventBus()
        history_store = BoundedCalls(history_store, store_timeout, "history")
        favorites_store = BoundedCalls(favorites_store, store_timeout, "favorites")
        progress_store = BoundedCalls(progress_store, store_timeout, "progress")
        interaction_store = BoundedCalls(interaction_store, store_timeout, "interactions")
        catalog = BoundedCalls(catalog, store_timeout, "catalog")

        history = ViewHistoryLog(history_store, events, config, clock)
        return cls(
            history=history,
            favorites=FavoritesSet(favorites_store, events, clock),
            progress=ProgressTracker(progress_store, history, events, config, clock),
            continue_watching=ContinueWatchingAggregator(progress_store, catalog),
            engine=RecommendationEngine(
                history_store,
                favorites_store,
                interaction_store,
                catalog,
                events,
                config,
                clock,
                generators=generators,
            ),
            interactions=interaction_store,
            catalog=catalog,
            events=events,
            config=config,
        )

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    def _invalidate_score(self, payload: Dict) -> None:
        self._scores.pop(payload.get("user_id"), None)

    def _hide_recommendation(self, payload: Dict) -> None:
        self.engine.hide_item(payload["user_id"], payload["item_id"])

    def _invalidate_recommendations(self, payload: Dict) -> None:
        self.engine.invalidate(payload["user_id"])

    async def _on_progress_completed(self, payload: Dict) -> None:
        record: ProgressRecord = payload["record"]
        snapshot = record.snapshot or ContentSummary.bare(record.video_id, "video")
        await self._auto_favorite(
            record.user_id,
            record.video_id,
            snapshot,
            record.watched_seconds,
            record.total_seconds,
        )

    async def _auto_favorite(
        self,
        user_id: str,
        item_id: str,
        snapshot: ContentSummary,
        watched_seconds: float,
        duration_seconds: Optional[float],
    ) -> bool:
        """Favorite the item when watched / duration exceeds auto_favorite_ratio."""
        if not duration_seconds or duration_seconds <= 0:
            return False
        if watched_seconds / duration_seconds <= self._config.auto_favorite_ratio:
            return False
        try:
            added = await self.favorites.add_if_absent(user_id, snapshot.type, item_id, snapshot)
        except UpstreamUnavailable as e:
            logger.warning("[engagement] auto-favorite of %s for user=%s failed: %s", item_id, user_id, e)
            return False
        if added:
            logger.info("[engagement] auto-favorited %s for user=%s", item_id, user_id)
        return added

    async def _snapshot(self, item_id: str, content_type: str) -> ContentSummary:
        """Catalog snapshot, or a bare {id, type} when missing or unavailable."""
        try:
            summary = await self._catalog.get_by_id(item_id)
        except EngagementError as e:
            logger.warning("[engagement] catalog unavailable for %s: %s", item_id, e)
            summary = None
        return summary or ContentSummary.bare(item_id, content_type)

    # -------------------------------------------------------------------------
    # Views and history
    # -------------------------------------------------------------------------

    async def record_view(
        self,
        user_id: str,
        item_id: str,
        content_type: str,
        watch_duration_seconds: float = 0.0,
        completed: bool = False,
        *,
        snapshot: Optional[ContentSummary] = None,
        duration_seconds: Optional[float] = None,
    ) -> ViewHistoryEntry:
        """Append a view; auto-favorites when watch_duration / duration > auto_favorite_ratio."""
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        validate_content_type(content_type)
        snapshot = snapshot or await self._snapshot(item_id, content_type)
        entry = await self.history.append(
            user_id, item_id, content_type, snapshot, watch_duration_seconds, completed
        )
        await self._auto_favorite(
            user_id,
            item_id,
            snapshot,
            watch_duration_seconds,
            duration_seconds or snapshot.duration_seconds,
        )
        return entry

    async def query_history(self, user_id: str, query: Optional[HistoryQuery] = None) -> HistoryPage:
        return await self.history.query(user_id, query)

    async def search_history(
        self, user_id: str, term: str, limit: Optional[int] = None
    ) -> List[ViewHistoryEntry]:
        return await self.history.search(user_id, term, limit)

    async def recent_history(self, user_id: str, n: int = 10) -> List[ViewHistoryEntry]:
        return await self.history.recent(user_id, n)

    async def most_watched(self, user_id: str, n: int = 10) -> List[ViewHistoryEntry]:
        return await self.history.most_watched(user_id, n)

    async def get_view_stats(self, user_id: str, window: Optional[int] = None) -> ViewStats:
        return await self.history.stats(user_id, window)

    async def clear_history(self, user_id: str, scope: str = "all") -> int:
        return await self.history.clear(user_id, scope)

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    async def update_progress(
        self,
        user_id: str,
        video_id: str,
        watched_seconds: float,
        position_seconds: float,
        total_seconds: float,
        *,
        updated_at=None,
        course_id: Optional[str] = None,
    ) -> ProgressRecord:
        user_id = validate_id(user_id, "user_id")
        video_id = validate_id(video_id, "video_id")
        snapshot = await self._snapshot(video_id, "video")
        return await self.progress.update(
            user_id,
            video_id,
            watched_seconds,
            position_seconds,
            total_seconds,
            updated_at=updated_at,
            course_id=course_id or snapshot.parent_course_id,
            snapshot=snapshot,
        )

    async def get_progress(self, user_id: str, video_id: str) -> Optional[ProgressRecord]:
        return await self.progress.get(user_id, video_id)

    async def reset_progress(self, user_id: str, video_id: str) -> ProgressRecord:
        return await self.progress.reset(user_id, video_id)

    async def get_progress_summary(self, user_id: str) -> ProgressSummary:
        return await self.progress.summary(user_id)

    async def get_continue_watching(
        self, user_id: str, limit: int = DEFAULT_LIMIT
    ) -> List[ContinueWatchingItem]:
        return await self.continue_watching.list(user_id, limit)

    # -------------------------------------------------------------------------
    # Favorites
    # -------------------------------------------------------------------------

    async def toggle_favorite(
        self,
        user_id: str,
        content_type: str,
        item_id: str,
        snapshot: Optional[ContentSummary] = None,
    ) -> bool:
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        validate_content_type(content_type)
        snapshot = snapshot or await self._snapshot(item_id, content_type)
        return await self.favorites.toggle(user_id, content_type, item_id, snapshot)

    async def add_favorite(
        self,
        user_id: str,
        content_type: str,
        item_id: str,
        snapshot: Optional[ContentSummary] = None,
    ) -> FavoriteEntry:
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        validate_content_type(content_type)
        snapshot = snapshot or await self._snapshot(item_id, content_type)
        return await self.favorites.add(user_id, content_type, item_id, snapshot)

    async def remove_favorite(self, user_id: str, item_id: str) -> None:
        await self.favorites.remove(user_id, item_id)

    async def is_favorite(self, user_id: str, item_id: str) -> bool:
        return await self.favorites.is_favorite(user_id, item_id)

    async def list_favorites(
        self,
        user_id: str,
        *,
        content_type: Optional[str] = None,
        category: Optional[str] = None,
        term: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[FavoriteEntry]:
        if term is not None:
            favorites = await self.favorites.search(user_id, term)
        else:
            favorites = await self.favorites.list(user_id)
        if content_type is not None:
            validate_content_type(content_type)
            favorites = [f for f in favorites if f.type == content_type]
        if category is not None:
            favorites = [f for f in favorites if f.snapshot.category == category]
        return favorites if limit is None else favorites[: max(limit, 0)]

    async def favorites_count(self, user_id: str) -> FavoriteCounts:
        return await self.favorites.count(user_id)

    async def clear_favorites(self, user_id: str) -> int:
        return await self.favorites.clear(user_id)

    # -------------------------------------------------------------------------
    # Recommendations
    # -------------------------------------------------------------------------

    async def get_recommendations(
        self,
        user_id: str,
        limit: Optional[int] = None,
        *,
        allow_stale: bool = False,
        category: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> RecommendationResult:
        return await self.engine.get_recommendations(
            user_id, limit, allow_stale=allow_stale, category=category, reason=reason
        )

    async def refresh_recommendations(
        self, user_id: str, limit: Optional[int] = None
    ) -> RecommendationResult:
        return await self.engine.refresh(user_id, limit)

    async def record_interaction(self, user_id: str, item_id: str, kind: str) -> Interaction:
        return await self.engine.record_interaction(user_id, item_id, kind)

    async def recommendations_by_category(
        self, user_id: str, category: str, limit: Optional[int] = None
    ) -> List[RecommendationItem]:
        return await self.engine.by_category(user_id, category, limit)

    async def recommendations_by_reason(
        self, user_id: str, reason: str, limit: Optional[int] = None
    ) -> List[RecommendationItem]:
        return await self.engine.by_reason(user_id, reason, limit)

    # -------------------------------------------------------------------------
    # Engagement
    # -------------------------------------------------------------------------

    async def get_engagement_score(self, user_id: str) -> int:
        """Read-through cache of recommender.engagement_score."""
        user_id = validate_id(user_id, "user_id")
        if user_id in self._scores:
            return self._scores[user_id]
        stats = await self.history.stats(user_id)
        counts = await self.favorites.count(user_id)
        interactions = await self._interactions.count_for_user(user_id)
        score = engagement_score(stats, counts.total, interactions)
        self._scores[user_id] = score
        return score

    async def get_enhanced_stats(self, user_id: str) -> EnhancedStats:
        user_id = validate_id(user_id, "user_id")
        stats = await self.history.stats(user_id)
        counts = await self.favorites.count(user_id)
        recent = await self.history.recent(user_id, 1)
        return EnhancedStats(
            **stats.model_dump(),
            favorite_items_count=counts.total,
            recommendations_count=self.engine.cached_count(user_id),
            engagement_score=await self.get_engagement_score(user_id),
            last_activity=recent[0].viewed_at if recent else None,
        )
