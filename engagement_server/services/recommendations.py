"""
Recommendation Engine runtime: per-user cache, single-flight refresh and the
feedback loop around recommender.create_recommendations.

- get_recommendations serves the cache while it is younger than
  refresh_interval_minutes and was computed for at least the requested limit;
  otherwise it refreshes. With allow_stale=True an expired cache is served at
  once (flagged stale, StaleDataWarning issued) and refreshed in the background.
- refresh always re-runs the generators; concurrent refreshes for one user
  share a single in-flight task.
- A refresh that fails completely (no exclusion set, or every generator failed)
  serves the previous list flagged stale when one exists.
- dismiss/not_interested remove the item from the cached list immediately,
  then the interaction is stored.
"""

import asyncio
import logging
import warnings
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Optional, Sequence, Set

from recommender import default_generators
from recommender.models import (
    REASON_ALL_GENERATORS_FAILED,
    REASON_EXCLUSION_UNAVAILABLE,
    REMOVING_KINDS,
    Interaction,
    RecommendationItem,
    RecommendationResult,
    RecommenderConfig,
    resolve_config,
)
from recommender.sources import ContentCatalog
from recommender.stages import CandidateGenerator, create_recommendations
from recommender.utils import Clock, ensure_utc, utcnow

from .. import events as ev
from ..errors import StaleDataWarning, UpstreamUnavailable, ValidationError, validate_id
from ..events import EventBus
from .stores import FavoritesStore, HistoryStore, InteractionStore

logger = logging.getLogger(__name__)

INTERACTION_KINDS = ("click", "dismiss", "not_interested", "completed")

FAILED_REASONS = (REASON_ALL_GENERATORS_FAILED, REASON_EXCLUSION_UNAVAILABLE)

MAX_LIMIT = 100

# Users whose lists are kept; the least recently served is evicted first
MAX_CACHED_USERS = 500


@dataclass
class CachedRecommendations:
    result: RecommendationResult
    computed_limit: int


def _narrow(
    result: RecommendationResult, category: Optional[str], reason: Optional[str]
) -> RecommendationResult:
    if category is None and reason is None:
        return result
    items = [
        i
        for i in result.items
        if (category is None or i.snapshot.category == category)
        and (reason is None or i.reason == reason)
    ]
    return result.model_copy(update={"items": items})


class RecommendationEngine:
    def __init__(
        self,
        history: HistoryStore,
        favorites: FavoritesStore,
        interactions: InteractionStore,
        catalog: ContentCatalog,
        events: EventBus,
        config: Optional[RecommenderConfig] = None,
        clock: Clock = utcnow,
        generators: Optional[Sequence[CandidateGenerator]] = None,
        max_cached_users: int = MAX_CACHED_USERS,
    ):
        self._history = history
        self._favorites = favorites
        self._interactions = interactions
        self._events = events
        self._config = resolve_config(config)
        self._clock = clock
        self._generators = list(
            generators
            if generators is not None
            else default_generators(history, favorites, catalog, self._config, clock)
        )
        self._cache: "OrderedDict[str, CachedRecommendations]" = OrderedDict()
        self._max_cached_users = max_cached_users
        self._inflight: Dict[str, asyncio.Task] = {}
        self._background: Set[asyncio.Task] = set()
        # Items seen or dismissed since the cached list was computed
        self._hidden: Dict[str, Set[str]] = {}

    @property
    def generators(self) -> List[CandidateGenerator]:
        return list(self._generators)

    def _resolve_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self._config.default_limit
        if limit < 1 or limit > MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")
        return limit

    def _is_fresh(self, cached: CachedRecommendations, limit: int) -> bool:
        age = ensure_utc(self._clock()) - ensure_utc(cached.result.as_of)
        return (
            age < timedelta(minutes=self._config.refresh_interval_minutes)
            and cached.computed_limit >= limit
        )

    def _view(
        self, cached: CachedRecommendations, limit: int, stale: bool = False
    ) -> RecommendationResult:
        hidden = self._hidden.get(cached.result.user_id, set())
        items = [i for i in cached.result.items if i.item_id not in hidden][:limit]
        return cached.result.model_copy(
            update={"items": items, "stale": stale or cached.result.stale}
        )

    def _cached(self, user_id: str) -> Optional[CachedRecommendations]:
        cached = self._cache.get(user_id)
        if cached is not None:
            self._cache.move_to_end(user_id)
        return cached

    def _store(self, user_id: str, cached: CachedRecommendations) -> None:
        self._cache[user_id] = cached
        self._cache.move_to_end(user_id)
        while len(self._cache) > self._max_cached_users:
            evicted, _ = self._cache.popitem(last=False)
            self._hidden.pop(evicted, None)

    async def get_recommendations(
        self,
        user_id: str,
        limit: Optional[int] = None,
        *,
        allow_stale: bool = False,
        category: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> RecommendationResult:
        """
        Cheap read: cached list when fresh, otherwise a refresh.

        category and reason narrow the served list after limit is applied.
        """
        user_id = validate_id(user_id, "user_id")
        limit = self._resolve_limit(limit)
        cached = self._cached(user_id)
        if cached is not None and self._is_fresh(cached, limit):
            result = self._view(cached, limit)
        elif cached is not None and allow_stale and cached.computed_limit >= limit:
            warnings.warn(
                StaleDataWarning(
                    f"Serving recommendations for {user_id} computed at {cached.result.as_of.isoformat()}"
                ),
                stacklevel=2,
            )
            self._schedule_refresh(user_id, limit)
            result = self._view(cached, limit, stale=True)
        else:
            result = await self.refresh(user_id, limit)
        return _narrow(result, category, reason)

    async def refresh(self, user_id: str, limit: Optional[int] = None) -> RecommendationResult:
        """Re-run the generators, joining an in-flight refresh for the same user."""
        user_id = validate_id(user_id, "user_id")
        limit = self._resolve_limit(limit)

        task = self._inflight.get(user_id)
        if task is not None:
            outcome = await asyncio.shield(task)
            if outcome.computed_limit >= limit:
                return self._view(outcome, limit)

        task = self._inflight.get(user_id) or self._start_refresh(user_id, limit)
        outcome = await asyncio.shield(task)
        return self._view(outcome, limit)

    def _start_refresh(self, user_id: str, limit: int) -> asyncio.Task:
        task = asyncio.create_task(self._compute(user_id, limit))
        self._inflight[user_id] = task

        def _done(t: asyncio.Task) -> None:
            if self._inflight.get(user_id) is t:
                del self._inflight[user_id]

        task.add_done_callback(_done)
        return task

    def _schedule_refresh(self, user_id: str, limit: int) -> None:
        if user_id in self._inflight:
            return
        task = self._start_refresh(user_id, limit)
        self._background.add(task)

        def _finished(t: asyncio.Task) -> None:
            self._background.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error("[engine] background refresh for %s failed: %s", user_id, t.exception())

        task.add_done_callback(_finished)

    async def _compute(self, user_id: str, limit: int) -> CachedRecommendations:
        compute_limit = max(limit, self._config.default_limit)
        hidden_before = set(self._hidden.get(user_id, ()))
        result = await create_recommendations(
            user_id,
            compute_limit,
            self._generators,
            self._history,
            self._favorites,
            self._interactions,
            self._config,
            self._clock,
        )

        previous = self._cache.get(user_id)
        if result.reason in FAILED_REASONS:
            if previous is not None:
                logger.warning(
                    "[engine] refresh failed for %s (%s), serving list from %s",
                    user_id, result.reason, previous.result.as_of,
                )
                stale = previous.result.model_copy(
                    update={"stale": True, "generators": result.generators}
                )
                return CachedRecommendations(stale, previous.computed_limit)
            self._hidden.pop(user_id, None)
            return CachedRecommendations(result, compute_limit)

        # A hidden id the new list no longer carries was excluded by this
        # refresh; one it still carries was written after the exclusion read.
        hidden = self._hidden.get(user_id)
        if hidden is not None:
            returned = {i.item_id for i in result.items}
            hidden.difference_update(hidden_before - returned)
            if not hidden:
                del self._hidden[user_id]
        cached = CachedRecommendations(result, compute_limit)
        self._store(user_id, cached)
        return cached

    def hide_item(self, user_id: str, item_id: str) -> None:
        """Remove item_id from the user's cached or in-flight list."""
        if user_id in self._cache or user_id in self._inflight:
            self._hidden.setdefault(user_id, set()).add(item_id)

    def invalidate(self, user_id: str) -> None:
        """Drop the user's cached list."""
        self._cache.pop(user_id, None)
        self._hidden.pop(user_id, None)

    def cached_count(self, user_id: str) -> int:
        cached = self._cache.get(user_id)
        if cached is None:
            return 0
        hidden = self._hidden.get(user_id, set())
        return sum(1 for i in cached.result.items if i.item_id not in hidden)

    async def record_interaction(self, user_id: str, item_id: str, kind: str) -> Interaction:
        """
        Record feedback on a recommended item.

        dismiss/not_interested hide the item from the cached list before the
        write. Raises UpstreamUnavailable when the interaction store fails.
        """
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        if kind not in INTERACTION_KINDS:
            raise ValidationError(f"kind must be one of {INTERACTION_KINDS}, got {kind!r}")

        interaction = Interaction(item_id=item_id, kind=kind, timestamp=self._clock())
        if kind in REMOVING_KINDS:
            # Held until the write lands so a refresh started meanwhile keeps it hidden
            self._hidden.setdefault(user_id, set()).add(item_id)
        try:
            await self._interactions.append(user_id, interaction)
        except UpstreamUnavailable:
            logger.warning("[engine] interaction not stored for user=%s item=%s", user_id, item_id)
            raise
        finally:
            if user_id not in self._cache and user_id not in self._inflight:
                self._hidden.pop(user_id, None)
        await self._events.publish(
            ev.INTERACTION_RECORDED,
            {"user_id": user_id, "item_id": item_id, "kind": kind},
        )
        return interaction

    async def by_category(
        self, user_id: str, category: str, limit: Optional[int] = None
    ) -> List[RecommendationItem]:
        result = await self.get_recommendations(user_id, limit, category=category)
        return result.items

    async def by_reason(
        self, user_id: str, reason: str, limit: Optional[int] = None
    ) -> List[RecommendationItem]:
        result = await self.get_recommendations(user_id, limit, reason=reason)
        return result.items
