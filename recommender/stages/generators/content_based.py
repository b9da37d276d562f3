"""
Content-based generator: catalog items sharing the user's top categories and
instructors.

The profile is a frequency map over the user's most recent history entries and
favorites. Each top category is queried (capped per category) and each top
instructor likewise; an item reached through several paths keeps its best score.

category path:   score = min(category_frequency / category_normalizer, 1)
instructor path: score = min(instructor_frequency / instructor_normalizer, 1)
"""

import asyncio
import logging
from collections import Counter
from typing import AbstractSet, List, Optional, Tuple

from ...models.config import RecommenderConfig, resolve_config
from ...models.content import ContentSummary
from ...models.scoring import ScoredCandidate, normalized_count
from ...sources import ContentCatalog, FavoritesSource, HistorySource
from .base import top_by_score

logger = logging.getLogger(__name__)


def _profile_snapshots(history, favorites) -> List[ContentSummary]:
    return [e.snapshot for e in history] + [f.snapshot for f in favorites]


def _top(counter: Counter, n: int) -> List[Tuple[str, int]]:
    """Most frequent keys; ties keep first-seen order."""
    return counter.most_common(n) if n > 0 else []


class ContentBasedGenerator:
    name = "content"
    reason = "similar"

    def __init__(
        self,
        history: HistorySource,
        favorites: FavoritesSource,
        catalog: ContentCatalog,
        config: Optional[RecommenderConfig] = None,
    ):
        self._history = history
        self._favorites = favorites
        self._catalog = catalog
        self._config = resolve_config(config)
        self.share = self._config.content_share

    async def _profile(self, user_id: str) -> Tuple[Counter, Counter]:
        cfg = self._config
        history, favorites = await asyncio.gather(
            self._history.recent_for_user(user_id, cfg.profile_history_limit),
            self._favorites.list_for_user(user_id, cfg.profile_favorites_limit),
        )
        categories: Counter = Counter()
        instructors: Counter = Counter()
        for snap in _profile_snapshots(history, favorites):
            if snap.category:
                categories[snap.category] += 1
            if snap.instructor:
                instructors[snap.instructor] += 1
        return categories, instructors

    async def generate(
        self, user_id: str, exclusion: AbstractSet[str], count: int
    ) -> List[ScoredCandidate]:
        if count <= 0:
            return []
        cfg = self._config
        categories, instructors = await self._profile(user_id)

        # (path, key, frequency, normalizer) per catalog query
        paths = [
            ("category", key, freq, cfg.category_normalizer)
            for key, freq in _top(categories, cfg.content_top_categories)
        ] + [
            ("instructor", key, freq, cfg.instructor_normalizer)
            for key, freq in _top(instructors, cfg.content_top_instructors)
        ]
        if not paths:
            return []

        queries = [
            self._catalog.query_by_category(key, cfg.content_per_category)
            if path == "category"
            else self._catalog.query_by_instructor(key, cfg.content_per_instructor)
            for path, key, _, _ in paths
        ]
        results = await asyncio.gather(*queries, return_exceptions=True)

        candidates: List[ScoredCandidate] = []
        failures: List[Exception] = []
        for (path, key, freq, normalizer), result in zip(paths, results):
            if isinstance(result, Exception):
                logger.warning("[content] %s query %r failed: %s", path, key, result)
                failures.append(result)
                continue
            score = normalized_count(freq, normalizer)
            for item in result:
                if item.id in exclusion:
                    continue
                candidates.append(
                    ScoredCandidate(
                        item_id=item.id,
                        type=item.type,
                        snapshot=item,
                        score=score,
                        reason="similar",
                        metadata={"matched_" + path: key, "frequency": freq},
                    )
                )

        if failures and len(failures) == len(paths):
            raise failures[0]
        return top_by_score(candidates, count)
