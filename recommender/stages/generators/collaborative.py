"""
Collaborative generator: items co-viewed by users who touched the same items.

1. Seed items: the user's touched items (recent history, then favorites),
   first collab_seed_items only.
2. Neighbours: other users with history entries on any seed item.
3. Co-views: each neighbour's recent history; an item counts once per
   neighbour who viewed it.

score = min(co_viewer_count / collab_normalizer, 1), tagged "recommended".
"""

import asyncio
import logging
from typing import AbstractSet, Dict, List, Optional, Set

from ...models.config import RecommenderConfig, resolve_config
from ...models.content import ContentSummary
from ...models.scoring import ScoredCandidate, normalized_count
from ...sources import FavoritesSource, HistorySource

logger = logging.getLogger(__name__)


def _ordered_unique(values) -> List[str]:
    seen: Set[str] = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


class CollaborativeGenerator:
    name = "collaborative"
    reason = "recommended"

    def __init__(
        self,
        history: HistorySource,
        favorites: FavoritesSource,
        config: Optional[RecommenderConfig] = None,
    ):
        self._history = history
        self._favorites = favorites
        self._config = resolve_config(config)
        self.share = self._config.collaborative_share

    async def _seed_items(self, user_id: str) -> List[str]:
        cfg = self._config
        history, favorites = await asyncio.gather(
            self._history.recent_for_user(user_id, cfg.profile_history_limit),
            self._favorites.list_for_user(user_id, cfg.profile_favorites_limit),
        )
        touched = [e.item_id for e in history] + [f.item_id for f in favorites]
        return _ordered_unique(touched)[: cfg.collab_seed_items]

    async def _neighbors(self, user_id: str, seeds: List[str]) -> List[str]:
        cfg = self._config
        entries = await self._history.entries_for_items(seeds, cfg.collab_scan_limit)
        others = _ordered_unique(e.user_id for e in entries if e.user_id != user_id)
        return others[: cfg.collab_neighbor_limit]

    async def generate(
        self, user_id: str, exclusion: AbstractSet[str], count: int
    ) -> List[ScoredCandidate]:
        if count <= 0:
            return []
        cfg = self._config
        seeds = await self._seed_items(user_id)
        if not seeds:
            return []
        neighbors = await self._neighbors(user_id, seeds)
        if not neighbors:
            return []

        histories = await asyncio.gather(
            *(
                self._history.recent_for_user(n, cfg.collab_neighbor_history_limit)
                for n in neighbors
            ),
            return_exceptions=True,
        )

        seed_set = set(seeds)
        co_viewers: Dict[str, Set[str]] = {}
        snapshots: Dict[str, ContentSummary] = {}
        for neighbor, entries in zip(neighbors, histories):
            if isinstance(entries, Exception):
                logger.warning("[collaborative] history of %s unavailable: %s", neighbor, entries)
                continue
            for entry in entries:
                if entry.item_id in exclusion or entry.item_id in seed_set:
                    continue
                co_viewers.setdefault(entry.item_id, set()).add(neighbor)
                snapshots.setdefault(entry.item_id, entry.snapshot)

        ranked = sorted(co_viewers.items(), key=lambda kv: (-len(kv[1]), kv[0]))[:count]
        logger.debug(
            "[collaborative] user=%s seeds=%d neighbors=%d returned=%d",
            user_id, len(seeds), len(neighbors), len(ranked),
        )
        return [
            ScoredCandidate(
                item_id=item_id,
                type=snapshots[item_id].type,
                snapshot=snapshots[item_id],
                score=normalized_count(len(viewers), cfg.collab_normalizer),
                reason="recommended",
                metadata={"co_viewers": len(viewers)},
            )
            for item_id, viewers in ranked
        ]
