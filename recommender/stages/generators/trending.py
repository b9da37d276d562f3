"""
Trending generator: most-viewed items across all users in the recent window.

score = min(view_count / trending_normalizer, 1), tagged "trending".
"""

import logging
from collections import Counter
from datetime import timedelta
from typing import AbstractSet, Dict, List, Optional

from ...models.config import RecommenderConfig, resolve_config
from ...models.content import ContentSummary
from ...models.scoring import ScoredCandidate, normalized_count
from ...sources import HistorySource
from ...utils.time import Clock, ensure_utc, utcnow

logger = logging.getLogger(__name__)


class TrendingGenerator:
    name = "trending"
    reason = "trending"

    def __init__(
        self,
        history: HistorySource,
        config: Optional[RecommenderConfig] = None,
        clock: Clock = utcnow,
    ):
        self._history = history
        self._config = resolve_config(config)
        self._clock = clock
        self.share = self._config.trending_share

    async def generate(
        self, user_id: str, exclusion: AbstractSet[str], count: int
    ) -> List[ScoredCandidate]:
        if count <= 0:
            return []
        cfg = self._config
        since = ensure_utc(self._clock()) - timedelta(days=cfg.trending_window_days)
        entries = await self._history.entries_since(since, cfg.trending_scan_limit)

        counts: Counter = Counter()
        snapshots: Dict[str, ContentSummary] = {}
        for entry in entries:
            if entry.item_id in exclusion or ensure_utc(entry.viewed_at) < since:
                continue
            counts[entry.item_id] += 1
            # Entries arrive newest first; keep the freshest snapshot
            snapshots.setdefault(entry.item_id, entry.snapshot)

        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:count]
        logger.debug(
            "[trending] user=%s scanned=%d distinct=%d returned=%d",
            user_id, len(entries), len(counts), len(ranked),
        )
        return [
            ScoredCandidate(
                item_id=item_id,
                type=snapshots[item_id].type,
                snapshot=snapshots[item_id],
                score=normalized_count(views, cfg.trending_normalizer),
                reason="trending",
                metadata={"views_count": views},
            )
            for item_id, views in ranked
        ]
