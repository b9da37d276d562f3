"""
Continue-watching: started but unfinished videos, most recently updated first,
joined with fresh catalog snapshots.

A video the catalog no longer has is dropped. When the catalog is unavailable
the snapshot stored with the progress record is used instead.
"""

import asyncio
import logging
from typing import List, Optional

from recommender.models import ContentSummary, ContinueWatchingItem, ProgressRecord, progress_fraction
from recommender.sources import ContentCatalog
from recommender.utils import ensure_utc

from ..errors import EngagementError, validate_id
from .stores import ProgressStore

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


def is_resumable(record: ProgressRecord) -> bool:
    return not record.completed and record.watched_seconds > 0


class ContinueWatchingAggregator:
    def __init__(self, store: ProgressStore, catalog: ContentCatalog):
        self._store = store
        self._catalog = catalog

    async def _snapshot(self, record: ProgressRecord) -> Optional[ContentSummary]:
        try:
            return await self._catalog.get_by_id(record.video_id)
        except EngagementError as e:
            logger.warning("[continue] catalog unavailable for %s: %s", record.video_id, e)
            return record.snapshot or ContentSummary.bare(record.video_id, "video")

    async def list(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[ContinueWatchingItem]:
        user_id = validate_id(user_id, "user_id")
        if limit <= 0:
            return []
        records = [r for r in await self._store.list_for_user(user_id) if is_resumable(r)]
        records.sort(key=lambda r: ensure_utc(r.updated_at), reverse=True)

        snapshots = await asyncio.gather(*(self._snapshot(r) for r in records))
        items = []
        for record, snapshot in zip(records, snapshots):
            if snapshot is None:
                continue
            items.append(
                ContinueWatchingItem(
                    video_id=record.video_id,
                    course_id=record.course_id or snapshot.parent_course_id,
                    snapshot=snapshot,
                    watched_seconds=record.watched_seconds,
                    total_seconds=record.total_seconds,
                    progress=progress_fraction(record.watched_seconds, record.total_seconds),
                    last_position_seconds=record.last_position_seconds,
                    last_watched_at=record.updated_at,
                )
            )
            if len(items) >= limit:
                break
        return items
