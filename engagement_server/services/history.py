"""
View History Log: append-only record of what each user watched.

Entries are only ever mutated by update_last, which extends the most recent
entry for an item. Queries page newest first with opaque (viewed_at, id)
cursors so appends between page requests never shift later pages.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from recommender.models import (
    CONTENT_TYPES,
    ContentSummary,
    HistoryPage,
    HistoryQuery,
    RecommenderConfig,
    ViewHistoryEntry,
    ViewStats,
    resolve_config,
)
from recommender.utils import (
    Clock,
    decode_cursor,
    encode_cursor,
    ensure_utc,
    fold_view_stats,
    most_watched,
    utcnow,
    window_start,
)

from .. import events as ev
from ..errors import NotFoundError, ValidationError, validate_id
from ..events import EventBus
from .stores import HistoryStore

logger = logging.getLogger(__name__)

# Entries read per store round trip when a text filter is applied
TEXT_SCAN_BATCH = 100

CLEAR_SCOPES = ("all",) + CONTENT_TYPES


def validate_content_type(content_type: str) -> str:
    if content_type not in CONTENT_TYPES:
        raise ValidationError(f"type must be one of {CONTENT_TYPES}, got {content_type!r}")
    return content_type


class ViewHistoryLog:
    def __init__(
        self,
        store: HistoryStore,
        events: EventBus,
        config: Optional[RecommenderConfig] = None,
        clock: Clock = utcnow,
    ):
        self._store = store
        self._events = events
        self._config = resolve_config(config)
        self._clock = clock

    async def append(
        self,
        user_id: str,
        item_id: str,
        content_type: str,
        snapshot: ContentSummary,
        watch_duration_seconds: float = 0.0,
        completed: bool = False,
        *,
        viewed_at: Optional[datetime] = None,
    ) -> ViewHistoryEntry:
        """Always creates a new entry."""
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        validate_content_type(content_type)
        if watch_duration_seconds < 0:
            raise ValidationError("watch_duration_seconds must be non-negative")

        entry = ViewHistoryEntry(
            id=uuid.uuid4().hex,
            user_id=user_id,
            item_id=item_id,
            type=content_type,
            viewed_at=ensure_utc(viewed_at or self._clock()),
            watch_duration_seconds=watch_duration_seconds,
            completed=completed,
            snapshot=snapshot,
        )
        await self._store.append(entry)
        await self._events.publish(
            ev.VIEW_RECORDED, {"user_id": user_id, "item_id": item_id, "entry": entry}
        )
        return entry

    async def update_last(
        self,
        user_id: str,
        item_id: str,
        *,
        watch_duration_seconds: Optional[float] = None,
        completed: Optional[bool] = None,
    ) -> ViewHistoryEntry:
        """
        Extend the user's most recent entry for item_id.

        completed only moves from False to True here. Raises NotFoundError when
        the user has no entry for the item.
        """
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        latest = await self._store.latest_for_item(user_id, item_id)
        if latest is None:
            raise NotFoundError(f"No history entry for item {item_id!r}")

        updates = {}
        if watch_duration_seconds is not None:
            updates["watch_duration_seconds"] = max(watch_duration_seconds, 0.0)
        if completed:
            updates["completed"] = True
        if not updates:
            return latest
        entry = latest.model_copy(update=updates)
        await self._store.replace(entry)
        await self._events.publish(
            ev.VIEW_RECORDED, {"user_id": user_id, "item_id": item_id, "entry": entry}
        )
        return entry

    async def latest_for_item(self, user_id: str, item_id: str) -> Optional[ViewHistoryEntry]:
        return await self._store.latest_for_item(user_id, item_id)

    async def query(self, user_id: str, query: Optional[HistoryQuery] = None) -> HistoryPage:
        user_id = validate_id(user_id, "user_id")
        query = query or HistoryQuery()
        try:
            before = decode_cursor(query.cursor) if query.cursor else None
            since = window_start(query.time_window, self._clock())
        except ValueError as e:
            raise ValidationError(str(e)) from e

        term = (query.text_filter or "").strip()
        wanted = query.page_size + 1
        batch_size = max(wanted, TEXT_SCAN_BATCH) if term else wanted

        collected: List[ViewHistoryEntry] = []
        while len(collected) < wanted:
            batch = await self._store.query(
                user_id,
                content_type=query.type,
                completed_only=query.completed_only,
                since=since,
                before=before,
                limit=batch_size,
            )
            collected.extend(e for e in batch if not term or e.snapshot.matches(term))
            if len(batch) < batch_size:
                break
            last = batch[-1]
            before = (ensure_utc(last.viewed_at), last.id)

        page = collected[: query.page_size]
        next_cursor = None
        if len(collected) > query.page_size and page:
            next_cursor = encode_cursor(page[-1].viewed_at, page[-1].id)
        return HistoryPage(entries=page, next_cursor=next_cursor)

    async def stats(self, user_id: str, window: Optional[int] = None) -> ViewStats:
        """Fold over the most recent window entries (default stats_window)."""
        user_id = validate_id(user_id, "user_id")
        window = window if window is not None else self._config.stats_window
        if window < 1:
            raise ValidationError("window must be at least 1")
        return fold_view_stats(await self._store.recent_for_user(user_id, window))

    async def clear(self, user_id: str, scope: str = "all") -> int:
        """Delete the user's entries for scope (all, course or video). Irreversible."""
        user_id = validate_id(user_id, "user_id")
        if scope not in CLEAR_SCOPES:
            raise ValidationError(f"scope must be one of {CLEAR_SCOPES}, got {scope!r}")
        deleted = await self._store.delete_for_user(
            user_id, None if scope == "all" else scope
        )
        logger.info("[history] cleared %d entries for user=%s scope=%s", deleted, user_id, scope)
        await self._events.publish(
            ev.HISTORY_CLEARED, {"user_id": user_id, "scope": scope, "deleted": deleted}
        )
        return deleted

    async def search(
        self, user_id: str, term: str, limit: Optional[int] = None
    ) -> List[ViewHistoryEntry]:
        """Case-insensitive substring match; a blank term matches nothing."""
        user_id = validate_id(user_id, "user_id")
        if not term or not term.strip():
            return []
        entries = await self._store.recent_for_user(user_id)
        matches = [e for e in entries if e.snapshot.matches(term)]
        return matches if limit is None else matches[: max(limit, 0)]

    async def recent(self, user_id: str, n: int = 10) -> List[ViewHistoryEntry]:
        user_id = validate_id(user_id, "user_id")
        return await self._store.recent_for_user(user_id, max(n, 0))

    async def most_watched(self, user_id: str, n: int = 10) -> List[ViewHistoryEntry]:
        user_id = validate_id(user_id, "user_id")
        return most_watched(await self._store.recent_for_user(user_id), n)
