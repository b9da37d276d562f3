"""
Progress Tracker: per-(user, video) watch state.

Writes are last-writer-wins by updated_at and idempotent for repeated values.
completed flips to True once watched_seconds reaches
total_seconds * completion_threshold and never flips back except via reset.
The False -> True transition publishes progress.completed exactly once.

Every accepted update also records viewing activity: the user's latest history
entry for the video is extended when it is younger than the session gap,
otherwise a new entry is appended.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from recommender.models import (
    ContentSummary,
    ProgressRecord,
    ProgressSummary,
    RecommenderConfig,
    resolve_config,
)
from recommender.utils import Clock, ensure_utc, summarize_progress, utcnow

from .. import events as ev
from ..errors import EngagementError, NotFoundError, ValidationError, validate_id
from ..events import EventBus
from ..utils import KeyedLocks
from .history import ViewHistoryLog
from .stores import ProgressStore

logger = logging.getLogger(__name__)


def _check_seconds(**values: float) -> None:
    for name, value in values.items():
        if value is None or value < 0:
            raise ValidationError(f"{name} must be a non-negative number")


class ProgressTracker:
    def __init__(
        self,
        store: ProgressStore,
        history: ViewHistoryLog,
        events: EventBus,
        config: Optional[RecommenderConfig] = None,
        clock: Clock = utcnow,
    ):
        self._store = store
        self._history = history
        self._events = events
        self._config = resolve_config(config)
        self._clock = clock
        self._locks = KeyedLocks()

    def is_complete(self, watched_seconds: float, total_seconds: float) -> bool:
        return total_seconds > 0 and watched_seconds >= total_seconds * self._config.completion_threshold

    async def update(
        self,
        user_id: str,
        video_id: str,
        watched_seconds: float,
        position_seconds: float,
        total_seconds: float,
        *,
        updated_at: Optional[datetime] = None,
        course_id: Optional[str] = None,
        snapshot: Optional[ContentSummary] = None,
    ) -> ProgressRecord:
        """
        Upsert the record for (user_id, video_id).

        Returns the stored record. An update older than the stored updated_at,
        or one repeating the stored values, leaves the store untouched.
        Store failures surface as UpstreamUnavailable.
        """
        user_id = validate_id(user_id, "user_id")
        video_id = validate_id(video_id, "video_id")
        if course_id is not None:
            course_id = validate_id(course_id, "course_id")
        _check_seconds(
            watched_seconds=watched_seconds,
            position_seconds=position_seconds,
            total_seconds=total_seconds,
        )
        at = ensure_utc(updated_at or self._clock())

        async with self._locks(user_id, video_id):
            current = await self._store.get(user_id, video_id)
            if current is not None:
                if at < ensure_utc(current.updated_at):
                    logger.debug(
                        "[progress] ignoring out-of-order update user=%s video=%s", user_id, video_id
                    )
                    return current
                if (
                    current.watched_seconds == watched_seconds
                    and current.last_position_seconds == position_seconds
                    and current.total_seconds == total_seconds
                ):
                    return current

            was_completed = current is not None and current.completed
            completed = was_completed or self.is_complete(watched_seconds, total_seconds)
            just_completed = completed and not was_completed
            record = ProgressRecord(
                user_id=user_id,
                video_id=video_id,
                watched_seconds=watched_seconds,
                total_seconds=total_seconds,
                last_position_seconds=position_seconds,
                completed=completed,
                completed_at=at if just_completed else (current.completed_at if current else None),
                updated_at=at,
                course_id=course_id or (current.course_id if current else None),
                snapshot=snapshot or (current.snapshot if current else None),
            )
            await self._store.put(record)

        await self._record_activity(record, current)
        await self._events.publish(ev.PROGRESS_UPDATED, {"user_id": user_id, "item_id": video_id, "record": record})
        if just_completed:
            logger.info("[progress] user=%s completed video=%s", user_id, video_id)
            await self._events.publish(
                ev.PROGRESS_COMPLETED, {"user_id": user_id, "item_id": video_id, "record": record}
            )
        return record

    async def _record_activity(
        self, record: ProgressRecord, previous: Optional[ProgressRecord]
    ) -> None:
        """Extend or append a history entry with the seconds watched since the last update."""
        previous_watched = previous.watched_seconds if previous is not None else 0.0
        delta = max(record.watched_seconds - previous_watched, 0.0)
        gap = timedelta(minutes=self._config.history_session_gap_minutes)
        try:
            latest = await self._history.latest_for_item(record.user_id, record.video_id)
            if latest is not None and ensure_utc(record.updated_at) - ensure_utc(latest.viewed_at) <= gap:
                await self._history.update_last(
                    record.user_id,
                    record.video_id,
                    watch_duration_seconds=latest.watch_duration_seconds + delta,
                    completed=record.completed,
                )
            else:
                await self._history.append(
                    record.user_id,
                    record.video_id,
                    "video",
                    record.snapshot or ContentSummary.bare(record.video_id, "video"),
                    watch_duration_seconds=delta,
                    completed=record.completed,
                    viewed_at=record.updated_at,
                )
        except EngagementError as e:
            logger.warning(
                "[progress] history not recorded for user=%s video=%s: %s",
                record.user_id, record.video_id, e,
            )

    async def reset(self, user_id: str, video_id: str) -> ProgressRecord:
        """Zero watched/position/completed. History is untouched."""
        user_id = validate_id(user_id, "user_id")
        video_id = validate_id(video_id, "video_id")
        async with self._locks(user_id, video_id):
            current = await self._store.get(user_id, video_id)
            if current is None:
                raise NotFoundError(f"No progress for video {video_id!r}")
            record = current.model_copy(
                update={
                    "watched_seconds": 0.0,
                    "last_position_seconds": 0.0,
                    "completed": False,
                    "completed_at": None,
                    "updated_at": max(ensure_utc(self._clock()), ensure_utc(current.updated_at)),
                }
            )
            await self._store.put(record)
        await self._events.publish(ev.PROGRESS_RESET, {"user_id": user_id, "item_id": video_id, "record": record})
        return record

    async def get(self, user_id: str, video_id: str) -> Optional[ProgressRecord]:
        user_id = validate_id(user_id, "user_id")
        video_id = validate_id(video_id, "video_id")
        return await self._store.get(user_id, video_id)

    async def list(self, user_id: str) -> List[ProgressRecord]:
        user_id = validate_id(user_id, "user_id")
        return await self._store.list_for_user(user_id)

    async def summary(self, user_id: str) -> ProgressSummary:
        records = await self.list(user_id)
        return summarize_progress(records, self._clock())
