"""
Favorites Set: at most one favorite per (user, item).

add/remove/toggle for the same (user, item) are serialized with a keyed lock;
stores also enforce uniqueness at write time.
"""

import logging
import uuid
from typing import List, Optional

from recommender.models import (
    ContentSummary,
    FavoriteCounts,
    FavoriteEntry,
)
from recommender.utils import Clock, utcnow

from .. import events as ev
from ..errors import AlreadyFavoritedError, NotFoundError, validate_id
from ..events import EventBus
from ..utils import KeyedLocks
from .history import validate_content_type
from .stores import FavoritesStore

logger = logging.getLogger(__name__)


class FavoritesSet:
    def __init__(self, store: FavoritesStore, events: EventBus, clock: Clock = utcnow):
        self._store = store
        self._events = events
        self._clock = clock
        self._locks = KeyedLocks()

    async def _create(
        self, user_id: str, content_type: str, item_id: str, snapshot: ContentSummary
    ) -> FavoriteEntry:
        entry = FavoriteEntry(
            id=uuid.uuid4().hex,
            user_id=user_id,
            item_id=item_id,
            type=content_type,
            added_at=self._clock(),
            snapshot=snapshot,
        )
        await self._store.create(entry)
        return entry

    async def add(
        self, user_id: str, content_type: str, item_id: str, snapshot: ContentSummary
    ) -> FavoriteEntry:
        """Raises AlreadyFavoritedError when the pair already exists."""
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        validate_content_type(content_type)
        async with self._locks(user_id, item_id):
            entry = await self._create(user_id, content_type, item_id, snapshot)
        await self._events.publish(ev.FAVORITE_ADDED, {"user_id": user_id, "item_id": item_id})
        return entry

    async def add_if_absent(
        self, user_id: str, content_type: str, item_id: str, snapshot: ContentSummary
    ) -> bool:
        """add(), treating an existing favorite as a silent no-op. True when added."""
        try:
            await self.add(user_id, content_type, item_id, snapshot)
        except AlreadyFavoritedError:
            return False
        return True

    async def remove(self, user_id: str, item_id: str) -> None:
        """Raises NotFoundError when the pair does not exist."""
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        async with self._locks(user_id, item_id):
            deleted = await self._store.delete(user_id, item_id)
        if not deleted:
            raise NotFoundError(f"Item {item_id!r} is not a favorite")
        await self._events.publish(ev.FAVORITE_REMOVED, {"user_id": user_id, "item_id": item_id})

    async def toggle(
        self, user_id: str, content_type: str, item_id: str, snapshot: ContentSummary
    ) -> bool:
        """Add if absent, remove if present. Returns the new state."""
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        validate_content_type(content_type)
        async with self._locks(user_id, item_id):
            existing = await self._store.get(user_id, item_id)
            if existing is not None:
                await self._store.delete(user_id, item_id)
                now_favorite = False
            else:
                await self._create(user_id, content_type, item_id, snapshot)
                now_favorite = True
        event = ev.FAVORITE_ADDED if now_favorite else ev.FAVORITE_REMOVED
        await self._events.publish(event, {"user_id": user_id, "item_id": item_id})
        return now_favorite

    async def is_favorite(self, user_id: str, item_id: str) -> bool:
        user_id = validate_id(user_id, "user_id")
        item_id = validate_id(item_id, "item_id")
        return await self._store.get(user_id, item_id) is not None

    async def list(self, user_id: str, limit: Optional[int] = None) -> List[FavoriteEntry]:
        user_id = validate_id(user_id, "user_id")
        return await self._store.list_for_user(user_id, limit)

    async def by_type(self, user_id: str, content_type: str) -> List[FavoriteEntry]:
        validate_content_type(content_type)
        return [f for f in await self.list(user_id) if f.type == content_type]

    async def by_category(self, user_id: str, category: str) -> List[FavoriteEntry]:
        return [f for f in await self.list(user_id) if f.snapshot.category == category]

    async def count(self, user_id: str) -> FavoriteCounts:
        favorites = await self.list(user_id)
        courses = sum(1 for f in favorites if f.type == "course")
        return FavoriteCounts(
            total=len(favorites), courses=courses, videos=len(favorites) - courses
        )

    async def search(self, user_id: str, term: str) -> List[FavoriteEntry]:
        """Case-insensitive substring match; a blank term matches nothing."""
        if not term or not term.strip():
            return []
        return [f for f in await self.list(user_id) if f.snapshot.matches(term)]

    async def clear(self, user_id: str) -> int:
        user_id = validate_id(user_id, "user_id")
        deleted = await self._store.delete_for_user(user_id)
        logger.info("[favorites] cleared %d favorites for user=%s", deleted, user_id)
        await self._events.publish(ev.FAVORITES_CLEARED, {"user_id": user_id, "deleted": deleted})
        return deleted
