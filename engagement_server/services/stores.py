"""
Engagement store abstraction.

Four logical collections: view history (append-only), favorites (keyed by
user + item), progress (keyed by user + video) and interactions (append-only
per user). Implementations: in-memory (local runs and tests) and Firestore
(production). Swap via DATA_SOURCE.

All read methods return entries newest first.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence, Set, Tuple

from recommender.models import (
    FavoriteEntry,
    Interaction,
    ProgressRecord,
    ViewHistoryEntry,
)
from recommender.utils.time import ensure_utc

from ..errors import AlreadyFavoritedError

HistoryKey = Tuple[datetime, str]


class HistoryStore(Protocol):
    """Append-only view history. Also satisfies recommender.sources.HistorySource."""

    async def append(self, entry: ViewHistoryEntry) -> None:
        ...

    async def replace(self, entry: ViewHistoryEntry) -> None:
        """Overwrite an existing entry (same user_id and id)."""
        ...

    async def latest_for_item(self, user_id: str, item_id: str) -> Optional[ViewHistoryEntry]:
        ...

    async def query(
        self,
        user_id: str,
        *,
        content_type: Optional[str] = None,
        completed_only: bool = False,
        since: Optional[datetime] = None,
        before: Optional[HistoryKey] = None,
        limit: int = 20,
    ) -> List[ViewHistoryEntry]:
        """Filtered entries strictly older than before (viewed_at, id)."""
        ...

    async def recent_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[ViewHistoryEntry]:
        ...

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        ...

    async def entries_since(self, since: datetime, limit: int) -> List[ViewHistoryEntry]:
        ...

    async def entries_for_items(
        self, item_ids: Sequence[str], limit: int
    ) -> List[ViewHistoryEntry]:
        ...

    async def delete_for_user(self, user_id: str, content_type: Optional[str] = None) -> int:
        """Delete the user's entries (optionally one content type); returns count deleted."""
        ...


class FavoritesStore(Protocol):
    async def create(self, entry: FavoriteEntry) -> None:
        """Insert; raises AlreadyFavoritedError when (user_id, item_id) exists."""
        ...

    async def delete(self, user_id: str, item_id: str) -> bool:
        ...

    async def get(self, user_id: str, item_id: str) -> Optional[FavoriteEntry]:
        ...

    async def list_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[FavoriteEntry]:
        ...

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        ...

    async def delete_for_user(self, user_id: str) -> int:
        ...


class ProgressStore(Protocol):
    async def get(self, user_id: str, video_id: str) -> Optional[ProgressRecord]:
        ...

    async def put(self, record: ProgressRecord) -> None:
        ...

    async def list_for_user(self, user_id: str) -> List[ProgressRecord]:
        """Records ordered by updated_at desc."""
        ...


class InteractionStore(Protocol):
    async def append(self, user_id: str, interaction: Interaction) -> None:
        ...

    async def list_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[Interaction]:
        ...

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        ...

    async def count_for_user(self, user_id: str) -> int:
        ...


def _newest_first(entries, limit: Optional[int] = None):
    ordered = sorted(entries, key=lambda e: (ensure_utc(e.viewed_at), e.id), reverse=True)
    return ordered if limit is None else ordered[: max(limit, 0)]


class InMemoryHistoryStore:
    """View history held in process memory. Used for local runs and tests."""

    def __init__(self):
        self._entries: Dict[str, List[ViewHistoryEntry]] = defaultdict(list)

    async def append(self, entry: ViewHistoryEntry) -> None:
        self._entries[entry.user_id].append(entry)

    async def replace(self, entry: ViewHistoryEntry) -> None:
        entries = self._entries[entry.user_id]
        for i, existing in enumerate(entries):
            if existing.id == entry.id:
                entries[i] = entry
                return
        raise KeyError(entry.id)

    async def latest_for_item(self, user_id: str, item_id: str) -> Optional[ViewHistoryEntry]:
        matches = [e for e in self._entries.get(user_id, ()) if e.item_id == item_id]
        newest = _newest_first(matches, 1)
        return newest[0] if newest else None

    async def query(
        self,
        user_id: str,
        *,
        content_type: Optional[str] = None,
        completed_only: bool = False,
        since: Optional[datetime] = None,
        before: Optional[HistoryKey] = None,
        limit: int = 20,
    ) -> List[ViewHistoryEntry]:
        selected = []
        for e in self._entries.get(user_id, ()):
            if content_type and e.type != content_type:
                continue
            if completed_only and not e.completed:
                continue
            if since is not None and ensure_utc(e.viewed_at) < since:
                continue
            if before is not None and (ensure_utc(e.viewed_at), e.id) >= before:
                continue
            selected.append(e)
        return _newest_first(selected, limit)

    async def recent_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[ViewHistoryEntry]:
        return _newest_first(self._entries.get(user_id, ()), limit)

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        return {e.item_id for e in self._entries.get(user_id, ())}

    async def entries_since(self, since: datetime, limit: int) -> List[ViewHistoryEntry]:
        recent = [
            e
            for entries in self._entries.values()
            for e in entries
            if ensure_utc(e.viewed_at) >= since
        ]
        return _newest_first(recent, limit)

    async def entries_for_items(
        self, item_ids: Sequence[str], limit: int
    ) -> List[ViewHistoryEntry]:
        wanted = set(item_ids)
        matches = [
            e for entries in self._entries.values() for e in entries if e.item_id in wanted
        ]
        return _newest_first(matches, limit)

    async def delete_for_user(self, user_id: str, content_type: Optional[str] = None) -> int:
        entries = self._entries.get(user_id, [])
        kept = [e for e in entries if content_type and e.type != content_type]
        deleted = len(entries) - len(kept)
        self._entries[user_id] = kept
        return deleted


class InMemoryFavoritesStore:
    def __init__(self):
        self._favorites: Dict[str, Dict[str, FavoriteEntry]] = defaultdict(dict)

    async def create(self, entry: FavoriteEntry) -> None:
        user_favorites = self._favorites[entry.user_id]
        if entry.item_id in user_favorites:
            raise AlreadyFavoritedError(entry.user_id, entry.item_id)
        user_favorites[entry.item_id] = entry

    async def delete(self, user_id: str, item_id: str) -> bool:
        return self._favorites[user_id].pop(item_id, None) is not None

    async def get(self, user_id: str, item_id: str) -> Optional[FavoriteEntry]:
        return self._favorites.get(user_id, {}).get(item_id)

    async def list_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[FavoriteEntry]:
        ordered = sorted(
            self._favorites.get(user_id, {}).values(),
            key=lambda f: (ensure_utc(f.added_at), f.id),
            reverse=True,
        )
        return ordered if limit is None else ordered[: max(limit, 0)]

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        return set(self._favorites.get(user_id, {}))

    async def delete_for_user(self, user_id: str) -> int:
        return len(self._favorites.pop(user_id, {}))


class InMemoryProgressStore:
    def __init__(self):
        self._records: Dict[Tuple[str, str], ProgressRecord] = {}

    async def get(self, user_id: str, video_id: str) -> Optional[ProgressRecord]:
        return self._records.get((user_id, video_id))

    async def put(self, record: ProgressRecord) -> None:
        self._records[(record.user_id, record.video_id)] = record

    async def list_for_user(self, user_id: str) -> List[ProgressRecord]:
        records = [r for (uid, _), r in self._records.items() if uid == user_id]
        return sorted(records, key=lambda r: ensure_utc(r.updated_at), reverse=True)


class InMemoryInteractionStore:
    def __init__(self):
        self._interactions: Dict[str, List[Interaction]] = defaultdict(list)

    async def append(self, user_id: str, interaction: Interaction) -> None:
        self._interactions[user_id].append(interaction)

    async def list_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[Interaction]:
        ordered = list(reversed(self._interactions.get(user_id, [])))
        return ordered if limit is None else ordered[: max(limit, 0)]

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        return {i.item_id for i in self._interactions.get(user_id, ())}

    async def count_for_user(self, user_id: str) -> int:
        return len(self._interactions.get(user_id, ()))
