"""
Read-side protocols the recommendation stages depend on.

The engagement server's stores and catalog adapters implement these; tests can
pass any object with matching coroutines.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Sequence, Set

from .models.content import ContentSummary
from .models.favorite import FavoriteEntry
from .models.history import ViewHistoryEntry


class HistorySource(Protocol):
    async def recent_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[ViewHistoryEntry]:
        """User's entries, newest first."""
        ...

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        """Every item id in the user's full history."""
        ...

    async def entries_since(self, since: datetime, limit: int) -> List[ViewHistoryEntry]:
        """Entries across all users viewed at or after since, newest first."""
        ...

    async def entries_for_items(
        self, item_ids: Sequence[str], limit: int
    ) -> List[ViewHistoryEntry]:
        """Entries across all users referencing any of item_ids, newest first."""
        ...


class FavoritesSource(Protocol):
    async def list_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[FavoriteEntry]:
        ...

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        ...


class InteractionSource(Protocol):
    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        ...


class ContentCatalog(Protocol):
    """Content catalog collaborator."""

    async def get_by_id(self, item_id: str) -> Optional[ContentSummary]:
        """Summary for item_id, or None when the catalog has no such item."""
        ...

    async def query_by_category(self, category: str, limit: int) -> List[ContentSummary]:
        ...

    async def query_by_instructor(self, instructor: str, limit: int) -> List[ContentSummary]:
        ...
