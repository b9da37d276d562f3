"""
Firestore stores: per-user subcollections under users/{user_id}.

- users/{user_id}/view_history/{auto id}
- users/{user_id}/favorites/{item_id}    (document id = item id, created with create())
- users/{user_id}/progress/{video_id}
- users/{user_id}/interactions/{auto id}
- content/{item_id}                      (catalog, when CATALOG_SOURCE=firebase)

Used when DATA_SOURCE=firebase. All stores share one Firebase app (same
credentials_path and project_id) and talk to Firestore through the async
client so no blocking call runs on the event loop. Cross-user history reads
(trending, collaborative) use collection group queries on view_history.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Union

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.query import Query as FirestoreQuery

from recommender.models import (
    ContentSummary,
    FavoriteEntry,
    Interaction,
    ProgressRecord,
    ViewHistoryEntry,
)
from recommender.utils.time import ensure_utc

from ..errors import AlreadyFavoritedError
from .stores import HistoryKey

logger = logging.getLogger(__name__)

# Batch size for bulk deletes (Firestore batch write limit)
DELETE_BATCH_SIZE = 500
# Firestore "in" filters accept at most 30 values
IN_FILTER_MAX = 30

CONTENT_COLLECTION = "content"


def _project_id_from_credentials_file(credentials_path: Union[Path, str]) -> Optional[str]:
    """Read project_id from a Google service account JSON file if present."""
    try:
        path = Path(credentials_path)
        if not path.is_file():
            return None
        with open(path) as f:
            data = json.load(f)
        return data.get("project_id") or data.get("projectId")
    except (OSError, ValueError):
        return None


def create_async_client(
    project_id: Optional[str] = None,
    credentials_path: Optional[Union[Path, str]] = None,
) -> Any:
    """Initialise the Firebase app once and return its async Firestore client."""
    if not firebase_admin._apps:
        project_id = project_id or (
            _project_id_from_credentials_file(credentials_path) if credentials_path else None
        )
        opts = {"projectId": project_id} if project_id else None
        if credentials_path:
            cred = credentials.Certificate(str(Path(credentials_path).resolve()))
            firebase_admin.initialize_app(cred, opts)
        else:
            firebase_admin.initialize_app(options=opts)
    return firestore_async.client()


def _user_ref(db, user_id: str, collection: str):
    return db.collection("users").document(user_id).collection(collection)


async def _stream(query) -> List[Any]:
    return [doc async for doc in query.stream()]


async def _delete_query(db, query) -> int:
    """Delete every document matched by query in batches; returns count deleted."""
    deleted = 0
    while True:
        docs = await _stream(query.limit(DELETE_BATCH_SIZE))
        if not docs:
            break
        batch = db.batch()
        for doc in docs:
            batch.delete(doc.reference)
        await batch.commit()
        deleted += len(docs)
    return deleted


def _history_from_doc(doc) -> ViewHistoryEntry:
    d = doc.to_dict()
    d["id"] = doc.id
    return ViewHistoryEntry.model_validate(d)


class FirestoreHistoryStore:
    """View history backed by users/{user_id}/view_history."""

    def __init__(self, db):
        self._db = db

    def _ref(self, user_id: str):
        return _user_ref(self._db, user_id, "view_history")

    async def append(self, entry: ViewHistoryEntry) -> None:
        data = entry.model_dump(exclude={"id"})
        await self._ref(entry.user_id).document(entry.id).set(data)

    async def replace(self, entry: ViewHistoryEntry) -> None:
        data = entry.model_dump(exclude={"id"})
        await self._ref(entry.user_id).document(entry.id).set(data)

    async def latest_for_item(self, user_id: str, item_id: str) -> Optional[ViewHistoryEntry]:
        query = (
            self._ref(user_id)
            .where(filter=FieldFilter("item_id", "==", item_id))
            .order_by("viewed_at", direction=FirestoreQuery.DESCENDING)
            .limit(1)
        )
        docs = await _stream(query)
        return _history_from_doc(docs[0]) if docs else None

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
        query = self._ref(user_id)
        if content_type:
            query = query.where(filter=FieldFilter("type", "==", content_type))
        if completed_only:
            query = query.where(filter=FieldFilter("completed", "==", True))
        if since is not None:
            query = query.where(filter=FieldFilter("viewed_at", ">=", since))
        # Document id breaks viewed_at ties so the cursor key is total
        query = query.order_by("viewed_at", direction=FirestoreQuery.DESCENDING)
        query = query.order_by("__name__", direction=FirestoreQuery.DESCENDING)
        if before is not None:
            viewed_at, entry_id = before
            query = query.start_after(
                {"viewed_at": viewed_at, "__name__": self._ref(user_id).document(entry_id)}
            )
        query = query.limit(limit)
        return [_history_from_doc(doc) for doc in await _stream(query)]

    async def recent_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[ViewHistoryEntry]:
        query = self._ref(user_id).order_by("viewed_at", direction=FirestoreQuery.DESCENDING)
        if limit is not None:
            query = query.limit(limit)
        return [_history_from_doc(doc) for doc in await _stream(query)]

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        docs = await _stream(self._ref(user_id).select(["item_id"]))
        return {doc.get("item_id") for doc in docs}

    async def entries_since(self, since: datetime, limit: int) -> List[ViewHistoryEntry]:
        query = (
            self._db.collection_group("view_history")
            .where(filter=FieldFilter("viewed_at", ">=", since))
            .order_by("viewed_at", direction=FirestoreQuery.DESCENDING)
            .limit(limit)
        )
        return [_history_from_doc(doc) for doc in await _stream(query)]

    async def entries_for_items(
        self, item_ids: Sequence[str], limit: int
    ) -> List[ViewHistoryEntry]:
        item_ids = list(item_ids)
        entries: List[ViewHistoryEntry] = []
        for start in range(0, len(item_ids), IN_FILTER_MAX):
            chunk = item_ids[start : start + IN_FILTER_MAX]
            query = (
                self._db.collection_group("view_history")
                .where(filter=FieldFilter("item_id", "in", chunk))
                .limit(limit)
            )
            entries.extend(_history_from_doc(doc) for doc in await _stream(query))
        entries.sort(key=lambda e: (ensure_utc(e.viewed_at), e.id), reverse=True)
        return entries[:limit]

    async def delete_for_user(self, user_id: str, content_type: Optional[str] = None) -> int:
        query = self._ref(user_id)
        if content_type:
            query = query.where(filter=FieldFilter("type", "==", content_type))
        return await _delete_query(self._db, query)


class FirestoreFavoritesStore:
    """Favorites backed by users/{user_id}/favorites/{item_id}."""

    def __init__(self, db):
        self._db = db

    def _ref(self, user_id: str):
        return _user_ref(self._db, user_id, "favorites")

    @staticmethod
    def _from_doc(doc) -> FavoriteEntry:
        d = doc.to_dict()
        d.setdefault("item_id", doc.id)
        return FavoriteEntry.model_validate(d)

    async def create(self, entry: FavoriteEntry) -> None:
        try:
            await self._ref(entry.user_id).document(entry.item_id).create(entry.model_dump())
        except AlreadyExists as e:
            raise AlreadyFavoritedError(entry.user_id, entry.item_id) from e

    async def delete(self, user_id: str, item_id: str) -> bool:
        doc_ref = self._ref(user_id).document(item_id)
        snapshot = await doc_ref.get()
        if not snapshot.exists:
            return False
        await doc_ref.delete()
        return True

    async def get(self, user_id: str, item_id: str) -> Optional[FavoriteEntry]:
        snapshot = await self._ref(user_id).document(item_id).get()
        return self._from_doc(snapshot) if snapshot.exists else None

    async def list_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[FavoriteEntry]:
        query = self._ref(user_id).order_by("added_at", direction=FirestoreQuery.DESCENDING)
        if limit is not None:
            query = query.limit(limit)
        return [self._from_doc(doc) for doc in await _stream(query)]

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        docs = await _stream(self._ref(user_id).select([]))
        return {doc.id for doc in docs}

    async def delete_for_user(self, user_id: str) -> int:
        return await _delete_query(self._db, self._ref(user_id))


class FirestoreProgressStore:
    """Progress backed by users/{user_id}/progress/{video_id}."""

    def __init__(self, db):
        self._db = db

    def _ref(self, user_id: str):
        return _user_ref(self._db, user_id, "progress")

    @staticmethod
    def _from_doc(doc) -> ProgressRecord:
        d = doc.to_dict()
        d.setdefault("video_id", doc.id)
        return ProgressRecord.model_validate(d)

    async def get(self, user_id: str, video_id: str) -> Optional[ProgressRecord]:
        snapshot = await self._ref(user_id).document(video_id).get()
        return self._from_doc(snapshot) if snapshot.exists else None

    async def put(self, record: ProgressRecord) -> None:
        await self._ref(record.user_id).document(record.video_id).set(record.model_dump())

    async def list_for_user(self, user_id: str) -> List[ProgressRecord]:
        query = self._ref(user_id).order_by("updated_at", direction=FirestoreQuery.DESCENDING)
        return [self._from_doc(doc) for doc in await _stream(query)]


class FirestoreInteractionStore:
    """Interactions backed by users/{user_id}/interactions."""

    def __init__(self, db):
        self._db = db

    def _ref(self, user_id: str):
        return _user_ref(self._db, user_id, "interactions")

    async def append(self, user_id: str, interaction: Interaction) -> None:
        await self._ref(user_id).add(interaction.model_dump())

    async def list_for_user(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[Interaction]:
        query = self._ref(user_id).order_by("timestamp", direction=FirestoreQuery.DESCENDING)
        if limit is not None:
            query = query.limit(limit)
        return [Interaction.model_validate(doc.to_dict()) for doc in await _stream(query)]

    async def item_ids_for_user(self, user_id: str) -> Set[str]:
        docs = await _stream(self._ref(user_id).select(["item_id"]))
        return {doc.get("item_id") for doc in docs}

    async def count_for_user(self, user_id: str) -> int:
        results = await self._ref(user_id).count(alias="total").get()
        return int(results[0][0].value) if results else 0


class FirestoreContentCatalog:
    """Catalog backed by the top-level content collection (document id = item id)."""

    def __init__(self, db):
        self._db = db

    @staticmethod
    def _from_doc(doc) -> ContentSummary:
        d: Dict[str, Any] = doc.to_dict()
        d.setdefault("id", doc.id)
        return ContentSummary.model_validate(d)

    async def get_by_id(self, item_id: str) -> Optional[ContentSummary]:
        snapshot = await self._db.collection(CONTENT_COLLECTION).document(item_id).get()
        return self._from_doc(snapshot) if snapshot.exists else None

    async def query_by_category(self, category: str, limit: int) -> List[ContentSummary]:
        query = (
            self._db.collection(CONTENT_COLLECTION)
            .where(filter=FieldFilter("category", "==", category))
            .limit(limit)
        )
        return [self._from_doc(doc) for doc in await _stream(query)]

    async def query_by_instructor(self, instructor: str, limit: int) -> List[ContentSummary]:
        query = (
            self._db.collection(CONTENT_COLLECTION)
            .where(filter=FieldFilter("instructor", "==", instructor))
            .limit(limit)
        )
        return [self._from_doc(doc) for doc in await _stream(query)]
