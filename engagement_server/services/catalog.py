"""
Content catalog adapters.

Supplies course/video summaries to the services and the content-based generator.
Implementations: in-memory (optionally loaded from a JSON file), HTTP catalog
service, Firestore (see firestore_stores.FirestoreContentCatalog).
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import requests

from recommender.models import ContentSummary, ensure_summary
from recommender.sources import ContentCatalog

__all__ = ["ContentCatalog", "HttpContentCatalog", "InMemoryContentCatalog"]


class InMemoryContentCatalog:
    """
    Catalog held in memory. Used for local runs and tests, and when
    CATALOG_SOURCE=json (items loaded from CATALOG_JSON_PATH).
    """

    def __init__(self, items: Optional[Iterable[Union[Dict[str, Any], ContentSummary]]] = None):
        self._items: Dict[str, ContentSummary] = {}
        for item in items or ():
            self.put(item)

    @classmethod
    def from_json(cls, path: Union[Path, str]) -> "InMemoryContentCatalog":
        """Load from a JSON list of items, or an object with an "items" list."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Catalog JSON not found: {path}")
        with open(path) as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("items", [])
        return cls(data)

    def put(self, item: Union[Dict[str, Any], ContentSummary]) -> ContentSummary:
        summary = ensure_summary(item)
        self._items[summary.id] = summary
        return summary

    def remove(self, item_id: str) -> None:
        self._items.pop(item_id, None)

    def __len__(self) -> int:
        return len(self._items)

    async def get_by_id(self, item_id: str) -> Optional[ContentSummary]:
        return self._items.get(item_id)

    async def query_by_category(self, category: str, limit: int) -> List[ContentSummary]:
        return [i for i in self._items.values() if i.category == category][: max(limit, 0)]

    async def query_by_instructor(self, instructor: str, limit: int) -> List[ContentSummary]:
        return [i for i in self._items.values() if i.instructor == instructor][: max(limit, 0)]


class HttpContentCatalog:
    """
    Catalog served over HTTP (CATALOG_SOURCE=http).

    GET {base_url}/content/{id}                      -> summary, 404 when unknown
    GET {base_url}/content?category=...&limit=...    -> list (or {"items": [...]})
    GET {base_url}/content?instructor=...&limit=...  -> list (or {"items": [...]})

    requests is blocking, so calls run in a worker thread.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 2.0,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        response = self._session.get(f"{self._base_url}{path}", params=params, timeout=self._timeout)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    def _list(self, params: Dict[str, Any]) -> List[ContentSummary]:
        data = self._get("/content", params) or []
        if isinstance(data, dict):
            data = data.get("items", [])
        return [ContentSummary.model_validate(d) for d in data]

    async def get_by_id(self, item_id: str) -> Optional[ContentSummary]:
        data = await asyncio.to_thread(self._get, f"/content/{item_id}")
        return ContentSummary.model_validate(data) if data else None

    async def query_by_category(self, category: str, limit: int) -> List[ContentSummary]:
        items = await asyncio.to_thread(self._list, {"category": category, "limit": limit})
        return items[: max(limit, 0)]

    async def query_by_instructor(self, instructor: str, limit: int) -> List[ContentSummary]:
        items = await asyncio.to_thread(self._list, {"instructor": instructor, "limit": limit})
        return items[: max(limit, 0)]
