"""
HTTP API tests against the FastAPI app with in-memory stores.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from engagement_server import app
from engagement_server.config import ServerConfig
from engagement_server.services import (
    InMemoryFavoritesStore,
    InMemoryHistoryStore,
    InMemoryProgressStore,
)
from engagement_server.state import AppState, set_state


class DownHistoryStore(InMemoryHistoryStore):
    async def recent_for_user(self, user_id, limit=None):
        raise ConnectionError("history store unreachable")


class HangingFavoritesStore(InMemoryFavoritesStore):
    async def get(self, user_id, item_id):
        await asyncio.sleep(1)

    async def delete(self, user_id, item_id):
        await asyncio.sleep(1)


class HangingProgressStore(InMemoryProgressStore):
    async def get(self, user_id, video_id):
        await asyncio.sleep(1)


def _client(stores, catalog, config=None):
    set_state(AppState(config or ServerConfig(), stores=stores, catalog=catalog))
    return TestClient(app)


@pytest.fixture
def client(stores, catalog):
    with _client(stores, catalog) as c:
        yield c
    set_state(None)


class TestRoot:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["data_source"] == "memory"

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["stores"]["history"] == "InMemoryHistoryStore"
        assert body["catalog"] == "InMemoryContentCatalog"
        assert body["generators"] == ["trending", "content", "collaborative"]


class TestHistoryRoutes:
    def test_record_and_list(self, client):
        response = client.post(
            "/api/users/u1/views",
            json={"item_id": "v-py-1", "type": "video", "watch_duration_seconds": 120},
        )
        assert response.status_code == 201
        assert response.json()["snapshot"]["title"] == "Intro to Python"

        page = client.get("/api/users/u1/history", params={"page_size": 10}).json()
        assert [e["item_id"] for e in page["entries"]] == ["v-py-1"]
        assert page["next_cursor"] is None

    def test_search_and_stats(self, client):
        client.post("/api/users/u1/views", json={"item_id": "v-py-1", "watch_duration_seconds": 60})
        client.post("/api/users/u1/views", json={"item_id": "v-design-1", "completed": True})

        found = client.get("/api/users/u1/history/search", params={"q": "color"}).json()
        assert found["count"] == 1

        stats = client.get("/api/users/u1/history/stats").json()
        assert stats["total_views"] == 2
        assert stats["completed_count"] == 1

    def test_invalid_query_is_400(self, client):
        assert client.get("/api/users/u1/history", params={"page_size": 0}).status_code == 400
        assert client.get("/api/users/u1/history", params={"time_window": "year"}).status_code == 400
        assert client.get("/api/users/u1/history", params={"cursor": "garbage"}).status_code == 400

    def test_invalid_user_id_is_400(self, client):
        response = client.post("/api/users/bad id!/views", json={"item_id": "v-py-1"})
        assert response.status_code == 400

    def test_clear(self, client):
        client.post("/api/users/u1/views", json={"item_id": "v-py-1"})
        response = client.delete("/api/users/u1/history", params={"scope": "video"})
        assert response.json() == {"scope": "video", "deleted": 1}
        assert client.delete("/api/users/u1/history", params={"scope": "nope"}).status_code == 400


class TestProgressRoutes:
    def test_update_complete_and_summary(self, client):
        body = {"watched_seconds": 900, "position_seconds": 900, "total_seconds": 1000}
        response = client.put("/api/users/u1/progress/v-py-1", json=body)
        assert response.status_code == 200
        assert response.json()["completed"] is True

        summary = client.get("/api/users/u1/progress/summary").json()
        assert summary["videos_completed"] == 1

        favorite = client.get("/api/users/u1/favorites/v-py-1").json()
        assert favorite["is_favorite"] is True

    def test_missing_progress_is_404(self, client):
        assert client.get("/api/users/u1/progress/v-py-1").status_code == 404
        assert client.post("/api/users/u1/progress/v-py-1/reset").status_code == 404

    def test_continue_watching(self, client):
        body = {"watched_seconds": 100, "position_seconds": 100, "total_seconds": 1000}
        client.put("/api/users/u1/progress/v-py-2", json=body)
        items = client.get("/api/users/u1/continue-watching").json()
        assert items["count"] == 1
        assert items["items"][0]["video_id"] == "v-py-2"


class TestFavoriteRoutes:
    def test_add_conflict_remove(self, client):
        payload = {"item_id": "v-py-1", "type": "video"}
        assert client.post("/api/users/u1/favorites", json=payload).status_code == 201
        assert client.post("/api/users/u1/favorites", json=payload).status_code == 409
        assert client.get("/api/users/u1/favorites/count").json()["total"] == 1
        assert client.delete("/api/users/u1/favorites/v-py-1").status_code == 204
        assert client.delete("/api/users/u1/favorites/v-py-1").status_code == 404

    def test_toggle_and_list(self, client):
        payload = {"item_id": "c-py", "type": "course"}
        assert client.post("/api/users/u1/favorites/toggle", json=payload).json()["is_favorite"] is True
        listing = client.get("/api/users/u1/favorites", params={"type": "course"}).json()
        assert [f["item_id"] for f in listing["favorites"]] == ["c-py"]
        assert client.post("/api/users/u1/favorites/toggle", json=payload).json()["is_favorite"] is False
        assert client.delete("/api/users/u1/favorites").json() == {"deleted": 0}


class TestRecommendationRoutes:
    def test_recommendations_exclude_seen(self, client):
        for user in ("a", "b", "c"):
            client.post(f"/api/users/{user}/views", json={"item_id": "v-data-1"})
        client.post("/api/users/u1/views", json={"item_id": "v-py-1"})

        result = client.get("/api/users/u1/recommendations").json()
        item_ids = [i["item_id"] for i in result["items"]]
        assert "v-data-1" in item_ids
        assert "v-py-1" not in item_ids
        assert result["as_of"] is not None

        trending = client.get("/api/users/u1/recommendations", params={"reason": "trending"}).json()
        assert {i["reason"] for i in trending["items"]} == {"trending"}

        data = client.get("/api/users/u1/recommendations", params={"category": "data"}).json()
        assert [i["item_id"] for i in data["items"]] == ["v-data-1"]

    def test_dismiss_removes_from_list(self, client):
        client.post("/api/users/a/views", json={"item_id": "v-data-1"})
        client.get("/api/users/u1/recommendations")

        response = client.post(
            "/api/users/u1/interactions", json={"item_id": "v-data-1", "kind": "dismiss"}
        )
        assert response.status_code == 201
        items = client.get("/api/users/u1/recommendations").json()["items"]
        assert "v-data-1" not in [i["item_id"] for i in items]

    def test_bad_requests(self, client):
        assert client.get("/api/users/u1/recommendations", params={"limit": 0}).status_code == 400
        response = client.post("/api/users/u1/interactions", json={"item_id": "x", "kind": "love"})
        assert response.status_code == 400

    def test_engagement(self, client):
        client.post(
            "/api/users/u1/views",
            json={"item_id": "v-py-1", "watch_duration_seconds": 600},
        )
        body = client.get("/api/users/u1/engagement").json()
        assert body["score"] == 15
        assert body["stats"]["favorite_items_count"] == 1


def test_store_outage_is_503(stores, catalog):
    _, favorites, progress, interactions = stores
    with _client((DownHistoryStore(), favorites, progress, interactions), catalog) as client:
        response = client.get("/api/users/u1/history/recent")
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
    set_state(None)


def test_mutation_timeouts_are_503(stores, catalog):
    history, _, _, interactions = stores
    hanging = (history, HangingFavoritesStore(), HangingProgressStore(), interactions)
    config = ServerConfig(store_timeout_seconds=0.05)
    with _client(hanging, catalog, config) as client:
        responses = [
            client.post("/api/users/u1/favorites/toggle", json={"item_id": "v-py-1", "type": "video"}),
            client.delete("/api/users/u1/favorites/v-py-1"),
            client.put(
                "/api/users/u1/progress/v-py-1",
                json={"watched_seconds": 10, "position_seconds": 10, "total_seconds": 100},
            ),
        ]
    set_state(None)
    for response in responses:
        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
