"""
Favorites Set tests: uniqueness, toggle, auto-favorite and queries.
"""

import asyncio

import pytest

from engagement_server.errors import (
    AlreadyFavoritedError,
    NotFoundError,
    UpstreamUnavailable,
    ValidationError,
)
from engagement_server.services import InMemoryFavoritesStore


class HangingFavoritesStore(InMemoryFavoritesStore):
    async def get(self, user_id, item_id):
        await asyncio.sleep(1)

    async def create(self, entry):
        await asyncio.sleep(1)

    async def delete(self, user_id, item_id):
        await asyncio.sleep(1)


class RecordingCatalog:
    def __init__(self):
        self.lookups = []

    async def get_by_id(self, item_id):
        self.lookups.append(item_id)
        return None


class TestAutoFavorite:
    async def test_watch_over_half_adds_favorite_once(self, service, clock):
        """A 600s watch of a 1000s video favorites it; repeating it adds nothing."""
        await service.record_view("u1", "v-py-1", "video", 600, duration_seconds=1000)
        clock.advance(minutes=1)
        await service.record_view("u1", "v-py-1", "video", 600, duration_seconds=1000)

        counts = await service.favorites_count("u1")
        assert counts.total == 1
        assert await service.is_favorite("u1", "v-py-1") is True

    async def test_duration_defaults_to_catalog(self, service):
        await service.record_view("u1", "v-py-3", "video", 400)
        assert await service.is_favorite("u1", "v-py-3") is True

    async def test_exactly_half_is_not_enough(self, service):
        await service.record_view("u1", "v-py-1", "video", 500)
        assert await service.is_favorite("u1", "v-py-1") is False

    async def test_unknown_duration_never_favorites(self, service):
        await service.record_view("u1", "c-py", "course", 5000)
        assert await service.is_favorite("u1", "c-py") is False


class TestAddRemove:
    async def test_add_twice_conflicts(self, service):
        entry = await service.add_favorite("u1", "video", "v-py-1")
        assert entry.snapshot.title == "Intro to Python"
        with pytest.raises(AlreadyFavoritedError):
            await service.add_favorite("u1", "video", "v-py-1")

    async def test_remove_missing_raises(self, service):
        with pytest.raises(NotFoundError):
            await service.remove_favorite("u1", "v-py-1")

    async def test_remove_then_add_again(self, service):
        await service.add_favorite("u1", "video", "v-py-1")
        await service.remove_favorite("u1", "v-py-1")
        assert await service.is_favorite("u1", "v-py-1") is False
        await service.add_favorite("u1", "video", "v-py-1")
        assert await service.is_favorite("u1", "v-py-1") is True

    async def test_concurrent_adds_keep_one(self, service):
        results = await asyncio.gather(
            service.add_favorite("u1", "video", "v-py-1"),
            service.add_favorite("u1", "video", "v-py-1"),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyFavoritedError)
        assert (await service.favorites_count("u1")).total == 1


class TestToggle:
    async def test_toggle_twice_restores_state(self, service):
        assert await service.toggle_favorite("u1", "video", "v-py-1") is True
        assert await service.is_favorite("u1", "v-py-1") is True
        assert await service.toggle_favorite("u1", "video", "v-py-1") is False
        assert await service.is_favorite("u1", "v-py-1") is False

    async def test_concurrent_toggles_are_serialized(self, service):
        results = await asyncio.gather(
            service.toggle_favorite("u1", "video", "v-py-1"),
            service.toggle_favorite("u1", "video", "v-py-1"),
        )
        assert sorted(results) == [False, True]
        assert await service.is_favorite("u1", "v-py-1") is False


class TestQueries:
    async def _seed(self, service, clock):
        for content_type, item_id in [
            ("course", "c-py"),
            ("video", "v-py-1"),
            ("video", "v-design-1"),
        ]:
            clock.advance(minutes=1)
            await service.add_favorite("u1", content_type, item_id)

    async def test_list_newest_first(self, service, clock):
        await self._seed(service, clock)
        favorites = await service.list_favorites("u1")
        assert [f.item_id for f in favorites] == ["v-design-1", "v-py-1", "c-py"]

    async def test_counts_by_type(self, service, clock):
        await self._seed(service, clock)
        counts = await service.favorites_count("u1")
        assert (counts.total, counts.courses, counts.videos) == (3, 1, 2)

    async def test_filters(self, service, clock):
        await self._seed(service, clock)
        videos = await service.list_favorites("u1", content_type="video")
        assert {f.item_id for f in videos} == {"v-py-1", "v-design-1"}
        programming = await service.list_favorites("u1", category="programming")
        assert {f.item_id for f in programming} == {"c-py", "v-py-1"}
        by_type = await service.favorites.by_type("u1", "course")
        assert [f.item_id for f in by_type] == ["c-py"]

    async def test_search(self, service, clock):
        await self._seed(service, clock)
        found = await service.list_favorites("u1", term="color")
        assert [f.item_id for f in found] == ["v-design-1"]
        assert await service.favorites.search("u1", "") == []

    async def test_clear(self, service, clock):
        await self._seed(service, clock)
        assert await service.clear_favorites("u1") == 3
        assert (await service.favorites_count("u1")).total == 0


class TestStoreTimeouts:
    @pytest.fixture
    def hanging(self, build_service):
        return build_service(favorites_store=HangingFavoritesStore(), store_timeout=0.05)

    async def test_add_times_out_as_retryable(self, hanging):
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await hanging.add_favorite("u1", "video", "v-py-1")
        assert exc_info.value.retryable is True

    async def test_remove_times_out_as_retryable(self, hanging):
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await hanging.remove_favorite("u1", "v-py-1")
        assert exc_info.value.retryable is True

    async def test_toggle_times_out_as_retryable(self, hanging):
        with pytest.raises(UpstreamUnavailable):
            await hanging.toggle_favorite("u1", "video", "v-py-1")


class TestLocks:
    async def test_locks_released_after_use(self, service):
        for i in range(20):
            await service.toggle_favorite("u1", "video", f"item-{i}")
            await service.toggle_favorite("u1", "video", f"item-{i}")
        assert len(service.favorites._locks) == 0

    async def test_lock_dropped_after_contention(self, service):
        results = await asyncio.gather(
            *(service.toggle_favorite("u1", "video", "v-py-1") for _ in range(5))
        )
        assert sorted(results) == [False, False, True, True, True]
        assert await service.is_favorite("u1", "v-py-1") is True
        assert len(service.favorites._locks) == 0

    async def test_invalid_user_rejected_before_catalog(self, build_service):
        catalog = RecordingCatalog()
        service = build_service(catalog=catalog)
        with pytest.raises(ValidationError):
            await service.add_favorite("bad id!", "video", "v-py-1")
        with pytest.raises(ValidationError):
            await service.toggle_favorite("", "video", "v-py-1")
        assert catalog.lookups == []
