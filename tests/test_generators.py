"""
Candidate generator tests: trending, content-based and collaborative.
"""

from datetime import timedelta

import pytest

from recommender import CollaborativeGenerator, ContentBasedGenerator, TrendingGenerator
from recommender.stages.generators import target_count

from .conftest import make_entry


class FailingCatalog:
    """Catalog whose queries for the listed keys raise."""

    def __init__(self, inner, failing=()):
        self._inner = inner
        self._failing = set(failing)

    async def get_by_id(self, item_id):
        return await self._inner.get_by_id(item_id)

    async def query_by_category(self, category, limit):
        if category in self._failing:
            raise RuntimeError(f"category {category} unavailable")
        return await self._inner.query_by_category(category, limit)

    async def query_by_instructor(self, instructor, limit):
        if instructor in self._failing:
            raise RuntimeError(f"instructor {instructor} unavailable")
        return await self._inner.query_by_instructor(instructor, limit)


def test_target_count_floors():
    assert target_count(20, 0.3) == 6
    assert target_count(20, 0.4) == 8
    assert target_count(10, 0.3) == 3
    assert target_count(3, 0.3) == 0


class TestTrendingGenerator:
    async def test_twelve_views_score_one(self, history_store, config, clock):
        for i in range(12):
            await history_store.append(make_entry(f"viewer{i}", "v-data-1", clock.now - timedelta(days=1)))
        for i in range(3):
            await history_store.append(make_entry(f"viewer{i}", "v-py-4", clock.now - timedelta(hours=2)))

        generator = TrendingGenerator(history_store, config, clock=clock)
        candidates = await generator.generate("me", frozenset(), 6)

        assert [c.item_id for c in candidates] == ["v-data-1", "v-py-4"]
        top = candidates[0]
        assert top.score == 1.0
        assert top.reason == "trending"
        assert top.metadata["views_count"] == 12
        assert candidates[1].score == pytest.approx(0.3)

    async def test_ignores_views_outside_window(self, history_store, config, clock):
        await history_store.append(make_entry("a", "v-py-1", clock.now - timedelta(days=8)))
        await history_store.append(make_entry("b", "v-py-2", clock.now - timedelta(days=6)))

        generator = TrendingGenerator(history_store, config, clock=clock)
        candidates = await generator.generate("me", frozenset(), 6)
        assert [c.item_id for c in candidates] == ["v-py-2"]

    async def test_respects_exclusion_and_count(self, history_store, config, clock):
        for item_id in ["v-py-1", "v-py-2", "v-py-3", "v-py-4"]:
            await history_store.append(make_entry("a", item_id, clock.now))

        generator = TrendingGenerator(history_store, config, clock=clock)
        candidates = await generator.generate("me", frozenset({"v-py-1"}), 2)
        assert len(candidates) == 2
        assert "v-py-1" not in {c.item_id for c in candidates}

    async def test_zero_count(self, history_store, config, clock):
        await history_store.append(make_entry("a", "v-py-1", clock.now))
        generator = TrendingGenerator(history_store, config, clock=clock)
        assert await generator.generate("me", frozenset(), 0) == []


class TestContentBasedGenerator:
    async def _seed_profile(self, history_store, clock):
        for minutes, item_id in enumerate(["v-py-1", "v-py-2", "v-design-1"]):
            await history_store.append(
                make_entry("u1", item_id, clock.now - timedelta(minutes=minutes))
            )

    async def test_candidates_follow_top_categories_and_instructors(
        self, history_store, favorites_store, catalog, config, clock
    ):
        await self._seed_profile(history_store, clock)
        exclusion = frozenset({"v-py-1", "v-py-2", "v-design-1"})

        generator = ContentBasedGenerator(history_store, favorites_store, catalog, config)
        candidates = await generator.generate("u1", exclusion, 10)
        by_id = {c.item_id: c for c in candidates}

        assert set(by_id) == {"c-py", "v-py-3", "v-py-4", "v-design-2", "c-design"}
        assert candidates[0].item_id == "c-py"
        # Ada appears twice in the profile: 2/3 beats programming's 2/5
        assert by_id["c-py"].score == pytest.approx(2 / 3)
        assert by_id["c-py"].metadata["matched_instructor"] == "Ada"
        assert by_id["v-py-3"].score == pytest.approx(0.4)
        assert by_id["v-py-3"].metadata["matched_category"] == "programming"
        assert by_id["v-design-2"].score == pytest.approx(1 / 3)
        assert all(c.reason == "similar" for c in candidates)
        assert not exclusion & set(by_id)

    async def test_empty_profile_yields_nothing(self, history_store, favorites_store, catalog, config):
        generator = ContentBasedGenerator(history_store, favorites_store, catalog, config)
        assert await generator.generate("new-user", frozenset(), 10) == []

    async def test_failed_query_is_skipped(self, history_store, favorites_store, catalog, config, clock):
        await self._seed_profile(history_store, clock)
        flaky = FailingCatalog(catalog, failing={"programming", "Ada"})

        generator = ContentBasedGenerator(history_store, favorites_store, flaky, config)
        candidates = await generator.generate("u1", frozenset({"v-design-1"}), 10)
        assert {c.item_id for c in candidates} == {"v-design-2", "c-design"}

    async def test_all_queries_failing_raises(self, history_store, favorites_store, catalog, config, clock):
        await self._seed_profile(history_store, clock)
        down = FailingCatalog(catalog, failing={"programming", "design", "Ada", "Linus"})

        generator = ContentBasedGenerator(history_store, favorites_store, down, config)
        with pytest.raises(RuntimeError):
            await generator.generate("u1", frozenset(), 10)


class TestCollaborativeGenerator:
    async def test_co_viewed_items_ranked_by_neighbors(self, history_store, favorites_store, config, clock):
        await history_store.append(make_entry("me", "v-py-1", clock.now))
        for neighbor in ("n1", "n2", "n3"):
            await history_store.append(make_entry(neighbor, "v-py-1", clock.now))
            await history_store.append(make_entry(neighbor, "v-py-3", clock.now))
        for neighbor in ("n1", "n2"):
            await history_store.append(make_entry(neighbor, "v-data-1", clock.now))
        # Repeat views by one neighbour count once
        await history_store.append(make_entry("n1", "v-data-1", clock.now))
        # Not a neighbour: never touched a seed item
        await history_store.append(make_entry("stranger", "v-design-2", clock.now))

        generator = CollaborativeGenerator(history_store, favorites_store, config)
        candidates = await generator.generate("me", frozenset({"v-py-1"}), 6)

        assert [c.item_id for c in candidates] == ["v-py-3", "v-data-1"]
        assert candidates[0].score == pytest.approx(0.6)
        assert candidates[0].metadata["co_viewers"] == 3
        assert candidates[1].score == pytest.approx(0.4)
        assert all(c.reason == "recommended" for c in candidates)

    async def test_excluded_items_dropped(self, history_store, favorites_store, config, clock):
        await history_store.append(make_entry("me", "v-py-1", clock.now))
        await history_store.append(make_entry("n1", "v-py-1", clock.now))
        await history_store.append(make_entry("n1", "v-py-3", clock.now))

        generator = CollaborativeGenerator(history_store, favorites_store, config)
        candidates = await generator.generate("me", frozenset({"v-py-1", "v-py-3"}), 6)
        assert candidates == []

    async def test_no_history_no_candidates(self, history_store, favorites_store, config):
        generator = CollaborativeGenerator(history_store, favorites_store, config)
        assert await generator.generate("me", frozenset(), 6) == []

    async def test_seed_cap(self, history_store, favorites_store, config, clock):
        small = config.model_copy(update={"collab_seed_items": 1})
        await history_store.append(make_entry("me", "v-py-1", clock.now - timedelta(minutes=5)))
        await history_store.append(make_entry("me", "v-py-2", clock.now))
        await history_store.append(make_entry("n1", "v-py-1", clock.now))
        await history_store.append(make_entry("n1", "v-data-1", clock.now))

        generator = CollaborativeGenerator(history_store, favorites_store, small)
        # Only the most recent item (v-py-2) seeds the lookup; n1 never watched it
        assert await generator.generate("me", frozenset(), 6) == []
