"""
Merge and orchestrator tests with scripted generators.
"""

import asyncio

import pytest

from engagement_server.services import (
    InMemoryFavoritesStore,
    InMemoryHistoryStore,
    InMemoryInteractionStore,
)
from recommender.models import ContentSummary, RecommenderConfig, ScoredCandidate
from recommender.stages import create_recommendations, merge_candidates

from .conftest import make_entry


def candidate(item_id, score, reason="trending"):
    return ScoredCandidate(
        item_id=item_id,
        type="video",
        snapshot=ContentSummary.bare(item_id),
        score=score,
        reason=reason,
    )


class ScriptedGenerator:
    """Generator returning fixed candidates, optionally after a delay or with an error."""

    def __init__(self, name, candidates=(), share=0.5, delay=0.0, error=None, reason="trending"):
        self.name = name
        self.reason = reason
        self.share = share
        self.candidates = list(candidates)
        self.delay = delay
        self.error = error
        self.calls = 0

    async def generate(self, user_id, exclusion, count):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [c for c in self.candidates if c.item_id not in exclusion][:count]


class LeakyGenerator(ScriptedGenerator):
    """Ignores the exclusion set it is given."""

    async def generate(self, user_id, exclusion, count):
        return await super().generate(user_id, frozenset(), count)


class BrokenHistory(InMemoryHistoryStore):
    async def item_ids_for_user(self, user_id):
        raise RuntimeError("history store down")


@pytest.fixture
def sources():
    return InMemoryHistoryStore(), InMemoryFavoritesStore(), InMemoryInteractionStore()


class TestMerge:
    def test_dedup_keeps_highest_score(self):
        items = merge_candidates(
            [
                [candidate("a", 0.2), candidate("b", 0.9)],
                [candidate("a", 0.7, reason="similar")],
            ],
            frozenset(),
            10,
        )
        assert [(i.item_id, i.score) for i in items] == [("b", 0.9), ("a", 0.7)]
        assert items[1].reason == "similar"

    def test_excluded_items_dropped(self):
        items = merge_candidates([[candidate("a", 0.9), candidate("b", 0.1)]], frozenset({"a"}), 10)
        assert [i.item_id for i in items] == ["b"]

    def test_never_pads(self):
        items = merge_candidates([[candidate("a", 0.5)]], frozenset(), 10)
        assert len(items) == 1

    def test_truncates_after_sorting(self):
        items = merge_candidates(
            [[candidate("a", 0.1), candidate("b", 0.3)], [candidate("c", 0.2)]], frozenset(), 2
        )
        assert [i.item_id for i in items] == ["b", "c"]

    def test_scores_are_clamped(self):
        assert candidate("a", 3.0).score == 1.0
        assert candidate("a", -1.0).score == 0.0


class TestCreateRecommendations:
    async def test_merges_all_generators(self, sources):
        gens = [
            ScriptedGenerator("one", [candidate("a", 0.9), candidate("b", 0.5)]),
            ScriptedGenerator("two", [candidate("c", 0.7, "similar")], reason="similar"),
        ]
        result = await create_recommendations("u1", 10, gens, *sources)

        assert [i.item_id for i in result.items] == ["a", "c", "b"]
        assert result.generators == {"one": "ok", "two": "ok"}
        assert result.partial is False
        assert result.reason is None
        assert result.as_of is not None

    async def test_user_history_is_excluded(self, sources, clock):
        history, favorites, interactions = sources
        await history.append(make_entry("u1", "a", clock.now))
        gens = [LeakyGenerator("leaky", [candidate("a", 1.0), candidate("b", 0.5)], share=1.0)]

        result = await create_recommendations("u1", 10, gens, history, favorites, interactions)
        assert [i.item_id for i in result.items] == ["b"]

    async def test_failed_generator_marks_partial(self, sources):
        gens = [
            ScriptedGenerator("ok", [candidate("a", 0.9)]),
            ScriptedGenerator("boom", error=RuntimeError("boom")),
        ]
        result = await create_recommendations("u1", 10, gens, *sources)
        assert [i.item_id for i in result.items] == ["a"]
        assert result.generators == {"ok": "ok", "boom": "failed"}
        assert result.partial is True
        assert result.reason is None

    async def test_slow_generator_times_out(self, sources):
        config = RecommenderConfig(generator_timeout_seconds=0.05, refresh_timeout_seconds=1.0)
        gens = [
            ScriptedGenerator("fast", [candidate("a", 0.9)]),
            ScriptedGenerator("slow", [candidate("b", 0.9)], delay=1.0),
        ]
        result = await create_recommendations("u1", 10, gens, *sources, config)
        assert result.generators["slow"] == "timeout"
        assert [i.item_id for i in result.items] == ["a"]

    async def test_refresh_budget_cancels_stragglers(self, sources):
        config = RecommenderConfig(generator_timeout_seconds=5.0, refresh_timeout_seconds=0.05)
        gens = [
            ScriptedGenerator("fast", [candidate("a", 0.9)]),
            ScriptedGenerator("slow", [candidate("b", 0.9)], delay=1.0),
        ]
        result = await create_recommendations("u1", 10, gens, *sources, config)
        assert result.generators == {"fast": "ok", "slow": "timeout"}

    async def test_all_generators_failed(self, sources):
        gens = [
            ScriptedGenerator("a", error=RuntimeError("a")),
            ScriptedGenerator("b", error=ValueError("b")),
        ]
        result = await create_recommendations("u1", 10, gens, *sources)
        assert result.items == []
        assert result.reason == "all_generators_failed"

    async def test_no_candidates(self, sources):
        result = await create_recommendations("u1", 10, [ScriptedGenerator("empty")], *sources)
        assert result.items == []
        assert result.reason == "no_candidates"
        assert result.partial is False

    async def test_small_limit_skips_generators(self, sources):
        gens = [
            ScriptedGenerator("big", [candidate("a", 0.9)], share=1.0),
            ScriptedGenerator("small", [candidate("b", 0.9)], share=0.3),
        ]
        result = await create_recommendations("u1", 1, gens, *sources)
        assert result.generators == {"big": "ok", "small": "skipped"}
        assert gens[1].calls == 0
        assert [i.item_id for i in result.items] == ["a"]

    async def test_exclusion_unavailable(self):
        gen = ScriptedGenerator("one", [candidate("a", 0.9)])
        result = await create_recommendations(
            "u1",
            10,
            [gen],
            BrokenHistory(),
            InMemoryFavoritesStore(),
            InMemoryInteractionStore(),
        )
        assert result.items == []
        assert result.reason == "exclusion_unavailable"
        assert result.generators == {"one": "skipped"}
        assert gen.calls == 0

