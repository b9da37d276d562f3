"""
Engagement score tests: component caps, rounding, clamping and the facade cache.
"""

import pytest

from recommender import engagement_score
from recommender.models import ViewStats


def _stats(views=0, watch=0.0, completed=0):
    return ViewStats(total_views=views, total_watch_seconds=watch, completed_count=completed)


class TestEngagementScore:
    def test_zero_activity(self):
        assert engagement_score(_stats(), 0, 0) == 0

    def test_components_add_up(self):
        # views 3*2 + 600s/60 + 1*5 + favorites 2*3 + 1 interaction
        assert engagement_score(_stats(views=3, watch=600, completed=1), 2, 1) == 28

    def test_every_component_is_capped(self):
        stats = _stats(views=1000, watch=10 ** 7, completed=1000)
        assert engagement_score(stats, 1000, 1000) == 100

    @pytest.mark.parametrize(
        "stats, favorites, interactions, expected",
        [
            (_stats(views=20), 0, 0, 30),
            (_stats(watch=3600), 0, 0, 30),
            (_stats(completed=9), 0, 0, 25),
            (_stats(), 9, 0, 10),
            (_stats(), 0, 9, 5),
        ],
    )
    def test_single_component_caps(self, stats, favorites, interactions, expected):
        assert engagement_score(stats, favorites, interactions) == expected

    def test_rounds_half_up(self):
        assert engagement_score(_stats(watch=30), 0, 0) == 1
        assert engagement_score(_stats(watch=29), 0, 0) == 0

    def test_negative_inputs_clamped(self):
        assert engagement_score(_stats(), -5, -2) == 0

    def test_monotonic_in_each_input(self):
        previous = -1
        for n in range(0, 40):
            score = engagement_score(_stats(views=n, watch=n * 60, completed=n // 2), n // 3, n)
            assert previous <= score <= 100
            previous = score


class TestEngagementService:
    async def test_score_refreshes_after_activity(self, service, clock):
        assert await service.get_engagement_score("u1") == 0

        await service.record_view("u1", "v-py-1", "video", 600)
        # 1 view (2) + 10 minutes (10) + auto-favorite (3)
        assert await service.get_engagement_score("u1") == 15

        clock.advance(minutes=1)
        await service.record_interaction("u1", "v-py-4", "click")
        assert await service.get_engagement_score("u1") == 16

    async def test_enhanced_stats(self, service):
        await service.record_view("u1", "v-py-1", "video", 600)
        stats = await service.get_enhanced_stats("u1")
        assert stats.total_views == 1
        assert stats.favorite_items_count == 1
        assert stats.engagement_score == 15
        assert stats.recommendations_count == 0
        assert stats.last_activity is not None
