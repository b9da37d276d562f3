"""
Shared fixtures: in-memory stores, a small course/video catalog, a controllable
clock and the engagement facade built over them.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from engagement_server.services import (
    EngagementService,
    InMemoryContentCatalog,
    InMemoryFavoritesStore,
    InMemoryHistoryStore,
    InMemoryInteractionStore,
    InMemoryProgressStore,
)
from recommender.models import ContentSummary, RecommenderConfig, ViewHistoryEntry

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

CATALOG_ITEMS = [
    {
        "id": "c-py",
        "type": "course",
        "title": "Python from Scratch",
        "description": "A complete beginner course",
        "instructor": "Ada",
        "category": "programming",
    },
    {
        "id": "c-design",
        "type": "course",
        "title": "Visual Design Basics",
        "instructor": "Linus",
        "category": "design",
    },
    {
        "id": "v-py-1",
        "type": "video",
        "title": "Intro to Python",
        "description": "Variables and types",
        "instructor": "Ada",
        "category": "programming",
        "duration_seconds": 1000,
        "parent_course_id": "c-py",
    },
    {
        "id": "v-py-2",
        "type": "video",
        "title": "Python Functions",
        "instructor": "Ada",
        "category": "programming",
        "duration_seconds": 1000,
        "parent_course_id": "c-py",
    },
    {
        "id": "v-py-3",
        "type": "video",
        "title": "Python Classes",
        "instructor": "Grace",
        "category": "programming",
        "duration_seconds": 600,
        "parent_course_id": "c-py",
    },
    {
        "id": "v-py-4",
        "type": "video",
        "title": "Testing Python Code",
        "instructor": "Grace",
        "category": "programming",
        "duration_seconds": 600,
    },
    {
        "id": "v-design-1",
        "type": "video",
        "title": "Color Theory",
        "instructor": "Linus",
        "category": "design",
        "duration_seconds": 900,
        "parent_course_id": "c-design",
    },
    {
        "id": "v-design-2",
        "type": "video",
        "title": "Typography",
        "instructor": "Linus",
        "category": "design",
        "duration_seconds": 900,
        "parent_course_id": "c-design",
    },
    {
        "id": "v-data-1",
        "type": "video",
        "title": "Dataframes in Practice",
        "instructor": "Grace",
        "category": "data",
        "duration_seconds": 1200,
    },
]

CATALOG_BY_ID = {item["id"]: ContentSummary.model_validate(item) for item in CATALOG_ITEMS}


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def snapshot(item_id: str) -> ContentSummary:
    return CATALOG_BY_ID.get(item_id) or ContentSummary.bare(item_id)


def make_entry(
    user_id: str,
    item_id: str,
    viewed_at: datetime,
    watch_duration_seconds: float = 0.0,
    completed: bool = False,
) -> ViewHistoryEntry:
    snap = snapshot(item_id)
    return ViewHistoryEntry(
        id=uuid.uuid4().hex,
        user_id=user_id,
        item_id=item_id,
        type=snap.type,
        viewed_at=viewed_at,
        watch_duration_seconds=watch_duration_seconds,
        completed=completed,
        snapshot=snap,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return InMemoryContentCatalog(CATALOG_ITEMS)


@pytest.fixture
def history_store():
    return InMemoryHistoryStore()


@pytest.fixture
def favorites_store():
    return InMemoryFavoritesStore()


@pytest.fixture
def progress_store():
    return InMemoryProgressStore()


@pytest.fixture
def interaction_store():
    return InMemoryInteractionStore()


@pytest.fixture
def stores(history_store, favorites_store, progress_store, interaction_store):
    return history_store, favorites_store, progress_store, interaction_store


@pytest.fixture
def config():
    return RecommenderConfig()


@pytest.fixture
def build_service(stores, catalog, config, clock):
    """Factory for EngagementService over the fixture stores; keyword overrides win."""

    def _build(**overrides) -> EngagementService:
        history_store, favorites_store, progress_store, interaction_store = stores
        kwargs = dict(
            history_store=history_store,
            favorites_store=favorites_store,
            progress_store=progress_store,
            interaction_store=interaction_store,
            catalog=catalog,
            config=config,
            clock=clock,
        )
        kwargs.update(overrides)
        return EngagementService.build(**kwargs)

    return _build


@pytest.fixture
def service(build_service):
    return build_service()
