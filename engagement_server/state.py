"""Application state: stores, catalog, event bus and the engagement facade."""

import logging
from pathlib import Path
from typing import Any, Optional, Tuple

from recommender.models import RecommenderConfig

from .config import ServerConfig, get_config
from .events import EventBus
from .services import (
    EngagementService,
    HttpContentCatalog,
    InMemoryContentCatalog,
    InMemoryFavoritesStore,
    InMemoryHistoryStore,
    InMemoryInteractionStore,
    InMemoryProgressStore,
)

logger = logging.getLogger(__name__)


def _credentials_file(config: ServerConfig) -> Optional[Path]:
    """FIREBASE_CREDENTIALS_PATH when it points at an existing file."""
    if not config.firebase_credentials_path:
        return None
    cred_path = Path(config.firebase_credentials_path)
    if not cred_path.exists() or not cred_path.is_file():
        logger.warning(
            "[startup] Firestore skipped: credentials path not found or not a file: %s", cred_path
        )
        return None
    return cred_path


class AppState:
    """Global application state."""

    def __init__(
        self,
        config: ServerConfig,
        recommender_config: Optional[RecommenderConfig] = None,
        stores: Optional[Tuple[Any, Any, Any, Any]] = None,
        catalog: Optional[Any] = None,
    ):
        self.config = config
        self.recommender_config = recommender_config or config.load_recommender_config()
        self._db: Optional[Any] = None

        # Engagement stores: Firestore when configured and creds exist, else in-memory
        self.history_store, self.favorites_store, self.progress_store, self.interaction_store = (
            stores or self._create_stores(config)
        )
        self.catalog = catalog or self._create_catalog(config)
        logger.info("[startup] Engagement stores: %s", type(self.history_store).__name__)
        logger.info("[startup] Catalog: %s", type(self.catalog).__name__)

        self.events = EventBus()
        self.engagement = EngagementService.build(
            history_store=self.history_store,
            favorites_store=self.favorites_store,
            progress_store=self.progress_store,
            interaction_store=self.interaction_store,
            catalog=self.catalog,
            config=self.recommender_config,
            events=self.events,
            store_timeout=config.store_timeout_seconds,
        )

    def _firestore(self, config: ServerConfig) -> Optional[Any]:
        """Shared async Firestore client, or None when unavailable."""
        if self._db is not None:
            return self._db
        cred_path = _credentials_file(config)
        if cred_path is None:
            return None
        from .services.firestore_stores import create_async_client

        try:
            self._db = create_async_client(config.firebase_project_id, cred_path)
        except Exception as e:
            logger.warning("[startup] Firestore client init failed: %s, using in-memory", e)
            return None
        return self._db

    def _create_stores(self, config: ServerConfig) -> Tuple[Any, Any, Any, Any]:
        """Create engagement stores (Firestore when DATA_SOURCE=firebase and creds set, else in-memory)."""
        if config.data_source == "firebase":
            db = self._firestore(config)
            if db is not None:
                from .services.firestore_stores import (
                    FirestoreFavoritesStore,
                    FirestoreHistoryStore,
                    FirestoreInteractionStore,
                    FirestoreProgressStore,
                )

                return (
                    FirestoreHistoryStore(db),
                    FirestoreFavoritesStore(db),
                    FirestoreProgressStore(db),
                    FirestoreInteractionStore(db),
                )
        return (
            InMemoryHistoryStore(),
            InMemoryFavoritesStore(),
            InMemoryProgressStore(),
            InMemoryInteractionStore(),
        )

    def _create_catalog(self, config: ServerConfig) -> Any:
        """Create the content catalog adapter from CATALOG_SOURCE."""
        if config.catalog_source == "json" and config.catalog_json_path:
            try:
                return InMemoryContentCatalog.from_json(config.catalog_json_path)
            except (OSError, ValueError) as e:
                logger.warning("[startup] Catalog JSON load failed: %s, using empty catalog", e)
        elif config.catalog_source == "http" and config.catalog_base_url:
            return HttpContentCatalog(config.catalog_base_url, timeout=config.store_timeout_seconds)
        elif config.catalog_source == "firebase":
            db = self._firestore(config)
            if db is not None:
                from .services.firestore_stores import FirestoreContentCatalog

                return FirestoreContentCatalog(db)
        return InMemoryContentCatalog()


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        config = get_config()
        _state = AppState(config)
    return _state


def set_state(state: Optional[AppState]) -> None:
    """Replace the global state (None resets it to be rebuilt from config)."""
    global _state
    _state = state
