"""
Recommender configuration: progress, trending, content, collaborative and cache knobs.

RecommenderConfig defaults are defined here. The server may pass a dict
(e.g. from a JSON file pointed at by RECOMMENDER_CONFIG_PATH); from_dict() merges
it with these defaults.
"""

from typing import Dict, Optional

from pydantic import BaseModel, model_validator


class RecommenderConfig(BaseModel):
    """Configuration for progress tracking and the recommendation engine."""

    # -------------------------------------------------------------------------
    # Progress / favorites
    # -------------------------------------------------------------------------

    # Fraction of total duration that counts as "finished".
    completion_threshold: float = 0.9

    # watch_duration / duration above this auto-adds the item to favorites.
    auto_favorite_ratio: float = 0.5

    # A progress update within this many minutes of the last history entry for the
    # same item extends that entry instead of appending a new one.
    history_session_gap_minutes: int = 30

    # Number of most recent history entries folded into view stats by default.
    stats_window: int = 50

    # -------------------------------------------------------------------------
    # Target counts: floor(limit * share) candidates per generator
    # -------------------------------------------------------------------------

    trending_share: float = 0.3
    content_share: float = 0.4
    collaborative_share: float = 0.3

    # -------------------------------------------------------------------------
    # Trending generator
    # score = min(view_count / trending_normalizer, 1)
    # -------------------------------------------------------------------------

    trending_window_days: int = 7
    trending_normalizer: float = 10.0
    # Max history entries (all users) scanned per refresh.
    trending_scan_limit: int = 1000

    # -------------------------------------------------------------------------
    # User profile used by content-based and collaborative generators
    # -------------------------------------------------------------------------

    profile_history_limit: int = 50
    profile_favorites_limit: int = 20

    # -------------------------------------------------------------------------
    # Content-based generator
    # category path:   score = min(category_frequency / category_normalizer, 1)
    # instructor path: score = min(instructor_frequency / instructor_normalizer, 1)
    # -------------------------------------------------------------------------

    content_top_categories: int = 3
    content_top_instructors: int = 2
    content_per_category: int = 5
    content_per_instructor: int = 3
    category_normalizer: float = 5.0
    instructor_normalizer: float = 3.0

    # -------------------------------------------------------------------------
    # Collaborative generator
    # score = min(co_viewer_count / collab_normalizer, 1)
    # -------------------------------------------------------------------------

    # Only the first N touched items seed the neighbour lookup.
    collab_seed_items: int = 10
    # Max history entries read when looking for neighbours on the seed items.
    collab_scan_limit: int = 100
    # Max neighbours whose histories are read.
    collab_neighbor_limit: int = 20
    # Most recent entries read per neighbour.
    collab_neighbor_history_limit: int = 50
    collab_normalizer: float = 5.0

    # -------------------------------------------------------------------------
    # Cache and time budgets
    # -------------------------------------------------------------------------

    refresh_interval_minutes: int = 60
    default_limit: int = 20
    generator_timeout_seconds: float = 3.0
    refresh_timeout_seconds: float = 8.0

    @model_validator(mode="after")
    def check_ranges(self):
        if not 0.0 < self.completion_threshold <= 1.0:
            raise ValueError(
                f"completion_threshold must be in (0, 1], got {self.completion_threshold}"
            )
        if not 0.0 <= self.auto_favorite_ratio < 1.0:
            raise ValueError(
                f"auto_favorite_ratio must be in [0, 1), got {self.auto_favorite_ratio}"
            )
        shares = (self.trending_share, self.content_share, self.collaborative_share)
        if any(s < 0.0 or s > 1.0 for s in shares):
            raise ValueError(f"Generator shares must be in [0, 1], got {shares}")
        if sum(shares) > 1.0 + 1e-9:
            raise ValueError(f"Generator shares must sum to at most 1.0, got {sum(shares)}")
        normalizers = (
            self.trending_normalizer,
            self.category_normalizer,
            self.instructor_normalizer,
            self.collab_normalizer,
        )
        if any(n <= 0 for n in normalizers):
            raise ValueError("Score normalizers must be positive")
        return self

    @classmethod
    def from_dict(cls, config_dict: Dict) -> "RecommenderConfig":
        """Create config from a flat or grouped dictionary (e.g. loaded from JSON)."""
        flat = {}
        if "progress" in config_dict:
            pr = config_dict["progress"]
            if "completion_threshold" in pr:
                flat["completion_threshold"] = pr["completion_threshold"]
            if "auto_favorite_ratio" in pr:
                flat["auto_favorite_ratio"] = pr["auto_favorite_ratio"]
            if "session_gap_minutes" in pr:
                flat["history_session_gap_minutes"] = pr["session_gap_minutes"]
        if "shares" in config_dict:
            sh = config_dict["shares"]
            for key in ("trending", "content", "collaborative"):
                if key in sh:
                    flat[f"{key}_share"] = sh[key]
        if "trending" in config_dict:
            tr = config_dict["trending"]
            flat["trending_window_days"] = tr.get("window_days", 7)
            flat["trending_normalizer"] = tr.get("normalizer", 10.0)
            if "scan_limit" in tr:
                flat["trending_scan_limit"] = tr["scan_limit"]
        if "content" in config_dict:
            flat.update(
                {f"content_{k}" if not k.endswith("_normalizer") else k: v
                 for k, v in config_dict["content"].items()}
            )
        if "collaborative" in config_dict:
            co = config_dict["collaborative"]
            flat.update({f"collab_{k}": v for k, v in co.items()})
        if "cache" in config_dict:
            ca = config_dict["cache"]
            if "refresh_interval_minutes" in ca:
                flat["refresh_interval_minutes"] = ca["refresh_interval_minutes"]
            if "default_limit" in ca:
                flat["default_limit"] = ca["default_limit"]
        # Top-level keys win over grouped ones
        flat.update({k: v for k, v in config_dict.items() if not isinstance(v, dict)})
        allowed = set(cls.model_fields)
        filtered = {k: v for k, v in flat.items() if k in allowed}
        return cls.model_validate(filtered)


DEFAULT_CONFIG = RecommenderConfig()


def resolve_config(config: Optional["RecommenderConfig"]) -> "RecommenderConfig":
    """Return config or DEFAULT_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_CONFIG
