"""
Server Configuration

Loads configuration from environment variables and provides defaults.
Supports loading from .env file using python-dotenv.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from recommender.models.config import RecommenderConfig

# Single .env at the project root
root_env = Path(__file__).resolve().parent.parent / ".env"
if root_env.exists():
    load_dotenv(root_env)

DATA_SOURCES = ("memory", "firebase")
CATALOG_SOURCES = ("memory", "json", "http", "firebase")


@dataclass
class ServerConfig:
    """Server configuration."""

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Engagement data: "memory" | "firebase"
    data_source: str = "memory"

    # Catalog: "memory" | "json" | "http" | "firebase"
    catalog_source: str = "memory"
    # When catalog_source=json: path to a JSON list of content summaries
    catalog_json_path: Optional[Path] = None
    # When catalog_source=http: base URL of the catalog service
    catalog_base_url: Optional[str] = None

    # When data_source or catalog_source is firebase: service account JSON and optional project id
    firebase_credentials_path: Optional[Path] = None
    firebase_project_id: Optional[str] = None

    # Bound on every store/catalog call
    store_timeout_seconds: float = 2.0

    # Optional JSON file with RecommenderConfig overrides
    recommender_config_path: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        base_dir = Path(__file__).parent.parent

        def _path_env(key: str, default: Optional[Path] = None) -> Optional[Path]:
            v = os.getenv(key)
            if not v:
                return default
            p = Path(v)
            return p if p.is_absolute() else (base_dir / p).resolve()

        def _choice_env(key: str, choices, default: str) -> str:
            v = os.getenv(key, "").strip().lower()
            return v if v in choices else default

        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
            data_source=_choice_env("DATA_SOURCE", DATA_SOURCES, "memory"),
            catalog_source=_choice_env("CATALOG_SOURCE", CATALOG_SOURCES, "memory"),
            catalog_json_path=_path_env("CATALOG_JSON_PATH"),
            catalog_base_url=(os.getenv("CATALOG_BASE_URL") or "").strip() or None,
            firebase_credentials_path=_path_env("FIREBASE_CREDENTIALS_PATH") or _path_env("GOOGLE_APPLICATION_CREDENTIALS"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID") or None,
            store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "2.0")),
            recommender_config_path=_path_env("RECOMMENDER_CONFIG_PATH"),
        )

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate the configuration.

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []

        if self.catalog_source == "json":
            if not self.catalog_json_path:
                errors.append("CATALOG_SOURCE=json requires CATALOG_JSON_PATH")
            elif not self.catalog_json_path.is_file():
                errors.append(f"Catalog JSON not found: {self.catalog_json_path}")

        if self.catalog_source == "http" and not self.catalog_base_url:
            errors.append("CATALOG_SOURCE=http requires CATALOG_BASE_URL")

        if "firebase" in (self.data_source, self.catalog_source):
            if not self.firebase_credentials_path:
                errors.append("Firebase sources require FIREBASE_CREDENTIALS_PATH")
            elif not self.firebase_credentials_path.is_file():
                errors.append(f"Firebase credentials not found: {self.firebase_credentials_path}")

        if self.store_timeout_seconds <= 0:
            errors.append(f"STORE_TIMEOUT_SECONDS must be positive, got {self.store_timeout_seconds}")

        if self.recommender_config_path and not self.recommender_config_path.is_file():
            errors.append(f"Recommender config not found: {self.recommender_config_path}")

        return len(errors) == 0, errors

    def load_recommender_config(self) -> RecommenderConfig:
        """RecommenderConfig from recommender_config_path, or defaults."""
        if not self.recommender_config_path:
            return RecommenderConfig()
        with open(self.recommender_config_path) as f:
            return RecommenderConfig.from_dict(json.load(f))


# Global config instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def reload_config() -> ServerConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
