"""
Engagement & Recommendations Server

Usage: uvicorn engagement_server:app --reload --port 8000
"""

__version__ = "1.0.0"

from .app import app  # noqa: E402
from .config import ServerConfig, get_config, reload_config  # noqa: E402
from .services import EngagementService  # noqa: E402
from .state import AppState, get_state, set_state  # noqa: E402

__all__ = [
    "app",
    "ServerConfig",
    "get_config",
    "reload_config",
    "EngagementService",
    "AppState",
    "get_state",
    "set_state",
]
