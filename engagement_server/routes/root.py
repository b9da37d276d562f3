"""Root and health endpoints."""

from fastapi import APIRouter

from .. import __version__
from ..state import get_state

router = APIRouter()


def _backend_name(obj) -> str:
    return type(getattr(obj, "target", obj)).__name__


@router.get("/")
def root():
    state = get_state()
    return {
        "name": "Engagement & Recommendations API",
        "version": __version__,
        "data_source": state.config.data_source,
        "catalog_source": state.config.catalog_source,
    }


@router.get("/api/health")
def health():
    state = get_state()
    return {
        "status": "ok",
        "stores": {
            "history": _backend_name(state.history_store),
            "favorites": _backend_name(state.favorites_store),
            "progress": _backend_name(state.progress_store),
            "interactions": _backend_name(state.interaction_store),
        },
        "catalog": _backend_name(state.catalog),
        "generators": [g.name for g in state.engagement.engine.generators],
    }
