"""Register all route modules on the FastAPI app."""

from fastapi import FastAPI

from .engagement import router as engagement_router
from .favorites import router as favorites_router
from .history import router as history_router
from .progress import router as progress_router
from .recommendations import router as recommendations_router
from .root import router as root_router


def register_routes(app: FastAPI) -> None:
    """Attach all API routers to the app."""
    app.include_router(root_router)
    app.include_router(history_router, prefix="/api/users", tags=["history"])
    app.include_router(progress_router, prefix="/api/users", tags=["progress"])
    app.include_router(favorites_router, prefix="/api/users", tags=["favorites"])
    app.include_router(recommendations_router, prefix="/api/users", tags=["recommendations"])
    app.include_router(engagement_router, prefix="/api/users", tags=["engagement"])
