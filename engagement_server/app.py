"""
Engagement & Recommendations API: FastAPI app factory.

Use: uvicorn engagement_server.app:app
Or:  from engagement_server import app
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .errors import ConflictError, NotFoundError, UpstreamUnavailable, ValidationError
from .routes import register_routes
from .state import get_state
from .utils import configure_logging

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying after a 503
RETRY_AFTER_SECONDS = 1


def _error(status_code: int, exc: Exception, **headers) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
        headers=headers or None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map engagement errors onto HTTP status codes."""

    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError):
        return _error(400, exc)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors()), "error": "ValidationError"},
        )

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError):
        return _error(404, exc)

    @app.exception_handler(ConflictError)
    async def _conflict(request: Request, exc: ConflictError):
        return _error(409, exc)

    @app.exception_handler(UpstreamUnavailable)
    async def _unavailable(request: Request, exc: UpstreamUnavailable):
        logger.warning("[api] %s %s: %s", request.method, request.url.path, exc)
        return _error(503, exc, **{"Retry-After": str(RETRY_AFTER_SECONDS)})


def create_app() -> FastAPI:
    """Build FastAPI app with CORS, error mapping, routes, and startup."""
    app = FastAPI(
        title="Engagement & Recommendations API",
        description="View history, progress, favorites, engagement score and personalized recommendations",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    register_routes(app)

    @app.on_event("startup")
    async def _startup_logging():
        state = get_state()
        configure_logging(state.config.log_level)
        ok, errors = state.config.validate()
        for error in errors:
            logger.warning("[startup] config: %s", error)
        logger.info("[startup] Engagement & Recommendations API starting (valid config: %s)", ok)
        logger.info("[startup] Data source: %s", state.config.data_source)
        logger.info("[startup] Catalog source: %s", state.config.catalog_source)
        logger.info(
            "[startup] Generators: %s",
            ", ".join(g.name for g in state.engagement.engine.generators),
        )

    return app


app = create_app()
