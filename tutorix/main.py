from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tutorix import __version__
from tutorix.api.v1.router import router as api_v1_router
from tutorix.config.settings import settings
from tutorix.core.cache import TTLCache
from tutorix.core.exceptions import register_exception_handlers
from tutorix.core.logging import configure_logging, get_logger
from tutorix.core.middleware import register_middlewares
from tutorix.db.init_db import init_db

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Application factory for the FastAPI app.

    - Configures logging, title, version and debug mode from Settings.
    - Registers CORS, core middleware and exception handlers.
    - Holds the process-local cache used for throttling and quota decisions.
    - Includes the versioned API router under ``API_V1_STR``.
    """
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version=settings.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.cache = TTLCache(settings.QUOTA_CACHE_TTL_SECONDS)

    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=bool(origins) and origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middlewares(app)
    register_exception_handlers(app)

    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    @app.get("/health", tags=["Health"])
    def health() -> dict:
        return {
            "status": "ok",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
            "gateway_enabled": settings.gateway_enabled,
        }

    # Production schemas are managed outside the app
    @app.on_event("startup")
    async def on_startup() -> None:
        if not settings.is_production():
            init_db()
        logger.info("Application started", extra={
            "environment": settings.ENVIRONMENT,
            "version": __version__,
        })

    return app


app = create_app()
