import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from busbooking.api.errors import register_error_handlers
from busbooking.api.v1.api import api_router
from busbooking.core.config import Settings, get_settings
from busbooking.core.logging import setup_logging
from busbooking.db.session import init_engine

logger = logging.getLogger(__name__)

# CORS: use CORS_ORIGINS from env in production; default to localhost for dev
_default_origins = [
    "http://127.0.0.1:3000", "http://localhost:3000",
    "http://127.0.0.1:5173", "http://localhost:5173",
]


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    init_engine(settings)

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else _default_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    def health():
        return {"status": "ok", "env": settings.ENV}

    logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)
    return app
