import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from trustly.config import settings
from trustly.db.base import engine
from trustly.routers import analytics, auth, business, campaigns, email_campaigns, public, testimonials
from trustly.services.media_storage import MediaStorageConfigurationError

logger = logging.getLogger(__name__)

ROUTERS = (
    auth.router,
    business.router,
    campaigns.router,
    email_campaigns.router,
    testimonials.router,
    analytics.router,
    public.router,
)

# Postgres: undefined_column, undefined_table.
_SCHEMA_MISMATCH_PGCODES = {"42703", "42P01"}
_SCHEMA_MISMATCH_MARKERS = ("undefined column", "does not exist", "no such column", "no such table")


def is_schema_mismatch(exc: ProgrammingError) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) in _SCHEMA_MISMATCH_PGCODES:
        return True
    message = str(orig or exc).lower()
    return any(marker in message for marker in _SCHEMA_MISMATCH_MARKERS)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(MediaStorageConfigurationError)
    async def storage_not_configured(_request: Request, exc: MediaStorageConfigurationError) -> ORJSONResponse:
        logger.error("Media storage is not configured: %s", exc)
        return ORJSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(ProgrammingError)
    async def database_programming_error(_request: Request, exc: ProgrammingError) -> ORJSONResponse:
        logger.exception("Database programming error", exc_info=exc)
        if is_schema_mismatch(exc):
            return ORJSONResponse(
                status_code=503,
                content={"detail": "Database schema is out of date. Run `alembic upgrade head` and redeploy."},
            )
        return ORJSONResponse(status_code=500, content={"detail": "Database query failed."})

    @app.exception_handler(Exception)
    async def unhandled_error(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"detail": "Internal server error."})


def create_app() -> FastAPI:
    app = FastAPI(title="Trustly API", default_response_class=ORJSONResponse)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(settings.BACKEND_CORS_ORIGINS)),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_exception_handlers(app)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health/db")
    def health_db() -> dict[str, str]:
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except Exception as exc:  # reported in the body; the health check stays 200
            logger.warning("Database health check failed", exc_info=exc)
            return {"db": f"error: {exc}"}
        return {"db": "ok"}

    for router in ROUTERS:
        app.include_router(router)
    return app


app = create_app()
