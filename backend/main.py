from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from sqlalchemy.exc import OperationalError as SAOperationalError

from api.router import api_router
from core.config import settings
from core.database import DatabaseUnavailableError, database_is_reachable, is_transient_db_connectivity_error
from core.errors import CampusError, InvalidTimeFormat
from core.logging import setup_logging


logger = logging.getLogger(__name__)


_DB_UNAVAILABLE = {
    "code": "DATABASE_UNAVAILABLE",
    "message": "Database temporarily unavailable. Please retry.",
}


def create_app() -> FastAPI:
    setup_logging(environment=settings.environment)
    is_production = settings.is_production
    app = FastAPI(
        title="Campus Scheduling API",
        version="0.1.0",
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
    )

    @app.exception_handler(CampusError)
    def _campus_error(_request, exc: CampusError):
        if exc.status_code >= 500:
            logger.warning("%s: %s", exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(InvalidTimeFormat)
    def _invalid_time(_request, exc: InvalidTimeFormat):
        return JSONResponse(
            status_code=422,
            content={"code": exc.code, "message": str(exc), "details": {"value": str(exc.value)}},
        )

    @app.exception_handler(DatabaseUnavailableError)
    def _db_unavailable(_request, _exc: DatabaseUnavailableError):
        logger.warning("Database unavailable (503)", exc_info=_exc)
        return JSONResponse(status_code=503, content=_DB_UNAVAILABLE)

    @app.exception_handler(SAOperationalError)
    def _sqlalchemy_operational_error(_request, exc: SAOperationalError):
        if is_transient_db_connectivity_error(exc):
            logger.warning("Database transient connectivity error (503)", exc_info=exc)
            return JSONResponse(status_code=503, content=_DB_UNAVAILABLE)
        logger.error("Database operation failed", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"code": "DATABASE_ERROR", "message": "Database operation failed."},
        )

    allow_origins = [settings.frontend_origin]
    allow_origin_regex = None
    if not is_production:
        # Any localhost port is fine outside production.
        allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_origin_regex=allow_origin_regex,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        # Always answers; a down database is reported, not raised.
        return {"app": "ok", "database": "ok" if database_is_reachable() else "down"}

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
