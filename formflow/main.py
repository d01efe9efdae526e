from __future__ import annotations

import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from formflow.config import load_config
from formflow.db.base import get_engine
from formflow.db.migrations_runner import apply_migrations
from formflow.errors import FormflowError
from formflow.http.problem import (
    handle_formflow_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from formflow.http.request_id import RequestIdMiddleware
from formflow.logging_setup import configure_logging
from formflow.routes import api_router

logger = logging.getLogger(__name__)


def _migrations_enabled() -> bool:
    return os.getenv("AUTO_APPLY_MIGRATIONS", "1").strip().lower() not in {"0", "false", "no", "off"}


def create_app() -> FastAPI:
    config = load_config()
    # Configure global logging before app instantiation so all modules emit
    configure_logging(config.logging.level)
    app = FastAPI(title="formflow")
    app.state.config = config
    app.add_exception_handler(FormflowError, handle_formflow_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)

    # Apply migrations on startup (guarded) to avoid import-time side effects
    @app.on_event("startup")
    def _apply_migrations() -> None:
        if not _migrations_enabled():
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
            return
        try:
            applied = apply_migrations(get_engine(config.database.dsn))
        except SQLAlchemyError:
            logger.error("Failed to apply migrations at startup", exc_info=True)
            raise
        logger.info("startup_migrations applied=%s", applied)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    def health() -> dict:
        try:
            with get_engine(config.database.dsn).connect() as conn:
                conn.execute(sql_text("SELECT 1"))
        except SQLAlchemyError:
            logger.error("health_db_probe_failed", exc_info=True)
            return {"status": "degraded", "db": False}
        return {"status": "ok", "db": True}

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
