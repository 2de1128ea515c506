from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from catalog_admin.config import AppConfig, load_config
from catalog_admin.db.base import get_engine
from catalog_admin.db.migrations_runner import apply_migrations
from catalog_admin.http.problem import (
    handle_http_exception,
    handle_ordering_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from catalog_admin.http.request_id import RequestIdMiddleware
from catalog_admin.logging_setup import configure_logging
from catalog_admin.logic.errors import OrderingError
from catalog_admin.middleware.cors import apply_cors
from catalog_admin.routes import api_router

logger = logging.getLogger(__name__)


def _health_check(cfg: AppConfig) -> Callable[[], dict]:
    def check() -> dict:
        engine = get_engine(cfg.database.dsn)
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return {"status": "ok", "db": True, "dialect": engine.dialect.name}
        except SQLAlchemyError as e:
            logger.error("health.db_check_failed dialect=%s", engine.dialect.name, exc_info=True)
            return {"status": "degraded", "db": False, "reason": type(e).__name__}

    return check


def _driver_available(dsn: str) -> bool:
    """PostgreSQL URLs need psycopg2; report instead of failing startup."""
    if not dsn.startswith("postgresql"):
        return True
    try:
        import psycopg2  # type: ignore  # noqa: F401
    except ImportError:
        logger.warning("startup_migrations_skipped_no_db_driver")
        return False
    return True


def create_app(config: AppConfig | None = None) -> FastAPI:
    # Configure global logging before app instantiation so all modules emit
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="Catalog Admin Ordering Service")
    app.state.config = cfg

    app.add_exception_handler(OrderingError, handle_ordering_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(RequestIdMiddleware)
    apply_cors(app, origins=cfg.cors.allow_origins)

    # Apply migrations on startup (guarded) to avoid import-time side effects
    @app.on_event("startup")
    def _apply_migrations() -> None:
        if not cfg.database.auto_apply_migrations:
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
            return
        if not _driver_available(cfg.database.dsn):
            return
        engine = get_engine(cfg.database.dsn)
        try:
            applied = apply_migrations(engine)
        except SQLAlchemyError:
            logger.error("Failed to apply migrations at startup", exc_info=True)
            raise
        logger.info("startup_migrations_applied count=%s files=%s", len(applied), applied)

    # Routers
    app.include_router(api_router, prefix="/api/v1")

    # Health endpoint (out of prefix for load balancer probes)
    health_check = _health_check(cfg)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    logger.info(
        "app.created strategy=%s lock_rows=%s role_header=%s",
        cfg.ordering.reorder_strategy,
        cfg.ordering.lock_scope_rows,
        cfg.admin.role_header,
    )
    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
