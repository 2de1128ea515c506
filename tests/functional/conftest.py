from __future__ import annotations

"""Functional test bootstrap for the ordering service.

Uses a file-backed SQLite database shared across the process. SQLite
migrations are applied once at session start; every test then starts from
empty tables, an empty event buffer and no flagged scopes.

This file is intentionally scoped under tests/functional/ so Behave
(integration) and unit tests are unaffected.
"""

import os
import pathlib

import pytest

# Point the app at the test database before any import of catalog_admin
_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# Migrations are applied explicitly below, not by app startup
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
os.environ["ORDER_REORDER_STRATEGY"] = "two_phase"

ADMIN_HEADERS = {"X-User-Role": "admin"}


@pytest.fixture(scope="session")
def engine():
    from catalog_admin.db.base import get_engine

    return get_engine(os.environ["TEST_DATABASE_URL"])


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap(engine) -> None:
    """Session-level bootstrap: apply migrations once for the shared DB."""
    from catalog_admin.db.migrations_runner import apply_migrations

    apply_migrations(engine, migrations_dir=str(_ROOT / "sqlite_migrations"))
    yield


@pytest.fixture(autouse=True)
def clean_state(engine):
    from sqlalchemy import text

    from catalog_admin.logic.events import EVENT_BUFFER
    from catalog_admin.logic.inmemory_state import FLAGGED_SCOPES

    with engine.begin() as conn:
        for table in ("services", "categories", "accordion_items"):
            conn.execute(text(f"DELETE FROM {table}"))
    EVENT_BUFFER.clear()
    FLAGGED_SCOPES.clear()
    yield


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from catalog_admin.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN_HEADERS)
