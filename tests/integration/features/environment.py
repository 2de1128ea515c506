"""Behave environment hooks for the ordering service integration tests.

Loads optional defaults from ``tests/integration/.env.test`` with
python-dotenv. When ``TEST_BASE_URL`` is set, scenarios drive that live API
over httpx and clean the database behind ``TEST_DATABASE_URL``; otherwise the
app runs in-process on a file-backed SQLite database with migrations applied.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import httpx
from dotenv import load_dotenv
from sqlalchemy import create_engine, text

PROJECT_ROOT = Path(__file__).resolve().parents[3]
ORDERED_TABLES = ("services", "categories", "accordion_items")


def _local_database_url() -> str:
    db_file = PROJECT_ROOT / "tmp" / "integration_tests.db"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    if db_file.exists():
        db_file.unlink()
    return f"sqlite:///{db_file}"


def before_all(context: Any) -> None:  # pragma: no cover - executed by Behave
    load_dotenv(dotenv_path=PROJECT_ROOT / "tests" / "integration" / ".env.test", override=False)
    context.api_prefix = os.getenv("TEST_API_PREFIX", "/api/v1")
    context.admin_headers = {os.getenv("ADMIN_ROLE_HEADER", "X-User-Role"): os.getenv("ADMIN_ROLE", "admin")}

    base_url = os.getenv("TEST_BASE_URL", "").strip().rstrip("/")
    if base_url:
        db_url = os.environ.get("TEST_DATABASE_URL", "").strip()
        assert db_url, "TEST_DATABASE_URL is required when TEST_BASE_URL is set"
        context.engine = create_engine(db_url, future=True)
        context.client = httpx.Client(base_url=base_url, timeout=10.0)
        return

    os.environ["TEST_DATABASE_URL"] = _local_database_url()
    os.environ["AUTO_APPLY_MIGRATIONS"] = "1"

    from fastapi.testclient import TestClient

    from catalog_admin.db.base import get_engine
    from catalog_admin.main import create_app

    context.engine = get_engine(os.environ["TEST_DATABASE_URL"])
    # Entering the client runs startup hooks, which apply the SQLite migrations
    context.client = TestClient(create_app())
    context.client.__enter__()


def before_scenario(context: Any, scenario: Any) -> None:  # pragma: no cover - executed by Behave
    with context.engine.begin() as conn:
        for table in ORDERED_TABLES:
            conn.execute(text(f"DELETE FROM {table}"))
    context.ids = {}
    context.response = None


def after_all(context: Any) -> None:  # pragma: no cover - executed by Behave
    client = getattr(context, "client", None)
    if isinstance(client, httpx.Client):
        client.close()
    elif client is not None:
        client.__exit__(None, None, None)
