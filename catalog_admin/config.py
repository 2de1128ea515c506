"""Configuration utilities for the catalog admin service.

This module loads application configuration with the following rules:
- Primary source: `catalog_admin_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("catalog_admin_config.json")
logger = logging.getLogger(__name__)

REORDER_STRATEGIES = ("two_phase", "deferred")
_TRUE = {"1", "true", "yes", "on"}


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _flag(text: Optional[str]) -> bool:
    return str(text or "").strip().lower() in _TRUE


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=False)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class OrderingConfig(BaseModel):
    reorder_strategy: str = Field(default="two_phase")
    lock_scope_rows: bool = Field(default=True)

    @field_validator("reorder_strategy")
    @classmethod
    def strategy_must_be_allowed(cls, v: str) -> str:
        if v not in REORDER_STRATEGIES:
            raise ValueError(f"ordering.reorder_strategy must be one of {list(REORDER_STRATEGIES)}")
        return v


class AdminConfig(BaseModel):
    role_header: str = Field(default="X-User-Role", min_length=1)
    admin_role: str = Field(default="admin", min_length=1)


class CorsConfig(BaseModel):
    allow_origins: List[str] = Field(default_factory=lambda: ["*"])


class AppConfig(BaseModel):
    database: DatabaseConfig
    ordering: OrderingConfig
    admin: AdminConfig
    cors: CorsConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover - unreadable file
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) catalog_admin_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        if isinstance(cur, list):
            return ",".join(str(v) for v in cur)
        return str(cur) if cur is not None else default

    # Database
    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    auto_migrate = _env("AUTO_APPLY_MIGRATIONS") or _read_config_file("database.auto_apply_migrations") or _base("database.auto_apply_migrations", "false")

    # Ordering
    strategy = (_env("ORDER_REORDER_STRATEGY") or _read_config_file("ordering.reorder_strategy") or _base("ordering.reorder_strategy", "two_phase")).strip()
    lock_rows = _env("ORDER_LOCK_SCOPE_ROWS") or _read_config_file("ordering.lock_scope_rows") or _base("ordering.lock_scope_rows", "true")

    # Admin identity forwarded by the session layer
    role_header = (_env("ADMIN_ROLE_HEADER") or _read_config_file("admin.role_header") or _base("admin.role_header", "X-User-Role")).strip()
    admin_role = (_env("ADMIN_ROLE") or _read_config_file("admin.admin_role") or _base("admin.admin_role", "admin")).strip()

    # CORS
    origins_text = _env("CORS_ALLOW_ORIGINS") or _read_config_file("cors.allow_origins") or _base("cors.allow_origins", "*")
    origins = [o.strip() for o in str(origins_text).split(",") if o.strip()]

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_apply_migrations=_flag(auto_migrate)),
            ordering=OrderingConfig(reorder_strategy=strategy, lock_scope_rows=_flag(lock_rows)),
            admin=AdminConfig(role_header=role_header, admin_role=admin_role),
            cors=CorsConfig(allow_origins=origins or ["*"]),
        )
        return cfg
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "OrderingConfig",
    "AdminConfig",
    "CorsConfig",
    "REORDER_STRATEGIES",
    "load_config",
]
