"""Admin role guard dependency.

The session layer in front of this service authenticates the user and forwards
their role in a header (``X-User-Role`` by default). Every ordering route
depends on ``require_admin``; a missing or different role yields a 403
problem before any database access.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from catalog_admin.config import AppConfig, load_config
from catalog_admin.http.error_mapping import FORBIDDEN

logger = logging.getLogger(__name__)


def app_config(request: Request) -> AppConfig:
    cfg = getattr(request.app.state, "config", None)
    if cfg is None:
        cfg = load_config()
        request.app.state.config = cfg
    return cfg


def require_admin(request: Request) -> str:
    cfg = app_config(request)
    role = (request.headers.get(cfg.admin.role_header) or "").strip()
    if role != cfg.admin.admin_role:
        logger.info(
            "admin_guard.denied method=%s path=%s role_present=%s",
            request.method,
            request.url.path,
            bool(role),
        )
        raise HTTPException(
            status_code=int(FORBIDDEN["status"]),
            detail={
                "title": FORBIDDEN["title"],
                "code": FORBIDDEN["code"],
                "detail": f"{cfg.admin.role_header} must be '{cfg.admin.admin_role}'",
            },
        )
    return role


__all__ = ["app_config", "require_admin"]
