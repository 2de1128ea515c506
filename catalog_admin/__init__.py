"""FastAPI application package for the catalog admin ordering service.

Exposes the application factory. Ordering logic lives in
`catalog_admin/logic/` and route handlers in `catalog_admin/routes/`.
"""

from __future__ import annotations

from catalog_admin.main import create_app

__all__ = ["create_app"]
