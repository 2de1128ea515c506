"""Order integrity endpoints.

- GET /admin/order-integrity: health of every scope of every ordered kind,
  plus the scopes flagged for manual reconciliation.
- POST /admin/order-integrity/{kind}/repair: renumber one scope to ``1..N``;
  services need the category id in the ``scope`` query parameter.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from catalog_admin.config import AppConfig
from catalog_admin.db.base import get_engine
from catalog_admin.guards.admin import app_config, require_admin
from catalog_admin.logic.errors import NotFound
from catalog_admin.logic.order_integrity import repair, scan_all
from catalog_admin.logic.ordered_collections import ENTITY_SPECS, OrderedCollection, build_collection
from catalog_admin.logic.scoped_store import GLOBAL, Scope

router = APIRouter(prefix="/admin/order-integrity", dependencies=[Depends(require_admin)])


def _collection(kind: str, cfg: AppConfig) -> OrderedCollection:
    spec = ENTITY_SPECS.get(kind)
    if spec is None:
        raise NotFound("ordered kind", kind)
    return build_collection(spec, cfg, get_engine(cfg.database.dsn))


@router.get("", summary="Scan every ordered scope for gaps, duplicates and placeholders")
def order_integrity(cfg: AppConfig = Depends(app_config)) -> dict:
    return scan_all([_collection(kind, cfg) for kind in ENTITY_SPECS])


@router.post("/{kind}/repair", summary="Renumber one scope to a dense sequence")
def repair_scope(
    kind: str,
    scope: Optional[str] = Query(default=None, min_length=1),
    cfg: AppConfig = Depends(app_config),
) -> dict:
    collection = _collection(kind, cfg)
    report = repair(collection, Scope(scope) if scope else GLOBAL)
    return report.to_dict()


__all__ = ["router"]
