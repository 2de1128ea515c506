"""Shared route dependencies: facade construction and response envelopes."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from fastapi import Depends
from fastapi.encoders import jsonable_encoder

from catalog_admin.config import AppConfig
from catalog_admin.db.base import get_engine
from catalog_admin.guards.admin import app_config
from catalog_admin.logic.ordered_collections import (
    ACCORDION_ITEMS,
    CATEGORIES,
    SERVICES,
    EntitySpec,
    OrderedCollection,
    OrderOutcome,
    build_collection,
)
from catalog_admin.logic.scoped_store import Scope
from catalog_admin.models.ordering import ReorderRequest


def _collection_dependency(spec: EntitySpec) -> Callable[..., OrderedCollection]:
    def dependency(cfg: AppConfig = Depends(app_config)) -> OrderedCollection:
        return build_collection(spec, cfg, get_engine(cfg.database.dsn))

    dependency.__name__ = f"{spec.table.name}_collection"
    return dependency


accordion_collection = _collection_dependency(ACCORDION_ITEMS)
categories_collection = _collection_dependency(CATEGORIES)
services_collection = _collection_dependency(SERVICES)


def outcome_body(collection: OrderedCollection, outcome: OrderOutcome) -> Dict[str, Any]:
    return jsonable_encoder(
        {
            "kind": collection.kind,
            "scope": outcome.scope.label,
            "entity": outcome.entity,
            "affected": outcome.affected,
            "items": outcome.entities,
        }
    )


def run_reorder(collection: OrderedCollection, scope: Optional[Scope], body: ReorderRequest) -> OrderOutcome:
    """Dispatch a reorder body to the id-list or position-list facade call."""
    if body.ordered_ids is not None:
        return collection.bulk_reorder(scope, body.ordered_ids)
    return collection.bulk_reorder_positions(scope, body.positions())


def listing_body(collection: OrderedCollection, scope_label: str, rows: Any) -> Dict[str, Any]:
    return jsonable_encoder({"kind": collection.kind, "scope": scope_label, "items": rows})


__all__ = [
    "accordion_collection",
    "categories_collection",
    "services_collection",
    "outcome_body",
    "listing_body",
    "run_reorder",
]
