"""Category endpoints.

Categories share one global ordering. Deleting a category removes its
services through the foreign key cascade and closes the gap it leaves.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from catalog_admin.guards.admin import require_admin
from catalog_admin.logic.ordered_collections import OrderedCollection
from catalog_admin.logic.scoped_store import GLOBAL
from catalog_admin.models.ordering import CategoryCreate, CategoryUpdate, OrderOutcomeResponse, ReorderRequest
from catalog_admin.routes.dependencies import categories_collection, listing_body, outcome_body, run_reorder

router = APIRouter(dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


@router.get("/categories", summary="List categories in display order")
def list_categories(collection: OrderedCollection = Depends(categories_collection)) -> dict:
    return listing_body(collection, GLOBAL.label, collection.list(GLOBAL))


@router.put("/categories/order", summary="Reorder all categories", response_model=OrderOutcomeResponse)
def reorder_categories(body: ReorderRequest, collection: OrderedCollection = Depends(categories_collection)) -> dict:
    return outcome_body(collection, run_reorder(collection, GLOBAL, body))


@router.get("/categories/{category_id}", summary="Get one category")
def get_category(category_id: str, collection: OrderedCollection = Depends(categories_collection)) -> dict:
    return {"kind": collection.kind, "entity": collection.get(category_id)}


@router.post(
    "/categories",
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
    response_model=OrderOutcomeResponse,
)
def create_category(body: CategoryCreate, collection: OrderedCollection = Depends(categories_collection)) -> dict:
    return outcome_body(collection, collection.create(body.fields(), GLOBAL, body.display_order))


@router.patch("/categories/{category_id}", summary="Update or move a category", response_model=OrderOutcomeResponse)
def update_category(
    category_id: str,
    body: CategoryUpdate,
    collection: OrderedCollection = Depends(categories_collection),
) -> dict:
    return outcome_body(collection, collection.update(category_id, body.fields(), body.display_order))


@router.delete("/categories/{category_id}", summary="Delete a category and its services", response_model=OrderOutcomeResponse)
def delete_category(category_id: str, collection: OrderedCollection = Depends(categories_collection)) -> dict:
    outcome = collection.delete(category_id)
    logger.info("categories.deleted id=%s remaining=%s", category_id, len(outcome.entities))
    return outcome_body(collection, outcome)


__all__ = ["router"]
