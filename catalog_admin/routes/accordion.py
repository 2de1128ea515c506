"""Accordion (FAQ) item endpoints.

Implements, under the admin role:
- GET /accordion, GET /accordion/{item_id}
- POST /accordion (append, or insert at ``display_order``)
- PATCH /accordion/{item_id} (fields and/or ``display_order``)
- DELETE /accordion/{item_id}
- PUT /accordion/order (bulk drag-and-drop reorder)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from catalog_admin.guards.admin import require_admin
from catalog_admin.logic.ordered_collections import OrderedCollection
from catalog_admin.logic.scoped_store import GLOBAL
from catalog_admin.models.ordering import (
    AccordionItemCreate,
    AccordionItemUpdate,
    OrderOutcomeResponse,
    ReorderRequest,
)
from catalog_admin.routes.dependencies import accordion_collection, listing_body, outcome_body, run_reorder

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/accordion", summary="List accordion items in display order")
def list_accordion(collection: OrderedCollection = Depends(accordion_collection)) -> dict:
    return listing_body(collection, GLOBAL.label, collection.list(GLOBAL))


@router.put("/accordion/order", summary="Reorder all accordion items", response_model=OrderOutcomeResponse)
def reorder_accordion(body: ReorderRequest, collection: OrderedCollection = Depends(accordion_collection)) -> dict:
    outcome = run_reorder(collection, GLOBAL, body)
    return outcome_body(collection, outcome)


@router.get("/accordion/{item_id}", summary="Get one accordion item")
def get_accordion_item(item_id: str, collection: OrderedCollection = Depends(accordion_collection)) -> dict:
    return {"kind": collection.kind, "entity": collection.get(item_id)}


@router.post(
    "/accordion",
    status_code=status.HTTP_201_CREATED,
    summary="Create an accordion item",
    response_model=OrderOutcomeResponse,
)
def create_accordion_item(
    body: AccordionItemCreate,
    collection: OrderedCollection = Depends(accordion_collection),
) -> dict:
    outcome = collection.create(body.fields(), GLOBAL, body.display_order)
    return outcome_body(collection, outcome)


@router.patch("/accordion/{item_id}", summary="Update or move an accordion item", response_model=OrderOutcomeResponse)
def update_accordion_item(
    item_id: str,
    body: AccordionItemUpdate,
    collection: OrderedCollection = Depends(accordion_collection),
) -> dict:
    outcome = collection.update(item_id, body.fields(), body.display_order)
    return outcome_body(collection, outcome)


@router.delete("/accordion/{item_id}", summary="Delete an accordion item", response_model=OrderOutcomeResponse)
def delete_accordion_item(item_id: str, collection: OrderedCollection = Depends(accordion_collection)) -> dict:
    outcome = collection.delete(item_id)
    return outcome_body(collection, outcome)


__all__ = ["router"]
