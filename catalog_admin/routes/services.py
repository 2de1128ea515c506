"""Service endpoints, ordered per category.

Listing, creation and bulk reorder are addressed through the owning category;
single-service update and delete resolve the category from the stored row.
A PATCH carrying a different ``category_id`` moves the service.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from catalog_admin.guards.admin import require_admin
from catalog_admin.logic.ordered_collections import OrderedCollection
from catalog_admin.logic.scoped_store import Scope
from catalog_admin.models.ordering import OrderOutcomeResponse, ReorderRequest, ServiceCreate, ServiceUpdate
from catalog_admin.routes.dependencies import listing_body, outcome_body, services_collection, run_reorder

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/categories/{category_id}/services", summary="List a category's services in display order")
def list_services(category_id: str, collection: OrderedCollection = Depends(services_collection)) -> dict:
    scope = Scope(category_id)
    return listing_body(collection, scope.label, collection.list(scope))


@router.post(
    "/categories/{category_id}/services",
    status_code=status.HTTP_201_CREATED,
    summary="Create a service in a category",
    response_model=OrderOutcomeResponse,
)
def create_service(
    category_id: str,
    body: ServiceCreate,
    collection: OrderedCollection = Depends(services_collection),
) -> dict:
    outcome = collection.create(body.fields(), Scope(category_id), body.display_order)
    return outcome_body(collection, outcome)


@router.put(
    "/categories/{category_id}/services/order",
    summary="Reorder a category's services",
    response_model=OrderOutcomeResponse,
)
def reorder_services(
    category_id: str,
    body: ReorderRequest,
    collection: OrderedCollection = Depends(services_collection),
) -> dict:
    return outcome_body(collection, run_reorder(collection, Scope(category_id), body))


@router.get("/services/{service_id}", summary="Get one service")
def get_service(service_id: str, collection: OrderedCollection = Depends(services_collection)) -> dict:
    return {"kind": collection.kind, "entity": collection.get(service_id)}


@router.patch("/services/{service_id}", summary="Update, reposition or move a service", response_model=OrderOutcomeResponse)
def update_service(
    service_id: str,
    body: ServiceUpdate,
    collection: OrderedCollection = Depends(services_collection),
) -> dict:
    return outcome_body(collection, collection.update(service_id, body.fields(), body.display_order))


@router.delete("/services/{service_id}", summary="Delete a service", response_model=OrderOutcomeResponse)
def delete_service(service_id: str, collection: OrderedCollection = Depends(services_collection)) -> dict:
    return outcome_body(collection, collection.delete(service_id))


__all__ = ["router"]
