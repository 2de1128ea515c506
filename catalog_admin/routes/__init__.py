"""APIRouter registration for the catalog admin service."""

from __future__ import annotations

from fastapi import APIRouter

from catalog_admin.routes.accordion import router as accordion_router
from catalog_admin.routes.categories import router as categories_router
from catalog_admin.routes.integrity import router as integrity_router
from catalog_admin.routes.services import router as services_router

api_router = APIRouter()
api_router.include_router(accordion_router, tags=["Accordion"])
api_router.include_router(categories_router, tags=["Categories"])
api_router.include_router(services_router, tags=["Services"])
api_router.include_router(integrity_router, tags=["OrderIntegrity"])

__all__ = ["api_router"]
