"""Pydantic payloads for ordered-collection routes.

Declares the request bodies accepted by the accordion, category and service
routes, plus the shared reorder body and response envelope. Routes convert
these to plain dicts (``exclude_unset``) before handing them to the facades,
so fields omitted on update are never written.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Target slot; omitted means "append" on create and "keep" on update
    display_order: Optional[int] = Field(default=None, ge=1)

    def fields(self) -> Dict[str, Any]:
        # Explicit nulls mean "leave unchanged"
        return self.model_dump(exclude_unset=True, exclude_none=True, exclude={"display_order"})


class _CreatePayload(_Payload):
    def fields(self) -> Dict[str, Any]:
        # Every writable column is stored on create
        return self.model_dump(exclude={"display_order"})


IMAGE_URL_PATTERN = r"^https?://.+"


class AccordionItemCreate(_CreatePayload):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)


class AccordionItemUpdate(_Payload):
    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[str] = Field(default=None, min_length=1)


class CategoryCreate(_CreatePayload):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    icon: str = Field(min_length=1)


class CategoryUpdate(_Payload):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    icon: Optional[str] = Field(default=None, min_length=1)


class ServiceCreate(_CreatePayload):
    title: str = Field(min_length=1)
    price: float = Field(ge=0)
    image: str = Field(pattern=IMAGE_URL_PATTERN)
    # Bullet lines shown on the service card
    description: List[str] = Field(min_length=1)


class ServiceUpdate(_Payload):
    title: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    image: Optional[str] = Field(default=None, pattern=IMAGE_URL_PATTERN)
    description: Optional[List[str]] = Field(default=None, min_length=1)
    # Moving a service to another category
    category_id: Optional[str] = Field(default=None, min_length=1)


class PositionItem(BaseModel):
    id: str = Field(min_length=1)
    new_position: int


class ReorderRequest(BaseModel):
    """Either the final id order, or the UI's ``{id, new_position}`` list."""

    model_config = ConfigDict(extra="forbid")

    ordered_ids: Optional[List[str]] = None
    items: Optional[List[PositionItem]] = None

    @model_validator(mode="after")
    def exactly_one_form(self) -> "ReorderRequest":
        if (self.ordered_ids is None) == (self.items is None):
            raise ValueError("provide exactly one of 'ordered_ids' or 'items'")
        return self

    def positions(self) -> List[Tuple[str, int]]:
        return [(i.id, i.new_position) for i in self.items or []]


class OrderOutcomeResponse(BaseModel):
    kind: str
    scope: str
    entity: Optional[Dict[str, Any]] = None
    affected: Dict[str, int] = Field(default_factory=dict)
    items: List[Dict[str, Any]] = Field(default_factory=list)


__all__ = [
    "AccordionItemCreate",
    "AccordionItemUpdate",
    "CategoryCreate",
    "CategoryUpdate",
    "ServiceCreate",
    "ServiceUpdate",
    "PositionItem",
    "ReorderRequest",
    "OrderOutcomeResponse",
]
