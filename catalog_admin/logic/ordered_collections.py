"""Ordered collection facades for accordion items, categories and services.

One generic ``OrderedCollection`` drives every ordered entity kind; an
``EntitySpec`` fixes the table, the scope column and the writable fields.
Each public operation runs in a single database transaction:

- the scope's rows are locked (PostgreSQL) and loaded;
- the sequencer plans the writes, rejecting bad input before any I/O;
- the store adapter applies the plan row by row;
- an ``order.changed`` event is published after commit.

Failures are raised as ``OrderingError`` subclasses; a ``StoreFailure`` always
comes with a rolled-back transaction, so the scope keeps its previous order.
"""

from __future__ import annotations

import json
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from catalog_admin.config import AppConfig
from catalog_admin.db.base import get_engine, transaction
from catalog_admin.logic.errors import InvalidFields, NotFound, OutOfRange, StoreFailure
from catalog_admin.logic.events import ORDER_CHANGED, publish
from catalog_admin.logic.reorder_protocol import STRATEGY_TWO_PHASE, ReorderTransaction
from catalog_admin.logic.scoped_store import GLOBAL, OrderedTable, Scope, ScopedStoreAdapter
from catalog_admin.logic.sequencer import (
    Assignment,
    Member,
    plan_append,
    plan_bulk_reorder,
    plan_delete,
    plan_insert_at,
    plan_reposition,
    positions_to_ordered_ids,
)

logger = logging.getLogger(__name__)


def _encode_json_list(value: Any) -> str:
    return json.dumps(list(value or []), ensure_ascii=False)


def _decode_json_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return value
    try:
        parsed = json.loads(value or "[]")
    except (TypeError, ValueError):
        logger.warning("ordered_collections.decode_json_list_failed value=%r", value)
        return []
    return parsed if isinstance(parsed, list) else []


def _as_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


@dataclass(frozen=True)
class EntitySpec:
    kind: str
    table: OrderedTable
    writable: Tuple[str, ...]
    required: Tuple[str, ...] = ()
    encoders: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    decoders: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    parent_table: Optional[OrderedTable] = None
    parent_kind: Optional[str] = None
    touch_column: Optional[str] = None

    @property
    def is_scoped(self) -> bool:
        return self.table.scope_column is not None


@dataclass
class OrderOutcome:
    """Result of a committed ordering operation.

    ``entity`` is the created/updated row (None for delete and bulk reorder),
    ``affected`` maps every id whose order was written to its final value and
    ``entities`` is the scope listing after commit.
    """

    entity: Optional[Dict[str, Any]]
    affected: Dict[str, int]
    entities: List[Dict[str, Any]]
    scope: Scope = GLOBAL


def _final_orders(history: Sequence[Assignment]) -> Dict[str, int]:
    final: Dict[str, int] = {}
    for a in history:
        final[a.id] = a.display_order
    return final


class OrderedCollection:
    def __init__(
        self,
        spec: EntitySpec,
        *,
        engine: Optional[Engine] = None,
        strategy: str = STRATEGY_TWO_PHASE,
        lock_rows: bool = True,
    ) -> None:
        self.spec = spec
        self._engine = engine
        self.strategy = strategy
        self.lock_rows = lock_rows

    @property
    def kind(self) -> str:
        return self.spec.kind

    @property
    def engine(self) -> Engine:
        return self._engine or get_engine()

    @contextmanager
    def unit(self) -> Generator[ScopedStoreAdapter, None, None]:
        try:
            with transaction(self.engine) as conn:
                yield ScopedStoreAdapter(self.spec.table, conn, lock_rows=self.lock_rows)
        except SQLAlchemyError as exc:
            # Begin/commit failures; statement failures arrive as StoreFailure already
            logger.error("ordering.transaction.failed kind=%s", self.kind, exc_info=True)
            raise StoreFailure(f"{self.kind} transaction failed") from exc

    # ------------------------------------------------------------------
    # Field handling
    # ------------------------------------------------------------------
    def _clean(self, fields: Mapping[str, Any], *, partial: bool) -> Dict[str, Any]:
        scope_col = self.spec.table.scope_column
        allowed = set(self.spec.writable) | ({scope_col} if scope_col else set())
        unknown = [k for k in fields.keys() if k not in allowed]
        missing = [] if partial else [k for k in self.spec.required if fields.get(k) is None]
        if unknown or missing:
            raise InvalidFields(self.kind, unknown=unknown, missing=missing)
        cleaned: Dict[str, Any] = {}
        for key, value in fields.items():
            if key == scope_col:
                continue
            encoder = self.spec.encoders.get(key)
            cleaned[key] = encoder(value) if encoder else value
        return cleaned

    def _decode(self, row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if row is None:
            return None
        out = dict(row)
        for key, decoder in self.spec.decoders.items():
            if key in out:
                out[key] = decoder(out[key])
        return out

    def _decode_all(self, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [self._decode(r) for r in rows]  # type: ignore[misc]

    def _touch(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if self.spec.touch_column and values:
            values = {**values, self.spec.touch_column: datetime.now(timezone.utc)}
        return values

    # ------------------------------------------------------------------
    # Scope resolution
    # ------------------------------------------------------------------
    def scope_for(self, scope: Optional[Scope]) -> Scope:
        scope = scope or GLOBAL
        if self.spec.is_scoped and scope.is_global:
            raise InvalidFields(self.kind, missing=[self.spec.table.scope_column or "scope"])
        if not self.spec.is_scoped and not scope.is_global:
            raise InvalidFields(self.kind, unknown=[self.spec.table.scope_column or "scope"])
        return scope

    def _require_parent(self, store: ScopedStoreAdapter, scope: Scope) -> None:
        if self.spec.parent_table is None or scope.is_global:
            return
        parent = ScopedStoreAdapter(self.spec.parent_table, store.conn, lock_rows=False)
        if parent.scope_of(str(scope.key)) is None:
            raise NotFound(self.spec.parent_kind or "parent", str(scope.key))

    def _resolve(self, store: ScopedStoreAdapter, entity_id: str) -> Tuple[Scope, List[Member], Member]:
        scope = store.scope_of(entity_id)
        if scope is None:
            raise NotFound(self.kind, entity_id)
        store.lock_scope(scope)
        members = store.load_members(scope)
        member = next((m for m in members if m.id == entity_id), None)
        if member is None:
            raise NotFound(self.kind, entity_id, scope.label)
        return scope, members, member

    def _changed(self, scope: Scope, operation: str, affected: Mapping[str, int]) -> None:
        publish(
            ORDER_CHANGED,
            {"kind": self.kind, "scope": scope.label, "operation": operation, "affected": dict(affected)},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list(self, scope: Optional[Scope] = None) -> List[Dict[str, Any]]:
        scope = self.scope_for(scope)
        with self.unit() as store:
            self._require_parent(store, scope)
            return self._decode_all(store.list_rows(scope))

    def get(self, entity_id: str) -> Dict[str, Any]:
        with self.unit() as store:
            scope = store.scope_of(entity_id)
            row = store.get_row(scope, entity_id) if scope is not None else None
        if row is None:
            raise NotFound(self.kind, entity_id)
        return self._decode(row)  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(
        self,
        fields: Mapping[str, Any],
        scope: Optional[Scope] = None,
        target_order: Optional[int] = None,
    ) -> OrderOutcome:
        """Insert a row, appending unless ``target_order`` names a slot."""
        scope = self.scope_for(scope)
        values = self._clean(fields, partial=False)
        entity_id = uuid.uuid4().hex
        logger.info(
            "ordering.create.entry kind=%s scope=%s target_order=%s",
            self.kind,
            scope.label,
            target_order,
        )
        with self.unit() as store:
            self._require_parent(store, scope)
            store.lock_scope(scope)
            members = store.load_members(scope)
            if target_order is None:
                new_order = plan_append(members)
            else:
                plan = plan_insert_at(members, int(target_order))
                store.apply_shifts(scope, plan.shifts)
                new_order = plan.new_order
            store.insert_row(scope, entity_id, values, new_order)
            entity = self._decode(store.get_row(scope, entity_id))
            entities = self._decode_all(store.list_rows(scope))
            affected = _final_orders(store.history)
        logger.info(
            "ordering.create.done kind=%s scope=%s id=%s display_order=%s shifted=%s",
            self.kind,
            scope.label,
            entity_id,
            new_order,
            len(affected) - 1,
        )
        self._changed(scope, "create", affected)
        return OrderOutcome(entity=entity, affected=affected, entities=entities, scope=scope)

    def delete(self, entity_id: str) -> OrderOutcome:
        """Remove a row and close the gap it leaves."""
        logger.info("ordering.delete.entry kind=%s id=%s", self.kind, entity_id)
        with self.unit() as store:
            scope, members, member = self._resolve(store, entity_id)
            if store.delete_row(scope, entity_id) != 1:
                raise NotFound(self.kind, entity_id, scope.label)
            remaining = [m for m in members if m.id != entity_id]
            plan = plan_delete(remaining, member.display_order)
            store.apply_shifts(scope, plan.shifts)
            entities = self._decode_all(store.list_rows(scope))
            affected = _final_orders(store.history)
        logger.info(
            "ordering.delete.done kind=%s scope=%s id=%s freed=%s shifted=%s",
            self.kind,
            scope.label,
            entity_id,
            member.display_order,
            len(affected),
        )
        self._changed(scope, "delete", affected)
        return OrderOutcome(entity=None, affected=affected, entities=entities, scope=scope)

    def update(
        self,
        entity_id: str,
        fields: Mapping[str, Any],
        new_order: Optional[int] = None,
    ) -> OrderOutcome:
        """Update fields and optionally reposition the row within its scope.

        For scoped kinds, a changed scope column moves the row: the old scope
        is compacted and the row lands at ``new_order`` (or the end) of the new
        scope.
        """
        scope_col = self.spec.table.scope_column
        target_key = fields.get(scope_col) if scope_col else None
        values = self._touch(self._clean(fields, partial=True))
        logger.info(
            "ordering.update.entry kind=%s id=%s fields=%s new_order=%s",
            self.kind,
            entity_id,
            sorted(fields.keys()),
            new_order,
        )
        with self.unit() as store:
            scope, members, member = self._resolve(store, entity_id)
            target_scope = Scope(str(target_key)) if target_key is not None else scope
            if target_scope != scope:
                self._move_between_scopes(store, scope, members, member, target_scope, new_order)
                if values:
                    store.update_fields(target_scope, entity_id, values)
            else:
                # Plan first so an out-of-range target is rejected before any write
                plan = plan_reposition(members, entity_id, int(new_order)) if new_order is not None else None
                if values:
                    store.update_fields(scope, entity_id, values)
                if plan is not None:
                    store.apply_shifts(scope, plan.steps)
            entity = self._decode(store.get_row(target_scope, entity_id))
            entities = self._decode_all(store.list_rows(target_scope))
            affected = _final_orders(store.history)
        logger.info(
            "ordering.update.done kind=%s scope=%s id=%s display_order=%s",
            self.kind,
            target_scope.label,
            entity_id,
            (entity or {}).get(self.spec.table.order_column),
        )
        if affected:
            if target_scope != scope:
                self._changed(scope, "move_out", affected)
            self._changed(target_scope, "update", affected)
        return OrderOutcome(entity=entity, affected=affected, entities=entities, scope=target_scope)

    def _move_between_scopes(
        self,
        store: ScopedStoreAdapter,
        source: Scope,
        source_members: List[Member],
        member: Member,
        target: Scope,
        new_order: Optional[int],
    ) -> None:
        self._require_parent(store, target)
        store.lock_scope(target)
        size = store.count(target)
        if new_order is not None and int(new_order) > size + 1:
            raise OutOfRange(int(new_order), 1, size + 1)
        target_members = store.load_members(target)
        if new_order is None:
            slot = plan_append(target_members)
            shifts: Tuple[Assignment, ...] = ()
        else:
            insert = plan_insert_at(target_members, int(new_order))
            slot, shifts = insert.new_order, insert.shifts
        store.apply_shifts(target, shifts)
        store.move_to_scope(source, target, member.id, slot)
        remaining = [m for m in source_members if m.id != member.id]
        store.apply_shifts(source, plan_delete(remaining, member.display_order).shifts)
        logger.info(
            "ordering.move_scope kind=%s id=%s from=%s to=%s display_order=%s",
            self.kind,
            member.id,
            source.label,
            target.label,
            slot,
        )

    def bulk_reorder(self, scope: Optional[Scope], ordered_ids: Sequence[str]) -> OrderOutcome:
        """Assign ``1..N`` to the whole scope following ``ordered_ids``."""
        scope = self.scope_for(scope)
        with self.unit() as store:
            self._require_parent(store, scope)
            store.lock_scope(scope)
            members = store.load_members(scope)
            outcome = self._bulk(store, scope, members, ordered_ids)
        self._changed(scope, "bulk_reorder", outcome.affected)
        return outcome

    def bulk_reorder_positions(self, scope: Optional[Scope], items: Sequence[Tuple[str, int]]) -> OrderOutcome:
        """Bulk reorder from the UI's ``(id, new_position)`` pairs."""
        scope = self.scope_for(scope)
        with self.unit() as store:
            self._require_parent(store, scope)
            store.lock_scope(scope)
            members = store.load_members(scope)
            ordered_ids = positions_to_ordered_ids(items, len(members))
            outcome = self._bulk(store, scope, members, ordered_ids)
        self._changed(scope, "bulk_reorder", outcome.affected)
        return outcome

    def _bulk(
        self,
        store: ScopedStoreAdapter,
        scope: Scope,
        members: List[Member],
        ordered_ids: Sequence[str],
    ) -> OrderOutcome:
        logger.info(
            "ordering.bulk_reorder.entry kind=%s scope=%s members=%s received=%s",
            self.kind,
            scope.label,
            len(members),
            len(ordered_ids),
        )
        plan = plan_bulk_reorder(members, ordered_ids)
        mapping = ReorderTransaction(store, scope, kind=self.kind, strategy=self.strategy).run(plan)
        entities = self._decode_all(store.list_rows(scope))
        return OrderOutcome(entity=None, affected=mapping, entities=entities, scope=scope)


ACCORDION_ITEMS = EntitySpec(
    kind="accordion_item",
    table=OrderedTable("accordion_items", ("title", "content", "created_at")),
    writable=("title", "content"),
    required=("title", "content"),
)

CATEGORIES = EntitySpec(
    kind="category",
    table=OrderedTable("categories", ("name", "description", "icon", "created_at")),
    writable=("name", "description", "icon"),
    required=("name", "description", "icon"),
)

SERVICES = EntitySpec(
    kind="service",
    table=OrderedTable(
        "services",
        ("title", "price", "image", "description", "created_at", "updated_at"),
        scope_column="category_id",
    ),
    writable=("title", "price", "image", "description"),
    required=("title", "price", "image", "description"),
    encoders={"description": _encode_json_list, "price": _as_float},
    decoders={"description": _decode_json_list, "price": _as_float},
    parent_table=CATEGORIES.table,
    parent_kind=CATEGORIES.kind,
    touch_column="updated_at",
)

ENTITY_SPECS: Dict[str, EntitySpec] = {
    "accordion": ACCORDION_ITEMS,
    "categories": CATEGORIES,
    "services": SERVICES,
}


def build_collection(
    spec: EntitySpec,
    config: Optional[AppConfig] = None,
    engine: Optional[Engine] = None,
) -> OrderedCollection:
    if config is None:
        return OrderedCollection(spec, engine=engine)
    return OrderedCollection(
        spec,
        engine=engine,
        strategy=config.ordering.reorder_strategy,
        lock_rows=config.ordering.lock_scope_rows,
    )


def accordion_items(config: Optional[AppConfig] = None, engine: Optional[Engine] = None) -> OrderedCollection:
    return build_collection(ACCORDION_ITEMS, config, engine)


def categories(config: Optional[AppConfig] = None, engine: Optional[Engine] = None) -> OrderedCollection:
    return build_collection(CATEGORIES, config, engine)


def services(config: Optional[AppConfig] = None, engine: Optional[Engine] = None) -> OrderedCollection:
    return build_collection(SERVICES, config, engine)


__all__ = [
    "EntitySpec",
    "OrderOutcome",
    "OrderedCollection",
    "ACCORDION_ITEMS",
    "CATEGORIES",
    "SERVICES",
    "ENTITY_SPECS",
    "build_collection",
    "accordion_items",
    "categories",
    "services",
]
