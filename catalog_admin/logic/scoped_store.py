"""Scope-aware persistence for ordered tables.

``ScopedStoreAdapter`` wraps one open connection (inside the caller's
transaction) and replays sequencer plans as single-row ``UPDATE`` statements.
Every statement carries the scope discriminator in its ``WHERE`` clause, so a
write planned for one category can never land on a row of another.

Identifiers (table and column names) come from ``OrderedTable`` definitions in
code, never from request input; all values are bound parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
import logging

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from catalog_admin.logic.errors import StoreFailure
from catalog_admin.logic.sequencer import Assignment, Member

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scope:
    """Grouping within which ``display_order`` is dense.

    ``key`` is None for the single global scope, or the parent id (for
    services, the ``category_id``).
    """

    key: Optional[str] = None

    @property
    def is_global(self) -> bool:
        return self.key is None

    @property
    def label(self) -> str:
        return "global" if self.key is None else str(self.key)


GLOBAL = Scope()


@dataclass(frozen=True)
class OrderedTable:
    name: str
    columns: Tuple[str, ...]
    scope_column: Optional[str] = None
    id_column: str = "id"
    order_column: str = "display_order"

    @property
    def select_list(self) -> str:
        cols = [self.id_column]
        if self.scope_column:
            cols.append(self.scope_column)
        cols.extend(self.columns)
        cols.append(self.order_column)
        return ", ".join(cols)


class ScopedStoreAdapter:
    def __init__(self, table: OrderedTable, conn: Connection, *, lock_rows: bool = True) -> None:
        self.table = table
        self.conn = conn
        self.lock_rows = lock_rows
        # Order writes issued through this adapter, in issue order
        self.history: List[Assignment] = []

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------
    def _scope_sql(self, scope: Scope) -> Tuple[str, Dict[str, Any]]:
        if self.table.scope_column is None:
            if not scope.is_global:
                raise ValueError(f"{self.table.name} has no scope column; got scope {scope.label}")
            return "", {}
        if scope.is_global:
            raise ValueError(f"{self.table.name} requires a {self.table.scope_column} scope")
        return f" AND {self.table.scope_column} = :scope_key", {"scope_key": scope.key}

    def _execute(self, sql: str, params: Mapping[str, Any], *, scope: Scope, op: str):  # type: ignore[no-untyped-def]
        try:
            return self.conn.execute(sql_text(sql), dict(params))
        except SQLAlchemyError as exc:
            logger.error(
                "scoped_store.%s.failed table=%s scope=%s",
                op,
                self.table.name,
                scope.label,
                exc_info=True,
            )
            raise StoreFailure(f"{op} on {self.table.name} failed", scope=scope.label) from exc

    @property
    def dialect(self) -> str:
        return (getattr(self.conn.dialect, "name", "") or "").lower()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def load_members(self, scope: Scope) -> List[Member]:
        t = self.table
        clause, params = self._scope_sql(scope)
        rows = self._execute(
            f"SELECT {t.id_column}, {t.order_column} FROM {t.name} WHERE 1 = 1{clause} "
            f"ORDER BY {t.order_column} ASC, {t.id_column} ASC",
            params,
            scope=scope,
            op="load_members",
        ).fetchall()
        return [Member(id=str(r[0]), display_order=int(r[1])) for r in rows]

    def count(self, scope: Scope) -> int:
        t = self.table
        clause, params = self._scope_sql(scope)
        total = self._execute(
            f"SELECT COUNT(*) FROM {t.name} WHERE 1 = 1{clause}",
            params,
            scope=scope,
            op="count",
        ).scalar()
        return int(total or 0)

    def list_rows(self, scope: Scope) -> List[Dict[str, Any]]:
        t = self.table
        clause, params = self._scope_sql(scope)
        rows = self._execute(
            f"SELECT {t.select_list} FROM {t.name} WHERE 1 = 1{clause} "
            f"ORDER BY {t.order_column} ASC, {t.id_column} ASC",
            params,
            scope=scope,
            op="list_rows",
        ).fetchall()
        return [dict(r._mapping) for r in rows]

    def get_row(self, scope: Scope, entity_id: str) -> Optional[Dict[str, Any]]:
        t = self.table
        clause, params = self._scope_sql(scope)
        row = self._execute(
            f"SELECT {t.select_list} FROM {t.name} WHERE {t.id_column} = :id{clause}",
            {**params, "id": entity_id},
            scope=scope,
            op="get_row",
        ).fetchone()
        return dict(row._mapping) if row else None

    def scope_of(self, entity_id: str) -> Optional[Scope]:
        """Resolve the scope a row currently belongs to, or None if absent."""
        t = self.table
        column = t.scope_column or t.id_column
        row = self._execute(
            f"SELECT {column} FROM {t.name} WHERE {t.id_column} = :id",
            {"id": entity_id},
            scope=GLOBAL,
            op="scope_of",
        ).fetchone()
        if not row:
            return None
        return GLOBAL if t.scope_column is None else Scope(str(row[0]))

    def distinct_scopes(self) -> List[Scope]:
        t = self.table
        if t.scope_column is None:
            return [GLOBAL]
        rows = self._execute(
            f"SELECT DISTINCT {t.scope_column} FROM {t.name} ORDER BY {t.scope_column} ASC",
            {},
            scope=GLOBAL,
            op="distinct_scopes",
        ).fetchall()
        return [Scope(str(r[0])) for r in rows]

    def lock_scope(self, scope: Scope) -> None:
        """Row-lock every member of the scope for the rest of the transaction.

        PostgreSQL only; SQLite serializes writers at the database level.
        """
        if not self.lock_rows or self.dialect != "postgresql":
            return
        t = self.table
        clause, params = self._scope_sql(scope)
        self._execute(
            f"SELECT {t.id_column} FROM {t.name} WHERE 1 = 1{clause} FOR UPDATE",
            params,
            scope=scope,
            op="lock_scope",
        )

    # ------------------------------------------------------------------
    # Order writes
    # ------------------------------------------------------------------
    def apply_order_change(self, scope: Scope, entity_id: str, display_order: int) -> None:
        t = self.table
        clause, params = self._scope_sql(scope)
        result = self._execute(
            f"UPDATE {t.name} SET {t.order_column} = :ord WHERE {t.id_column} = :id{clause}",
            {**params, "ord": int(display_order), "id": entity_id},
            scope=scope,
            op="apply_order_change",
        )
        if result.rowcount != 1:
            logger.error(
                "scoped_store.apply_order_change.rowcount table=%s scope=%s id=%s rowcount=%s",
                t.name,
                scope.label,
                entity_id,
                result.rowcount,
            )
            raise StoreFailure(
                f"order write for {entity_id} matched {result.rowcount} rows",
                scope=scope.label,
            )
        self.history.append(Assignment(entity_id, int(display_order)))

    def apply_shifts(self, scope: Scope, shifts: Sequence[Assignment]) -> None:
        """Apply shifts one row at a time, strictly in the given order."""
        for assignment in shifts:
            self.apply_order_change(scope, assignment.id, assignment.display_order)

    # ------------------------------------------------------------------
    # Row writes
    # ------------------------------------------------------------------
    def insert_row(self, scope: Scope, entity_id: str, fields: Mapping[str, Any], display_order: int) -> None:
        t = self.table
        values: Dict[str, Any] = {t.id_column: entity_id, **dict(fields), t.order_column: int(display_order)}
        if t.scope_column is not None:
            values[t.scope_column] = scope.key
        cols = ", ".join(values.keys())
        binds = ", ".join(f":{k}" for k in values.keys())
        self._execute(
            f"INSERT INTO {t.name} ({cols}) VALUES ({binds})",
            values,
            scope=scope,
            op="insert_row",
        )
        self.history.append(Assignment(entity_id, int(display_order)))

    def update_fields(self, scope: Scope, entity_id: str, fields: Mapping[str, Any]) -> int:
        if not fields:
            return 0
        t = self.table
        clause, params = self._scope_sql(scope)
        assignments = ", ".join(f"{k} = :f_{k}" for k in fields.keys())
        bound = {f"f_{k}": v for k, v in fields.items()}
        result = self._execute(
            f"UPDATE {t.name} SET {assignments} WHERE {t.id_column} = :id{clause}",
            {**params, **bound, "id": entity_id},
            scope=scope,
            op="update_fields",
        )
        return int(result.rowcount or 0)

    def move_to_scope(self, source: Scope, target: Scope, entity_id: str, display_order: int) -> None:
        """Reassign a row to another scope with its order in the new scope."""
        t = self.table
        if t.scope_column is None:
            raise ValueError(f"{t.name} has no scope column")
        result = self._execute(
            f"UPDATE {t.name} SET {t.scope_column} = :target_key, {t.order_column} = :ord "
            f"WHERE {t.id_column} = :id AND {t.scope_column} = :source_key",
            {"target_key": target.key, "source_key": source.key, "ord": int(display_order), "id": entity_id},
            scope=source,
            op="move_to_scope",
        )
        if result.rowcount != 1:
            raise StoreFailure(f"scope move for {entity_id} matched {result.rowcount} rows", scope=source.label)
        self.history.append(Assignment(entity_id, int(display_order)))

    def delete_row(self, scope: Scope, entity_id: str) -> int:
        t = self.table
        clause, params = self._scope_sql(scope)
        result = self._execute(
            f"DELETE FROM {t.name} WHERE {t.id_column} = :id{clause}",
            {**params, "id": entity_id},
            scope=scope,
            op="delete_row",
        )
        return int(result.rowcount or 0)

    def set_constraints_deferred(self) -> None:
        self._execute("SET CONSTRAINTS ALL DEFERRED", {}, scope=GLOBAL, op="set_constraints_deferred")


__all__ = ["Scope", "GLOBAL", "OrderedTable", "ScopedStoreAdapter"]
