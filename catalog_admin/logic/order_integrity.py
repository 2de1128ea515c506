"""Detection and repair of damaged ``display_order`` scopes.

``scan`` reports, per scope, whether the stored orders are dense, hold
leftover quarantine placeholders, or contain gaps/duplicates. ``repair``
renumbers a single scope to ``1..N`` in one transaction, preserving the order
the rows were heading to, and clears any reconciliation flag on it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional
import logging

from catalog_admin.logic.events import ORDER_CHANGED, publish
from catalog_admin.logic.inmemory_state import clear_scope_flag, is_flagged, list_flagged_scopes
from catalog_admin.logic.ordered_collections import OrderedCollection
from catalog_admin.logic.scoped_store import Scope
from catalog_admin.logic.sequencer import Assignment, ScopeHealth, describe_scope, plan_compaction

logger = logging.getLogger(__name__)


@dataclass
class ScopeReport:
    kind: str
    scope: str
    state: str
    count: int
    gaps: List[int] = field(default_factory=list)
    duplicates: List[int] = field(default_factory=list)
    placeholders: List[int] = field(default_factory=list)
    flagged: bool = False

    @classmethod
    def from_health(cls, kind: str, scope: Scope, health: ScopeHealth) -> "ScopeReport":
        return cls(
            kind=kind,
            scope=scope.label,
            state=health.state,
            count=health.count,
            gaps=list(health.gaps),
            duplicates=list(health.duplicates),
            placeholders=list(health.placeholders),
            flagged=is_flagged(kind, scope.label),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def scan(collection: OrderedCollection) -> List[ScopeReport]:
    """Inspect every scope of one entity kind."""
    reports: List[ScopeReport] = []
    with collection.unit() as store:
        for scope in store.distinct_scopes():
            members = store.load_members(scope)
            health = describe_scope(m.display_order for m in members)
            reports.append(ScopeReport.from_health(collection.kind, scope, health))
    damaged = [r for r in reports if r.state != "consistent"]
    if damaged:
        logger.warning(
            "order_integrity.scan kind=%s scopes=%s damaged=%s",
            collection.kind,
            len(reports),
            [r.scope for r in damaged],
        )
    else:
        logger.info("order_integrity.scan kind=%s scopes=%s damaged=0", collection.kind, len(reports))
    return reports


def scan_all(collections: List[OrderedCollection]) -> Dict[str, Any]:
    return {
        "scopes": [r.to_dict() for c in collections for r in scan(c)],
        "flagged": list_flagged_scopes(),
    }


def repair(collection: OrderedCollection, scope: Optional[Scope] = None) -> ScopeReport:
    """Renumber one scope to ``1..N``.

    Every row is first moved to a unique negative placeholder so the final
    writes cannot collide with leftovers (duplicates, stray placeholders).
    """
    scope = collection.scope_for(scope)
    with collection.unit() as store:
        store.lock_scope(scope)
        members = store.load_members(scope)
        before = describe_scope(m.display_order for m in members)
        final = plan_compaction(members)
        changed = {a.id: a.display_order for a in final}
        if not before.is_consistent:
            # Placeholders start below any value a damaged scope may already hold
            floor = min([0] + [m.display_order for m in members])
            quarantine = [Assignment(a.id, floor - idx - 1) for idx, a in enumerate(final)]
            store.apply_shifts(scope, quarantine)
            store.apply_shifts(scope, final)
        after = describe_scope(changed.values())
    cleared = clear_scope_flag(collection.kind, scope.label)
    logger.info(
        "order_integrity.repair kind=%s scope=%s before=%s after=%s cleared_flag=%s",
        collection.kind,
        scope.label,
        before.state,
        after.state,
        cleared,
    )
    if not before.is_consistent:
        publish(ORDER_CHANGED, {"kind": collection.kind, "scope": scope.label, "operation": "repair", "affected": changed})
    return ScopeReport.from_health(collection.kind, scope, after)


__all__ = ["ScopeReport", "scan", "scan_all", "repair"]
