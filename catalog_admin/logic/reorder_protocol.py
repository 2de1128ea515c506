"""Bulk reorder write protocol.

A drag-and-drop reorder assigns a full permutation to a scope. Writing the
final values directly would collide with the unique ``display_order``
constraint (swapping 1 and 2 sets A to 2 while B still holds 2), so the
portable path runs in two phases inside the caller's transaction:

1. quarantine: every id gets a unique negative placeholder ``-(index + 1)``;
2. commit: every id gets its final value ``index + 1``.

On PostgreSQL the ``deferred`` strategy defers the uniqueness check to commit
time instead and writes the final values in a single pass.
"""

from __future__ import annotations

from typing import Dict
import logging

from catalog_admin.logic.errors import StoreFailure
from catalog_admin.logic.events import SCOPE_FLAGGED, publish
from catalog_admin.logic.inmemory_state import flag_scope
from catalog_admin.logic.scoped_store import Scope, ScopedStoreAdapter
from catalog_admin.logic.sequencer import (
    STATE_CONSISTENT,
    STATE_QUARANTINED,
    STATE_UNKNOWN,
    BulkReorderPlan,
)

logger = logging.getLogger(__name__)

STRATEGY_TWO_PHASE = "two_phase"
STRATEGY_DEFERRED = "deferred"


class ReorderTransaction:
    """Apply one ``BulkReorderPlan`` to one scope and track its state.

    ``state`` moves ``consistent -> quarantined -> consistent`` on success.
    A failure while quarantined leaves it ``unknown`` and flags the scope for
    manual reconciliation before raising ``StoreFailure``.
    """

    def __init__(
        self,
        adapter: ScopedStoreAdapter,
        scope: Scope,
        *,
        kind: str,
        strategy: str = STRATEGY_TWO_PHASE,
    ) -> None:
        self.adapter = adapter
        self.scope = scope
        self.kind = kind
        self.strategy = strategy
        self.state = STATE_CONSISTENT

    def effective_strategy(self) -> str:
        if self.strategy == STRATEGY_DEFERRED and self.adapter.dialect != "postgresql":
            logger.warning(
                "reorder.deferred_unsupported dialect=%s kind=%s; using two_phase",
                self.adapter.dialect,
                self.kind,
            )
            return STRATEGY_TWO_PHASE
        return self.strategy

    def run(self, plan: BulkReorderPlan) -> Dict[str, int]:
        strategy = self.effective_strategy()
        logger.info(
            "reorder.start kind=%s scope=%s strategy=%s members=%s",
            self.kind,
            self.scope.label,
            strategy,
            len(plan.assignments),
        )
        try:
            if strategy == STRATEGY_DEFERRED:
                self.adapter.set_constraints_deferred()
                self.adapter.apply_shifts(self.scope, plan.assignments)
            else:
                self.state = STATE_QUARANTINED
                self.adapter.apply_shifts(self.scope, plan.placeholders)
                self.adapter.apply_shifts(self.scope, plan.assignments)
        except StoreFailure as exc:
            was_quarantined = self.state == STATE_QUARANTINED
            self.state = STATE_UNKNOWN
            if was_quarantined:
                entry = flag_scope(self.kind, self.scope.label, exc.detail)
                publish(SCOPE_FLAGGED, entry)
            logger.error(
                "reorder.failed kind=%s scope=%s quarantined=%s",
                self.kind,
                self.scope.label,
                was_quarantined,
                exc_info=True,
            )
            raise StoreFailure(
                f"bulk reorder of {self.kind} failed: {exc.detail}",
                scope=self.scope.label,
                flagged=was_quarantined,
            ) from exc
        self.state = STATE_CONSISTENT
        logger.info("reorder.done kind=%s scope=%s", self.kind, self.scope.label)
        return plan.mapping()


__all__ = ["ReorderTransaction", "STRATEGY_TWO_PHASE", "STRATEGY_DEFERRED"]
