"""Order planning for dense ``display_order`` sequences.

Pure functions over an in-memory list of ``Member`` rows belonging to one
scope. Nothing here touches the database: the store adapter replays the plans
one row at a time, in the order the plan lists them.

Every plan is written so that, applied in sequence, no intermediate write puts
two rows of the scope on the same value:

- increments (+1) are listed highest first, decrements (-1) lowest first, so
  each write lands on a slot the previous write vacated;
- a reposition parks the moving row on ``PARK_ORDER`` before shifting;
- a bulk reorder writes unique negative placeholders before final values.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from catalog_admin.logic.errors import IncompleteReorder, NotFound, OutOfRange

# Temporary value held by a row while the rows around it are shifted
PARK_ORDER = 0

STATE_CONSISTENT = "consistent"
STATE_QUARANTINED = "quarantined"
STATE_UNKNOWN = "unknown"


@dataclass(frozen=True)
class Member:
    id: str
    display_order: int


@dataclass(frozen=True)
class Assignment:
    """A single-row write: set ``id`` to ``display_order``."""

    id: str
    display_order: int


@dataclass(frozen=True)
class InsertPlan:
    shifts: Tuple[Assignment, ...]
    new_order: int


@dataclass(frozen=True)
class DeletePlan:
    shifts: Tuple[Assignment, ...]


@dataclass(frozen=True)
class RepositionPlan:
    member_id: str
    old_order: int
    new_order: int
    shifts: Tuple[Assignment, ...] = ()

    @property
    def is_noop(self) -> bool:
        return self.old_order == self.new_order

    @property
    def steps(self) -> Tuple[Assignment, ...]:
        """Writes in application order: park, shifts, final value."""
        if self.is_noop:
            return ()
        return (
            (Assignment(self.member_id, PARK_ORDER),)
            + self.shifts
            + (Assignment(self.member_id, self.new_order),)
        )


@dataclass(frozen=True)
class BulkReorderPlan:
    placeholders: Tuple[Assignment, ...]
    assignments: Tuple[Assignment, ...]

    def mapping(self) -> Dict[str, int]:
        return {a.id: a.display_order for a in self.assignments}


@dataclass(frozen=True)
class ScopeHealth:
    state: str
    count: int
    gaps: Tuple[int, ...] = ()
    duplicates: Tuple[int, ...] = ()
    placeholders: Tuple[int, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return self.state == STATE_CONSISTENT


def _sorted(members: Iterable[Member]) -> List[Member]:
    return sorted(members, key=lambda m: (m.display_order, m.id))


def plan_append(members: Sequence[Member]) -> int:
    """Return the order for a row appended at the end of the scope."""
    if not members:
        return 1
    return max(m.display_order for m in members) + 1


def plan_insert_at(members: Sequence[Member], target_order: int) -> InsertPlan:
    """Make room at ``target_order`` for a new row.

    Targets past the end are clamped to ``N + 1`` (plain append). Targets below
    1 are rejected.
    """
    count = len(members)
    target = int(target_order)
    if target < 1:
        raise OutOfRange(target, 1, count + 1)
    target = min(target, count + 1)
    shifted = [m for m in _sorted(members) if m.display_order >= target]
    shifts = tuple(Assignment(m.id, m.display_order + 1) for m in reversed(shifted))
    return InsertPlan(shifts=shifts, new_order=target)


def plan_delete(members: Sequence[Member], deleted_order: int) -> DeletePlan:
    """Close the gap left by a removed row.

    ``members`` may or may not still include the removed row; only rows
    strictly above ``deleted_order`` move.
    """
    shifted = [m for m in _sorted(members) if m.display_order > int(deleted_order)]
    return DeletePlan(shifts=tuple(Assignment(m.id, m.display_order - 1) for m in shifted))


def plan_reposition(members: Sequence[Member], member_id: str, new_order: int) -> RepositionPlan:
    """Move one row to ``new_order`` and shift the rows in between."""
    ordered = _sorted(members)
    current = next((m for m in ordered if m.id == member_id), None)
    if current is None:
        raise NotFound("member", member_id)
    count = len(ordered)
    target = int(new_order)
    if target < 1 or target > count:
        raise OutOfRange(target, 1, count)
    old = current.display_order
    if target == old:
        return RepositionPlan(member_id=member_id, old_order=old, new_order=target)

    others = [m for m in ordered if m.id != member_id]
    if target > old:
        # Moving later: (old, new] slides down, lowest first
        window = [m for m in others if old < m.display_order <= target]
        shifts = tuple(Assignment(m.id, m.display_order - 1) for m in window)
    else:
        # Moving earlier: [new, old) slides up, highest first
        window = [m for m in others if target <= m.display_order < old]
        shifts = tuple(Assignment(m.id, m.display_order + 1) for m in reversed(window))
    return RepositionPlan(member_id=member_id, old_order=old, new_order=target, shifts=shifts)


def plan_bulk_reorder(members: Sequence[Member], ordered_ids: Sequence[str]) -> BulkReorderPlan:
    """Plan a full permutation of the scope from the caller's final order.

    The id list must name every current member exactly once. Ids from another
    scope count as unexpected, so they are rejected rather than moved.
    """
    ids = [str(i) for i in ordered_ids]
    member_ids = {m.id for m in members}
    counts = Counter(ids)
    duplicates = [i for i, n in counts.items() if n > 1]
    missing = member_ids - set(ids)
    unexpected = set(ids) - member_ids
    if duplicates or missing or unexpected or len(ids) != len(member_ids):
        raise IncompleteReorder(
            missing=missing,
            unexpected=unexpected,
            duplicates=duplicates,
            expected_count=len(member_ids),
            received_count=len(ids),
        )
    placeholders = tuple(Assignment(i, -(idx + 1)) for idx, i in enumerate(ids))
    assignments = tuple(Assignment(i, idx + 1) for idx, i in enumerate(ids))
    return BulkReorderPlan(placeholders=placeholders, assignments=assignments)


def positions_to_ordered_ids(items: Sequence[Tuple[str, int]], expected_count: int) -> List[str]:
    """Turn drag-and-drop ``(id, new_position)`` pairs into an ordered id list.

    Positions must be exactly ``1..expected_count``; anything else is an
    incomplete reorder.
    """
    positions = [int(p) for _, p in items]
    if sorted(positions) != list(range(1, expected_count + 1)):
        ids = [str(i) for i, _ in items]
        raise IncompleteReorder(
            duplicates=[i for i, n in Counter(ids).items() if n > 1],
            expected_count=expected_count,
            received_count=len(items),
        )
    return [str(i) for i, _ in sorted(items, key=lambda pair: int(pair[1]))]


def plan_compaction(members: Sequence[Member]) -> List[Assignment]:
    """Renumber a damaged scope to ``1..N`` keeping its intended order.

    Placeholders written by the bulk protocol encode the final index as
    ``-(index + 1)``, so ordering by absolute value recovers the order the
    interrupted reorder was heading to.
    """
    ranked = sorted(members, key=lambda m: (abs(m.display_order), m.display_order, m.id))
    return [Assignment(m.id, idx + 1) for idx, m in enumerate(ranked)]


def describe_scope(orders: Iterable[int]) -> ScopeHealth:
    values = [int(o) for o in orders]
    count = len(values)
    placeholders = tuple(sorted(v for v in values if v <= 0))
    counts = Counter(values)
    duplicates = tuple(sorted(v for v, n in counts.items() if n > 1))
    gaps = tuple(v for v in range(1, count + 1) if v not in counts)
    if placeholders:
        state = STATE_QUARANTINED
    elif duplicates or gaps:
        state = STATE_UNKNOWN
    else:
        state = STATE_CONSISTENT
    return ScopeHealth(
        state=state,
        count=count,
        gaps=gaps,
        duplicates=duplicates,
        placeholders=placeholders,
    )


__all__ = [
    "PARK_ORDER",
    "STATE_CONSISTENT",
    "STATE_QUARANTINED",
    "STATE_UNKNOWN",
    "Member",
    "Assignment",
    "InsertPlan",
    "DeletePlan",
    "RepositionPlan",
    "BulkReorderPlan",
    "ScopeHealth",
    "plan_append",
    "plan_insert_at",
    "plan_delete",
    "plan_reposition",
    "plan_bulk_reorder",
    "positions_to_ordered_ids",
    "plan_compaction",
    "describe_scope",
]
