"""Unit tests for the pure order planner.

No database: plans are replayed against an in-memory dict that rejects any
write landing on a value another row of the scope still holds, mirroring the
unique ``(scope, display_order)`` constraint.
"""

from __future__ import annotations

import pytest

from catalog_admin.logic.errors import IncompleteReorder, NotFound, OutOfRange
from catalog_admin.logic.sequencer import (
    PARK_ORDER,
    STATE_CONSISTENT,
    STATE_QUARANTINED,
    STATE_UNKNOWN,
    Assignment,
    Member,
    describe_scope,
    plan_append,
    plan_bulk_reorder,
    plan_compaction,
    plan_delete,
    plan_insert_at,
    plan_reposition,
    positions_to_ordered_ids,
)


def members(*ids: str) -> list[Member]:
    return [Member(i, n) for n, i in enumerate(ids, start=1)]


def replay(state: dict[str, int], writes) -> dict[str, int]:
    """Apply writes one at a time, failing on any transient duplicate."""
    state = dict(state)
    for w in writes:
        holders = {k for k, v in state.items() if v == w.display_order and k != w.id}
        assert not holders, f"write {w} collides with {holders}"
        state[w.id] = w.display_order
    return state


def order_of(state: dict[str, int]) -> list[str]:
    return [k for k, _ in sorted(state.items(), key=lambda kv: kv[1])]


def as_state(ms: list[Member]) -> dict[str, int]:
    return {m.id: m.display_order for m in ms}


# ---------------------------------------------------------------------------
# append / insert
# ---------------------------------------------------------------------------

def test_append_to_empty_scope_is_one() -> None:
    assert plan_append([]) == 1


def test_append_is_count_plus_one() -> None:
    assert plan_append(members("a", "b", "c")) == 4


def test_insert_at_shifts_tail_highest_first() -> None:
    ms = members("a", "b", "c")
    plan = plan_insert_at(ms, 2)
    assert plan.new_order == 2
    assert [(s.id, s.display_order) for s in plan.shifts] == [("c", 4), ("b", 3)]
    state = replay(as_state(ms), plan.shifts)
    state = replay(state, [Assignment("new", plan.new_order)])
    assert order_of(state) == ["a", "new", "b", "c"]


def test_insert_past_end_clamps_to_append() -> None:
    plan = plan_insert_at(members("a", "b"), 10)
    assert plan.new_order == 3
    assert plan.shifts == ()


def test_insert_below_one_is_out_of_range() -> None:
    with pytest.raises(OutOfRange):
        plan_insert_at(members("a"), 0)


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------

def test_delete_closes_gap_lowest_first() -> None:
    ms = members("a", "b", "c", "d")
    remaining = [m for m in ms if m.id != "b"]
    plan = plan_delete(remaining, 2)
    assert [(s.id, s.display_order) for s in plan.shifts] == [("c", 2), ("d", 3)]
    state = replay(as_state(remaining), plan.shifts)
    assert sorted(state.values()) == [1, 2, 3]


def test_delete_last_member_moves_nothing() -> None:
    assert plan_delete(members("a", "b"), 2).shifts == ()


# ---------------------------------------------------------------------------
# reposition
# ---------------------------------------------------------------------------

def test_reposition_later_parks_then_slides_down() -> None:
    ms = members("a", "b", "c", "d")
    plan = plan_reposition(ms, "a", 3)
    assert plan.steps[0].display_order == PARK_ORDER
    state = replay(as_state(ms), plan.steps)
    assert order_of(state) == ["b", "c", "a", "d"]
    assert sorted(state.values()) == [1, 2, 3, 4]


def test_reposition_earlier_slides_up() -> None:
    ms = members("a", "b", "c", "d")
    state = replay(as_state(ms), plan_reposition(ms, "d", 1).steps)
    assert order_of(state) == ["d", "a", "b", "c"]


def test_reposition_same_slot_is_noop() -> None:
    plan = plan_reposition(members("a", "b"), "b", 2)
    assert plan.is_noop
    assert plan.steps == ()


def test_reposition_round_trip_restores_order() -> None:
    ms = members("a", "b", "c", "d", "e")
    state = replay(as_state(ms), plan_reposition(ms, "b", 5).steps)
    moved = [Member(k, v) for k, v in state.items()]
    state = replay(state, plan_reposition(moved, "b", 2).steps)
    assert order_of(state) == ["a", "b", "c", "d", "e"]


@pytest.mark.parametrize("target", [0, 5])
def test_reposition_outside_scope_is_out_of_range(target: int) -> None:
    with pytest.raises(OutOfRange):
        plan_reposition(members("a", "b", "c", "d"), "a", target)


def test_reposition_unknown_member_is_not_found() -> None:
    with pytest.raises(NotFound):
        plan_reposition(members("a"), "zzz", 1)


# ---------------------------------------------------------------------------
# bulk reorder
# ---------------------------------------------------------------------------

def test_bulk_reorder_swap_has_no_transient_duplicate() -> None:
    ms = members("a", "b")
    plan = plan_bulk_reorder(ms, ["b", "a"])
    state = replay(as_state(ms), plan.placeholders + plan.assignments)
    assert state == {"b": 1, "a": 2}
    assert plan.mapping() == {"b": 1, "a": 2}


def test_bulk_reorder_placeholders_are_negative_and_unique() -> None:
    plan = plan_bulk_reorder(members("a", "b", "c"), ["c", "a", "b"])
    values = [p.display_order for p in plan.placeholders]
    assert values == [-1, -2, -3]


def test_bulk_reorder_missing_member_is_incomplete() -> None:
    with pytest.raises(IncompleteReorder) as info:
        plan_bulk_reorder(members("a", "b", "c"), ["a", "b"])
    assert info.value.context["missing"] == ["c"]
    assert info.value.context["expected_count"] == 3


def test_bulk_reorder_foreign_id_is_incomplete() -> None:
    with pytest.raises(IncompleteReorder) as info:
        plan_bulk_reorder(members("a", "b"), ["a", "b", "x"])
    assert info.value.context["unexpected"] == ["x"]


def test_bulk_reorder_duplicate_id_is_incomplete() -> None:
    with pytest.raises(IncompleteReorder) as info:
        plan_bulk_reorder(members("a", "b"), ["a", "a"])
    assert info.value.context["duplicates"] == ["a"]


def test_bulk_reorder_of_empty_scope() -> None:
    plan = plan_bulk_reorder([], [])
    assert plan.assignments == ()


def test_positions_to_ordered_ids_sorts_by_position() -> None:
    ids = positions_to_ordered_ids([("a", 3), ("b", 1), ("c", 2)], 3)
    assert ids == ["b", "c", "a"]


@pytest.mark.parametrize(
    "items",
    [
        [("a", 1), ("b", 1), ("c", 2)],
        [("a", 1), ("b", 2)],
        [("a", 1), ("b", 2), ("c", 4)],
    ],
)
def test_positions_must_cover_one_to_n(items) -> None:
    with pytest.raises(IncompleteReorder):
        positions_to_ordered_ids(items, 3)


# ---------------------------------------------------------------------------
# scope health and compaction
# ---------------------------------------------------------------------------

def test_describe_dense_scope_is_consistent() -> None:
    health = describe_scope([2, 1, 3])
    assert health.state == STATE_CONSISTENT
    assert health.is_consistent


def test_describe_placeholders_is_quarantined() -> None:
    health = describe_scope([-1, -2, 3])
    assert health.state == STATE_QUARANTINED
    assert health.placeholders == (-2, -1)


def test_describe_gap_is_unknown() -> None:
    health = describe_scope([1, 2, 5])
    assert health.state == STATE_UNKNOWN
    assert health.gaps == (3,)


def test_compaction_recovers_interrupted_reorder_target() -> None:
    # Interrupted between phases: c and a already hold placeholders -1 and -2
    damaged = [Member("c", -1), Member("a", -2), Member("b", 2)]
    final = plan_compaction(damaged)
    assert [(a.id, a.display_order) for a in final] == [("c", 1), ("a", 2), ("b", 3)]


def test_compaction_closes_gaps_in_order() -> None:
    final = plan_compaction([Member("x", 7), Member("y", 2)])
    assert [(a.id, a.display_order) for a in final] == [("y", 1), ("x", 2)]
