"""Functional tests for order integrity scanning and repair."""

from __future__ import annotations

from sqlalchemy import text

from catalog_admin.logic.inmemory_state import flag_scope, is_flagged
from catalog_admin.logic.order_integrity import repair, scan, scan_all
from catalog_admin.logic.ordered_collections import accordion_items, categories, services
from catalog_admin.logic.scoped_store import GLOBAL, Scope


def seed_faq(*titles: str) -> list[str]:
    col = accordion_items()
    return [col.create({"title": t, "content": t}).entity["id"] for t in titles]


def set_order(engine, table: str, entity_id: str, value: int) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"UPDATE {table} SET display_order = :v WHERE id = :id"), {"v": value, "id": entity_id})


def test_scan_reports_consistent_scope() -> None:
    seed_faq("A", "B")
    [report] = scan(accordion_items())
    assert report.scope == "global"
    assert report.state == "consistent"
    assert report.count == 2


def test_scan_detects_placeholders_left_by_interrupted_reorder(engine) -> None:
    a, b, c = seed_faq("A", "B", "C")
    set_order(engine, "accordion_items", c, -1)
    set_order(engine, "accordion_items", a, -2)
    [report] = scan(accordion_items())
    assert report.state == "quarantined"
    assert report.placeholders == [-2, -1]


def test_repair_finishes_interrupted_reorder(engine) -> None:
    a, b, c = seed_faq("A", "B", "C")
    # Interrupted reorder to [C, A, B] after quarantining C and A
    set_order(engine, "accordion_items", c, -1)
    set_order(engine, "accordion_items", a, -2)
    flag_scope("accordion_item", "global", "simulated")
    report = repair(accordion_items(), GLOBAL)
    assert report.state == "consistent"
    assert report.flagged is False
    assert not is_flagged("accordion_item", "global")
    rows = accordion_items().list()
    assert [(r["title"], r["display_order"]) for r in rows] == [("C", 1), ("A", 2), ("B", 3)]


def test_repair_closes_gaps(engine) -> None:
    a, b = seed_faq("A", "B")
    set_order(engine, "accordion_items", b, 9)
    report = repair(accordion_items())
    assert report.state == "consistent"
    assert [r["display_order"] for r in accordion_items().list()] == [1, 2]


def test_repair_of_consistent_scope_changes_nothing() -> None:
    seed_faq("A", "B")
    report = repair(accordion_items())
    assert report.state == "consistent"
    assert [r["title"] for r in accordion_items().list()] == ["A", "B"]


def test_scan_all_covers_every_service_scope(engine) -> None:
    cats = categories()
    hair = cats.create({"name": "Hair", "description": "Hair services", "icon": "h"}).entity["id"]
    nails = cats.create({"name": "Nails", "description": "Nail services", "icon": "n"}).entity["id"]
    svc = services()
    fields = {"title": "s", "price": 1, "image": "https://cdn.example.com/s.png", "description": ["basic"]}
    s1 = svc.create(fields, Scope(hair)).entity["id"]
    svc.create(fields, Scope(nails))
    set_order(engine, "services", s1, 4)

    result = scan_all([accordion_items(), cats, svc])
    by_scope = {(r["kind"], r["scope"]): r for r in result["scopes"]}
    assert by_scope[("service", hair)]["state"] == "unknown"
    assert by_scope[("service", nails)]["state"] == "consistent"
    assert by_scope[("category", "global")]["count"] == 2
    assert result["flagged"] == []

    repair(svc, Scope(hair))
    assert [r["display_order"] for r in svc.list(Scope(hair))] == [1]
