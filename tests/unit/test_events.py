"""Unit tests for the post-commit event publisher."""

from __future__ import annotations

from catalog_admin.logic.events import (
    ORDER_CHANGED,
    SCOPE_FLAGGED,
    get_buffered_events,
    publish,
    subscribe,
    unsubscribe,
)


def test_publish_buffers_and_notifies_subscribers() -> None:
    get_buffered_events()
    seen = []

    def revalidate(event_type, payload):
        seen.append((event_type, payload["kind"], payload["scope"]))

    subscribe(ORDER_CHANGED, revalidate)
    try:
        publish(ORDER_CHANGED, {"kind": "category", "scope": "global", "operation": "create", "affected": {}})
        publish(SCOPE_FLAGGED, {"kind": "category", "scope": "global", "reason": "x"})
    finally:
        unsubscribe(ORDER_CHANGED, revalidate)

    assert seen == [(ORDER_CHANGED, "category", "global")]
    assert [e["type"] for e in get_buffered_events()] == [ORDER_CHANGED, SCOPE_FLAGGED]
    assert get_buffered_events() == []
