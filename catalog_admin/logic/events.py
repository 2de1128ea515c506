"""Ordering events published after commit.

``order.changed`` tells the public site which listing to revalidate
(``kind`` plus ``scope``); ``scope.flagged`` reports a scope left for manual
reconciliation. Events are logged, kept in a bounded buffer for inspection
and handed to any subscribers registered for their type.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Callable, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)

ORDER_CHANGED = "order.changed"
SCOPE_FLAGGED = "scope.flagged"

Subscriber = Callable[[str, Dict[str, Any]], None]

EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=500)
_SUBSCRIBERS: Dict[str, List[Subscriber]] = {}


def subscribe(event_type: str, handler: Subscriber) -> None:
    _SUBSCRIBERS.setdefault(event_type, []).append(handler)


def unsubscribe(event_type: str, handler: Subscriber) -> None:
    handlers = _SUBSCRIBERS.get(event_type, [])
    if handler in handlers:
        handlers.remove(handler)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info(
        "event.publish type=%s kind=%s scope=%s",
        event_type,
        payload.get("kind"),
        payload.get("scope"),
    )
    EVENT_BUFFER.append({"type": event_type, "payload": payload})
    for handler in list(_SUBSCRIBERS.get(event_type, [])):
        handler(event_type, payload)


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered events, oldest first; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "ORDER_CHANGED",
    "SCOPE_FLAGGED",
    "EVENT_BUFFER",
    "subscribe",
    "unsubscribe",
    "publish",
    "get_buffered_events",
]
