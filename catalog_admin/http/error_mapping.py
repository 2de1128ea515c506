"""Central error mapping for ordering failures.

Single source of truth for mapping ``OrderingError`` codes to problem+json
titles and HTTP statuses. Route modules must not hardcode statuses for these
failures; they raise the domain error and the global handler looks it up here.
"""

from __future__ import annotations

ORDERING_ERROR_MAP = {
    "ORDER_NOT_FOUND": {"status": 404, "title": "Not Found"},
    "ORDER_OUT_OF_RANGE": {"status": 422, "title": "Position Out Of Range"},
    "ORDER_INCOMPLETE_REORDER": {"status": 409, "title": "Incomplete Reorder"},
    "ORDER_INVALID_FIELDS": {"status": 422, "title": "Invalid Fields"},
    "ORDER_STORE_FAILURE": {"status": 503, "title": "Order Not Saved"},
}

# Fallback for OrderingError subclasses without an entry above
DEFAULT_ORDERING_ERROR = {"status": 400, "title": "Ordering Error"}

FORBIDDEN = {"code": "ADMIN_ROLE_REQUIRED", "status": 403, "title": "Forbidden"}

__all__ = ["ORDERING_ERROR_MAP", "DEFAULT_ORDERING_ERROR", "FORBIDDEN"]
