"""Tagged failures raised by the ordered-collection engine.

Each error carries a stable ``code`` used by the HTTP layer to pick the
problem+json status (see ``catalog_admin.http.error_mapping``). Errors raised by
the sequencer happen before any I/O; ``StoreFailure`` is only raised once a
transaction has been opened and is always accompanied by a rollback.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


class OrderingError(Exception):
    """Base class for ordering failures surfaced to callers."""

    code = "ORDER_ERROR"

    def __init__(self, detail: str, **context: Any) -> None:
        super().__init__(detail)
        self.detail = detail
        self.context: Dict[str, Any] = dict(context)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "detail": self.detail, **self.context}


class NotFound(OrderingError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, kind: str, entity_id: str, scope: Optional[str] = None) -> None:
        detail = f"{kind} {entity_id} not found"
        if scope is not None:
            detail = f"{detail} in scope {scope}"
        super().__init__(detail, kind=kind, id=entity_id, scope=scope)


class OutOfRange(OrderingError):
    code = "ORDER_OUT_OF_RANGE"

    def __init__(self, position: int, lower: int, upper: int) -> None:
        super().__init__(
            f"position {position} outside [{lower}, {upper}]",
            position=position,
            lower=lower,
            upper=upper,
        )


class IncompleteReorder(OrderingError):
    """The reorder list does not match the scope membership exactly."""

    code = "ORDER_INCOMPLETE_REORDER"

    def __init__(
        self,
        *,
        missing: Iterable[str] = (),
        unexpected: Iterable[str] = (),
        duplicates: Iterable[str] = (),
        expected_count: int = 0,
        received_count: int = 0,
    ) -> None:
        missing_l = sorted(set(missing))
        unexpected_l = sorted(set(unexpected))
        duplicates_l = sorted(set(duplicates))
        super().__init__(
            "reorder list must contain every member of the scope exactly once",
            missing=missing_l,
            unexpected=unexpected_l,
            duplicates=duplicates_l,
            expected_count=expected_count,
            received_count=received_count,
        )


class InvalidFields(OrderingError):
    code = "ORDER_INVALID_FIELDS"

    def __init__(self, kind: str, *, unknown: Iterable[str] = (), missing: Iterable[str] = ()) -> None:
        unknown_l = sorted(set(unknown))
        missing_l = sorted(set(missing))
        parts = []
        if unknown_l:
            parts.append(f"unknown fields {unknown_l}")
        if missing_l:
            parts.append(f"missing fields {missing_l}")
        super().__init__(
            f"invalid {kind} payload: {'; '.join(parts) or 'no fields'}",
            kind=kind,
            unknown=unknown_l,
            missing=missing_l,
        )


class StoreFailure(OrderingError):
    """A write failed mid-operation; the transaction was rolled back."""

    code = "ORDER_STORE_FAILURE"

    def __init__(self, detail: str, *, scope: Optional[str] = None, flagged: bool = False) -> None:
        super().__init__(detail, scope=scope, flagged=flagged, reload=True)


__all__ = [
    "OrderingError",
    "NotFound",
    "OutOfRange",
    "IncompleteReorder",
    "InvalidFields",
    "StoreFailure",
]
