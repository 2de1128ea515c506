"""Process-local state holders for the ordering engine.

Defines the single source of truth for scopes flagged for manual
reconciliation. A scope lands here when a bulk reorder fails while its rows
hold quarantine placeholders; the integrity endpoint lists the entries and a
successful repair clears them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Tuple

# (kind, scope label) -> {"kind", "scope", "reason", "flagged_at"}
FLAGGED_SCOPES: Dict[Tuple[str, str], Dict[str, str]] = {}
_FLAG_LOCK = Lock()


def flag_scope(kind: str, scope: str, reason: str) -> Dict[str, str]:
    entry = {
        "kind": kind,
        "scope": scope,
        "reason": reason,
        "flagged_at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
    }
    with _FLAG_LOCK:
        FLAGGED_SCOPES[(kind, scope)] = entry
    return entry


def clear_scope_flag(kind: str, scope: str) -> bool:
    with _FLAG_LOCK:
        return FLAGGED_SCOPES.pop((kind, scope), None) is not None


def is_flagged(kind: str, scope: str) -> bool:
    return (kind, scope) in FLAGGED_SCOPES


def list_flagged_scopes() -> List[Dict[str, str]]:
    with _FLAG_LOCK:
        return [dict(v) for _, v in sorted(FLAGGED_SCOPES.items())]


__all__ = [
    "FLAGGED_SCOPES",
    "flag_scope",
    "clear_scope_flag",
    "is_flagged",
    "list_flagged_scopes",
]
