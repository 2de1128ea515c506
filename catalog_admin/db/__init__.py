"""Database bootstrap utilities for the catalog admin service.

This module exposes convenience imports for engine construction, the
transaction helper used by the ordering engine, and the SQL migrations runner
that applies files from the dialect's migrations directory.
"""

from catalog_admin.db.base import get_engine, transaction
from catalog_admin.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "transaction",
    "apply_migrations",
]
