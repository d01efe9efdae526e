"""Database bootstrap utilities for saved form progress.

Exposes engine construction and the migrations runner that applies SQL files
from the package's migrations/ directory. The DB layer stays minimal and does
not leak ORM models into route handlers.
"""

from formflow.db.base import get_engine
from formflow.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "apply_migrations",
]
