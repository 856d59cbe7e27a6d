"""Override store database layer."""

from personae.db.connection import Database
from personae.db.migrations import MIGRATIONS, run_migrations
from personae.db.repository import OverrideStore
from personae.db.schema import initialize

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "OverrideStore",
]
