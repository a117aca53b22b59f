"""SQLite storage implementations."""

from possync.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    SynchronousMode,
)
from possync.infrastructure.storage.sqlite.entity_repository import SQLiteEntityRepository
from possync.infrastructure.storage.sqlite.migrations import initialize_database, run_migrations
from possync.infrastructure.storage.sqlite.mutation_repository import SQLiteMutationRepository

__all__ = [
    # Connection
    "ConnectionPool",
    "SynchronousMode",
    # Migrations
    "initialize_database",
    "run_migrations",
    # Repositories
    "SQLiteEntityRepository",
    "SQLiteMutationRepository",
]
