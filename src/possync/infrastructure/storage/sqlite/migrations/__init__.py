"""Database migrations module."""

from possync.infrastructure.storage.sqlite.migrations.migrator import (
    MigrationInfo,
    MigrationResult,
    create_backup,
    discover_migrations,
    get_applied_migrations,
    get_current_version,
    initialize_database,
    restore_backup,
    run_migrations,
)

__all__ = [
    "MigrationInfo",
    "MigrationResult",
    "create_backup",
    "discover_migrations",
    "get_applied_migrations",
    "get_current_version",
    "initialize_database",
    "restore_backup",
    "run_migrations",
]
