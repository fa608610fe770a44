"""Schema migrations: registry, runner and the AB-EAM schema."""

from abeam.migrations.manager import Migration, MigrationManager, MigrationRecord, MigrationStatus
from abeam.migrations.schema import initialize_database, register_migrations

__all__ = [
    "Migration",
    "MigrationManager",
    "MigrationRecord",
    "MigrationStatus",
    "initialize_database",
    "register_migrations",
]
