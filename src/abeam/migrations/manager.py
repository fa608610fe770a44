"""Versioned schema migrations tracked in the ``migrations`` table."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from abeam.errors import MigrationError
from abeam.storage.database import Database

logger = logging.getLogger(__name__)

_MIGRATIONS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS migrations (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    version     INTEGER NOT NULL,
    name        TEXT NOT NULL,
    applied_at  DATETIME DEFAULT CURRENT_TIMESTAMP
)
"""


@dataclass(frozen=True)
class Migration:
    """A versioned schema change-set. ``down`` is optional."""

    version: int
    name: str
    up: str
    down: str | None = None


@dataclass(frozen=True)
class MigrationRecord:
    """One row of the migrations table."""

    version: int
    name: str
    applied_at: str


@dataclass(frozen=True)
class MigrationStatus:
    current_version: int
    pending_count: int
    total_migrations: int


class MigrationManager:
    """Registry of migrations plus the runner that applies them.

    Each migration is applied in its own transaction together with its
    bookkeeping row, so a failure leaves the schema at the last version
    that applied cleanly.
    """

    def __init__(self, database: Database) -> None:
        self.database = database
        self._migrations: list[Migration] = []
        self._initialized = False

    @property
    def migrations(self) -> list[Migration]:
        return list(self._migrations)

    def add_migration(self, migration: Migration) -> None:
        """Register a migration, keeping the registry sorted by version.

        Raises MigrationError for a non-positive or already registered version.
        """
        if migration.version <= 0:
            raise MigrationError(
                f"Migration version must be a positive integer, got {migration.version}"
            )
        if any(m.version == migration.version for m in self._migrations):
            raise MigrationError(
                f"Migration version {migration.version} is already registered"
            )
        self._migrations.append(migration)
        self._migrations.sort(key=lambda m: m.version)

    def initialize_migrations_table(self) -> None:
        """Create the migrations table on first use."""
        if self._initialized:
            return
        self.database.run(_MIGRATIONS_TABLE_SQL)
        self._initialized = True

    def current_version(self) -> int:
        """Return the highest applied version, or 0 when none are applied."""
        self.initialize_migrations_table()
        row = self.database.get("SELECT MAX(version) AS current_version FROM migrations")
        if row is None or row["current_version"] is None:
            return 0
        return row["current_version"]

    def pending_migrations(self) -> list[Migration]:
        current = self.current_version()
        return [m for m in self._migrations if m.version > current]

    def applied_migrations(self) -> list[MigrationRecord]:
        self.initialize_migrations_table()
        rows = self.database.all(
            "SELECT version, name, applied_at FROM migrations ORDER BY version"
        )
        return [
            MigrationRecord(version=r["version"], name=r["name"], applied_at=r["applied_at"])
            for r in rows
        ]

    def migrate(self) -> list[Migration]:
        """Apply every pending migration in ascending order.

        Stops at the first failure: that migration is rolled back, later ones
        are not attempted, and MigrationError is raised. Returns the
        migrations that were applied.
        """
        pending = self.pending_migrations()
        if not pending:
            logger.info("No pending migrations")
            return []

        logger.info("Applying %d migrations...", len(pending))
        for migration in pending:
            self._apply(migration)
        logger.info("All migrations applied successfully")
        return pending

    def _apply(self, migration: Migration) -> None:
        logger.info("Applying migration %d: %s", migration.version, migration.name)
        try:
            with self.database.transaction():
                self.database.exec_script(migration.up)
                self.database.run(
                    "INSERT INTO migrations (version, name) VALUES (?, ?)",
                    (migration.version, migration.name),
                )
        except sqlite3.Error as exc:
            logger.error("Failed to apply migration %d: %s", migration.version, exc)
            raise MigrationError(
                f"Migration {migration.version} ({migration.name}) failed: {exc}"
            ) from exc
        logger.info("Migration %d applied successfully", migration.version)

    def rollback(self) -> Migration | None:
        """Revert the most recently applied migration.

        Does nothing and returns None when no registered migration matches the
        current version or it has no down script.
        """
        current = self.current_version()
        last = next((m for m in self._migrations if m.version == current), None)

        if last is None or not last.down:
            logger.info("No migration to rollback or rollback not supported")
            return None

        logger.info("Rolling back migration %d: %s", last.version, last.name)
        try:
            with self.database.transaction():
                self.database.exec_script(last.down)
                self.database.run("DELETE FROM migrations WHERE version = ?", (last.version,))
        except sqlite3.Error as exc:
            logger.error("Failed to rollback migration %d: %s", last.version, exc)
            raise MigrationError(
                f"Rollback of migration {last.version} ({last.name}) failed: {exc}"
            ) from exc
        logger.info("Migration %d rolled back successfully", last.version)
        return last

    def status(self) -> MigrationStatus:
        current = self.current_version()
        pending = [m for m in self._migrations if m.version > current]
        return MigrationStatus(
            current_version=current,
            pending_count=len(pending),
            total_migrations=len(self._migrations),
        )
