"""Tests for abeam.migrations: registry, runner, rollback and the AB-EAM schema."""

from __future__ import annotations

import sqlite3
import uuid

import pytest

from abeam.errors import MigrationError
from abeam.migrations import Migration, MigrationManager, initialize_database, register_migrations
from abeam.migrations.schema import INITIAL_SCHEMA, MIGRATIONS, REGISTRATION_REQUESTS
from abeam.storage import Database

EXPECTED_TABLES = {
    "migrations",
    "users",
    "programs",
    "contact_users",
    "enrollment_requests",
    "enrollment_request_contact_users",
    "clients",
    "client_contact_users",
    "registration_requests",
}

EXPECTED_INDEXES = {
    "idx_users_email",
    "idx_users_role",
    "idx_users_status",
    "idx_programs_creator_id",
    "idx_programs_status",
    "idx_programs_start_date",
    "idx_programs_end_date",
    "idx_enrollment_requests_program_id",
    "idx_enrollment_requests_requested_by",
    "idx_enrollment_requests_status",
    "idx_clients_program_id",
    "idx_clients_enrollment_request_id",
    "idx_clients_is_active",
    "idx_contact_users_email",
    "idx_registration_requests_email",
    "idx_registration_requests_status",
}

LATEST_VERSION = MIGRATIONS[-1].version


@pytest.fixture()
def database(db_path):
    database = Database(db_path)
    database.connect()
    yield database
    database.close()


@pytest.fixture()
def manager(database):
    manager = MigrationManager(database)
    register_migrations(manager)
    return manager


def _table_names(database: Database) -> set[str]:
    rows = database.all(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
    )
    return {row["name"] for row in rows}


def _index_names(database: Database) -> set[str]:
    rows = database.all("SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'")
    return {row["name"] for row in rows}


def _insert_user(database: Database, user_id: str, email: str = "a@example.com") -> None:
    database.run(
        "INSERT INTO users (id, email, first_name, last_name, role) VALUES (?, ?, ?, ?, ?)",
        (user_id, email, "Ada", "Lovelace", "PRODUCT_PEOPLE"),
    )


# --- Registry ---


def test_registry_sorts_by_version():
    manager = MigrationManager(Database(":memory:"))
    manager.add_migration(Migration(3, "c", "SELECT 1;"))
    manager.add_migration(Migration(1, "a", "SELECT 1;"))
    manager.add_migration(Migration(2, "b", "SELECT 1;"))
    assert [m.version for m in manager.migrations] == [1, 2, 3]


def test_registry_performs_no_io():
    database = Database(":memory:")
    manager = MigrationManager(database)
    register_migrations(manager)
    assert not database.is_connected
    assert len(manager.migrations) == len(MIGRATIONS)


def test_duplicate_version_rejected():
    manager = MigrationManager(Database(":memory:"))
    manager.add_migration(Migration(1, "first", "SELECT 1;"))
    with pytest.raises(MigrationError, match="already registered"):
        manager.add_migration(Migration(1, "second", "SELECT 1;"))
    assert [m.name for m in manager.migrations] == ["first"]


@pytest.mark.parametrize("version", [0, -1])
def test_non_positive_version_rejected(version):
    manager = MigrationManager(Database(":memory:"))
    with pytest.raises(MigrationError):
        manager.add_migration(Migration(version, "bad", "SELECT 1;"))


# --- Migrate ---


def test_fresh_database_is_version_zero(database):
    manager = MigrationManager(database)
    assert manager.current_version() == 0
    assert manager.applied_migrations() == []


def test_migrate_applies_all_in_order(manager, database):
    applied = manager.migrate()

    assert [m.version for m in applied] == [m.version for m in MIGRATIONS]
    assert manager.current_version() == LATEST_VERSION
    assert [r.name for r in manager.applied_migrations()] == [m.name for m in MIGRATIONS]
    assert _table_names(database) == EXPECTED_TABLES
    assert _index_names(database) == EXPECTED_INDEXES


def test_migrate_is_idempotent(manager):
    manager.migrate()
    assert manager.migrate() == []
    assert manager.current_version() == LATEST_VERSION
    assert len(manager.applied_migrations()) == len(MIGRATIONS)


def test_status_reports_pending(manager):
    before = manager.status()
    assert before.current_version == 0
    assert before.pending_count == len(MIGRATIONS)
    assert before.total_migrations == len(MIGRATIONS)

    manager.migrate()
    after = manager.status()
    assert after.current_version == LATEST_VERSION
    assert after.pending_count == 0
    assert after.pending_count == len(manager.pending_migrations())


def test_failed_migration_is_rolled_back(manager, database):
    manager.migrate()
    manager.add_migration(
        Migration(
            LATEST_VERSION + 1,
            "broken",
            "CREATE TABLE half_done (id TEXT); INSERT INTO no_such_table VALUES (1);",
        )
    )
    manager.add_migration(Migration(LATEST_VERSION + 2, "after_broken", "CREATE TABLE later (id TEXT);"))

    with pytest.raises(MigrationError, match="broken") as exc_info:
        manager.migrate()

    assert isinstance(exc_info.value.__cause__, sqlite3.Error)
    assert manager.current_version() == LATEST_VERSION
    assert "half_done" not in _table_names(database)
    assert "later" not in _table_names(database)
    assert not database.in_transaction


def test_migrate_resumes_from_current_version(database):
    first = MigrationManager(database)
    first.add_migration(INITIAL_SCHEMA)
    first.migrate()
    assert first.current_version() == 1

    second = MigrationManager(database)
    register_migrations(second)
    applied = second.migrate()
    assert [m.version for m in applied] == [REGISTRATION_REQUESTS.version]


# --- Rollback ---


def test_rollback_reverts_latest(manager, database):
    manager.migrate()

    reverted = manager.rollback()

    assert reverted == REGISTRATION_REQUESTS
    assert manager.current_version() == INITIAL_SCHEMA.version
    assert "registration_requests" not in _table_names(database)
    assert "users" in _table_names(database)


def test_rollback_then_migrate_restores_schema(manager, database):
    manager.migrate()
    manager.rollback()
    manager.rollback()
    assert manager.current_version() == 0
    assert _table_names(database) == {"migrations"}
    assert _index_names(database) == set()

    manager.migrate()
    assert manager.current_version() == LATEST_VERSION
    assert _table_names(database) == EXPECTED_TABLES
    assert _index_names(database) == EXPECTED_INDEXES


def test_rollback_with_nothing_applied_returns_none(manager):
    assert manager.rollback() is None
    assert manager.current_version() == 0


def test_rollback_without_down_script_is_noop(database):
    manager = MigrationManager(database)
    manager.add_migration(Migration(1, "one_way", "CREATE TABLE one_way (id TEXT);"))
    manager.migrate()

    assert manager.rollback() is None
    assert manager.current_version() == 1
    assert "one_way" in _table_names(database)


def test_failed_rollback_keeps_schema_and_record(database):
    manager = MigrationManager(database)
    manager.add_migration(
        Migration(1, "with_t", "CREATE TABLE t (id TEXT);", down="DROP TABLE t; DROP TABLE nope;")
    )
    manager.migrate()

    with pytest.raises(MigrationError, match="with_t") as exc_info:
        manager.rollback()

    assert isinstance(exc_info.value.__cause__, sqlite3.Error)
    assert manager.current_version() == 1
    assert "t" in _table_names(database)
    assert not database.in_transaction


# --- Schema constraints ---


def test_role_check_constraint(manager, database):
    manager.migrate()
    with pytest.raises(sqlite3.IntegrityError):
        database.run(
            "INSERT INTO users (id, email, first_name, last_name, role) VALUES (?, ?, ?, ?, ?)",
            (str(uuid.uuid4()), "x@example.com", "X", "Y", "ADMIN"),
        )


def test_user_email_unique(manager, database):
    manager.migrate()
    _insert_user(database, str(uuid.uuid4()), "dup@example.com")
    with pytest.raises(sqlite3.IntegrityError):
        _insert_user(database, str(uuid.uuid4()), "dup@example.com")


def test_program_requires_existing_creator(manager, database):
    manager.migrate()
    with pytest.raises(sqlite3.IntegrityError):
        database.run(
            "INSERT INTO programs (id, title, creator_id) VALUES (?, ?, ?)",
            (str(uuid.uuid4()), "Orphan", str(uuid.uuid4())),
        )


def test_deleting_user_cascades(manager, database):
    manager.migrate()
    user_id = str(uuid.uuid4())
    program_id = str(uuid.uuid4())
    request_id = str(uuid.uuid4())
    _insert_user(database, user_id)
    database.run(
        "INSERT INTO programs (id, title, creator_id) VALUES (?, ?, ?)",
        (program_id, "Pilot", user_id),
    )
    database.run(
        "INSERT INTO enrollment_requests (id, program_id, client_name, requested_by) "
        "VALUES (?, ?, ?, ?)",
        (request_id, program_id, "Acme", user_id),
    )

    database.run("DELETE FROM users WHERE id = ?", (user_id,))

    assert database.get("SELECT COUNT(*) AS n FROM programs")["n"] == 0
    assert database.get("SELECT COUNT(*) AS n FROM enrollment_requests")["n"] == 0


def test_defaults_applied_by_storage(manager, database):
    manager.migrate()
    user_id = str(uuid.uuid4())
    _insert_user(database, user_id)
    row = database.get("SELECT status, created_at FROM users WHERE id = ?", (user_id,))
    assert row["status"] == "PENDING"
    assert row["created_at"] is not None


# --- Boot-time initializer ---


def test_initialize_database_is_idempotent(tmp_path):
    path = str(tmp_path / "data" / "abeam.db")

    database = Database(path)
    initialize_database(database, MigrationManager(database))
    database.close()

    database = Database(path)
    manager = MigrationManager(database)
    initialize_database(database, manager)
    try:
        assert manager.current_version() == LATEST_VERSION
        assert len(manager.applied_migrations()) == len(MIGRATIONS)
    finally:
        database.close()
