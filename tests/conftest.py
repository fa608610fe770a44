"""Shared fixtures: a connected database migrated to the latest schema."""

from __future__ import annotations

import pytest

from abeam.migrations import MigrationManager, initialize_database
from abeam.storage import Database


@pytest.fixture()
def db_path(tmp_path):
    """Return a database path inside a temporary directory."""
    return str(tmp_path / "test.db")


@pytest.fixture()
def db(db_path):
    """A connected Database with every migration applied."""
    database = Database(db_path)
    initialize_database(database, MigrationManager(database))
    yield database
    database.close()
