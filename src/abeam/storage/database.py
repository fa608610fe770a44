"""SQLite storage handle."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generator, Sequence

from abeam.errors import DatabaseConnectionError, NotConnectedError, TransactionError

logger = logging.getLogger(__name__)

Params = Sequence[Any]


@dataclass(frozen=True)
class RunResult:
    """Outcome of a mutating statement."""

    changes: int
    last_id: int | None


def split_statements(script: str) -> list[str]:
    """Split a SQL script into individual statements.

    Uses sqlite3.complete_statement so semicolons inside string literals
    and comments do not end a statement. Comment-only fragments are dropped.
    """
    statements: list[str] = []
    buffer = ""
    for fragment in script.split(";"):
        buffer += fragment + ";"
        if sqlite3.complete_statement(buffer):
            if _has_sql(buffer):
                statements.append(buffer.strip())
            buffer = ""
    # The final fragment always carries a synthetic trailing ";"
    remainder = buffer[:-1]
    if _has_sql(remainder):
        statements.append(remainder.strip())
    return statements


def _has_sql(text: str) -> bool:
    for line in text.splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("--") and stripped != ";":
            return True
    return False


class Database:
    """A single SQLite connection with explicit transaction control.

    The connection runs in autocommit mode; callers group statements with
    begin/commit/rollback or the transaction() context manager. Nested
    transactions are not supported.
    """

    def __init__(self, database_path: str) -> None:
        self.database_path = database_path
        self._conn: sqlite3.Connection | None = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> None:
        """Open the database with WAL mode and foreign keys enabled.

        Creates the parent directory when missing. Calling connect() on an
        already connected handle does nothing.
        """
        if self._conn is not None:
            return

        conn: sqlite3.Connection | None = None
        try:
            if self.database_path != ":memory:":
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                self.database_path, isolation_level=None, check_same_thread=False
            )
            conn.execute("PRAGMA foreign_keys=ON")
            conn.execute("PRAGMA journal_mode=WAL")
        except (sqlite3.Error, OSError) as exc:
            if conn is not None:
                conn.close()
            raise DatabaseConnectionError(
                f"Cannot open database at {self.database_path}: {exc}"
            ) from exc

        conn.row_factory = sqlite3.Row
        self._conn = conn
        logger.info("Connected to SQLite database: %s", self.database_path)

    def close(self) -> None:
        """Close the connection. Safe to call when already closed."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        logger.info("Database connection closed")

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotConnectedError("Database not connected. Call connect() first.")
        return self._conn

    def run(self, sql: str, params: Params = ()) -> RunResult:
        """Execute a mutating statement and report affected rows and last rowid."""
        cursor = self._connection().execute(sql, params)
        return RunResult(changes=cursor.rowcount, last_id=cursor.lastrowid)

    def get(self, sql: str, params: Params = ()) -> sqlite3.Row | None:
        """Return the first row of a query, or None."""
        return self._connection().execute(sql, params).fetchone()

    def all(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        """Return every row of a query, in order."""
        return self._connection().execute(sql, params).fetchall()

    def exec_script(self, script: str) -> None:
        """Execute a multi-statement script one statement at a time.

        Unlike sqlite3's executescript(), this never issues an implicit
        COMMIT, so the script takes part in an open transaction.
        """
        conn = self._connection()
        for statement in split_statements(script):
            conn.execute(statement)

    @property
    def in_transaction(self) -> bool:
        return self._connection().in_transaction

    def begin_transaction(self) -> None:
        conn = self._connection()
        if conn.in_transaction:
            raise TransactionError("A transaction is already open; nesting is not supported")
        conn.execute("BEGIN")

    def commit_transaction(self) -> None:
        self._connection().execute("COMMIT")

    def rollback_transaction(self) -> None:
        conn = self._connection()
        # SQLite may already have rolled back after certain errors
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    @contextmanager
    def transaction(self) -> Generator[Database, None, None]:
        """Run a block inside one transaction.

        Commits on clean exit, rolls back on exception and re-raises.
        """
        self.begin_transaction()
        try:
            yield self
            self.commit_transaction()
        except BaseException:
            self.rollback_transaction()
            raise
