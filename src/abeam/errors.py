"""Exception types shared across the storage, migration and model layers."""

from __future__ import annotations


class DatabaseError(Exception):
    """Base class for storage handle errors."""


class DatabaseConnectionError(DatabaseError):
    """Raised when the database file cannot be opened or created."""


class NotConnectedError(DatabaseError):
    """Raised when an operation is attempted before connect()."""


class TransactionError(DatabaseError):
    """Raised on an attempt to nest transactions."""


class MigrationError(Exception):
    """Raised when a migration cannot be registered, applied or rolled back."""


class ValidationError(ValueError):
    """Raised when an entity violates a shape or business rule."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class RowMappingError(ValueError):
    """Raised when a database row does not match an entity's row type."""
