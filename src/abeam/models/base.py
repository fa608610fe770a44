"""Shared validation helpers and row mapping for domain entities."""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from dataclasses import fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, TypeVar

from abeam.errors import RowMappingError, ValidationError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

RowT = TypeVar("RowT")
V = TypeVar("V")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an ISO 8601 or SQLite ``CURRENT_TIMESTAMP`` string.

    Naive values are taken to be UTC, which is what SQLite writes.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def dump_list(values: list[str]) -> str:
    return json.dumps(list(values))


def load_list(value: str | None) -> list[str]:
    if not value:
        return []
    return list(json.loads(value))


def decode_row(row_type: type[RowT], row: Mapping[str, Any]) -> RowT:
    """Build a typed row from a database row, rejecting missing or unknown columns."""
    expected = {f.name for f in fields(row_type)}
    present = set(row.keys())
    missing = expected - present
    unknown = present - expected
    if missing or unknown:
        problems = []
        if missing:
            problems.append(f"missing columns: {', '.join(sorted(missing))}")
        if unknown:
            problems.append(f"unknown columns: {', '.join(sorted(unknown))}")
        raise RowMappingError(f"Cannot map row to {row_type.__name__}; {'; '.join(problems)}")
    return row_type(**{name: row[name] for name in expected})


def build_partial_row(
    entity_name: str,
    changes: Mapping[str, Any],
    columns: Mapping[str, tuple[str, Callable[[Any], Any]]],
) -> dict[str, Any]:
    """Translate entity field changes to column values.

    ``columns`` maps each updatable field to its column name and encoder.
    Fields outside that mapping are rejected.
    """
    unknown = set(changes) - set(columns)
    if unknown:
        raise RowMappingError(
            f"Cannot update {entity_name} fields: {', '.join(sorted(unknown))}"
        )
    row: dict[str, Any] = {}
    for field_name, value in changes.items():
        column, encode = columns[field_name]
        row[column] = encode(value) if value is not None else None
    return row


def enum_value(value: Enum | str) -> str:
    return value.value if isinstance(value, Enum) else value


def identity(value: V) -> V:
    return value


class BaseModel(ABC):
    """Base class for self-validating entities.

    Subclasses implement validate() by composing the checks below. Every
    check raises ValidationError naming the field; nothing is coerced.
    """

    @abstractmethod
    def validate(self) -> None:
        """Raise ValidationError if the entity is not valid."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

    @staticmethod
    def is_valid_email(email: str) -> bool:
        return bool(_EMAIL_RE.match(email))

    @staticmethod
    def validate_email(value: Any, field_name: str) -> None:
        BaseModel.validate_required_string(value, field_name)
        if not BaseModel.is_valid_email(value):
            raise ValidationError(field_name, f"{field_name} must be a valid email address")
        BaseModel.validate_string_length(value, field_name, 3, 255)

    @staticmethod
    def validate_required_string(value: Any, field_name: str) -> None:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(
                field_name, f"{field_name} is required and must be a non-empty string"
            )

    @staticmethod
    def validate_string_length(
        value: str, field_name: str, min_length: int, max_length: int
    ) -> None:
        if len(value) < min_length or len(value) > max_length:
            raise ValidationError(
                field_name,
                f"{field_name} must be between {min_length} and {max_length} characters",
            )

    @staticmethod
    def validate_enum(value: Any, enum_cls: type[Enum], field_name: str) -> None:
        valid = [member.value for member in enum_cls]
        if enum_value(value) not in valid:
            raise ValidationError(field_name, f"{field_name} must be one of: {', '.join(valid)}")

    @staticmethod
    def validate_uuid(value: Any, field_name: str) -> None:
        if not isinstance(value, str) or not _UUID_RE.match(value):
            raise ValidationError(field_name, f"{field_name} must be a valid UUID")

    @staticmethod
    def validate_date(value: Any, field_name: str) -> None:
        if isinstance(value, datetime):
            return
        try:
            datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(field_name, f"{field_name} must be a valid date") from None

    @staticmethod
    def validate_datetime(value: Any, field_name: str) -> None:
        """Require a datetime object; ISO strings must be parsed first."""
        if not isinstance(value, datetime):
            raise ValidationError(field_name, f"{field_name} must be a datetime")

    @staticmethod
    def coerce_datetime(value: Any, field_name: str) -> datetime | None:
        """Turn an ISO 8601 string or datetime into an aware datetime.

        Naive values are taken to be UTC. None passes through.
        """
        if value is None:
            return None
        if not isinstance(value, (str, datetime)):
            raise ValidationError(field_name, f"{field_name} must be a valid date")
        try:
            return parse_datetime(value)
        except ValueError:
            raise ValidationError(field_name, f"{field_name} must be a valid date") from None

    @staticmethod
    def validate_optional(value: V | None, validator: Callable[[V], None]) -> None:
        if value is not None:
            validator(value)

    @staticmethod
    def validate_uuid_list(values: Iterable[Any], field_name: str) -> None:
        for value in values:
            BaseModel.validate_uuid(value, field_name)
