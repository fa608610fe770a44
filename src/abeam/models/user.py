"""User entity."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from abeam.models.base import (
    BaseModel,
    build_partial_row,
    decode_row,
    enum_value,
    identity,
    parse_datetime,
    to_iso,
    utc_now,
)


class UserRole(str, Enum):
    PRODUCT_PEOPLE = "PRODUCT_PEOPLE"
    CLIENT_MANAGER = "CLIENT_MANAGER"


class UserStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


@dataclass(frozen=True)
class CreateUserRequest:
    email: str
    first_name: str
    last_name: str
    role: UserRole


@dataclass(frozen=True)
class UpdateUserRequest:
    """Fields left as None are not changed."""

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role: UserRole | None = None
    status: UserStatus | None = None


@dataclass(frozen=True)
class UserRow:
    """Column layout of the users table."""

    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    status: str
    created_at: str
    updated_at: str


_UPDATABLE_COLUMNS = {
    "email": ("email", identity),
    "first_name": ("first_name", identity),
    "last_name": ("last_name", identity),
    "role": ("role", enum_value),
    "status": ("status", enum_value),
    "updated_at": ("updated_at", to_iso),
}


@dataclass
class User(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    status: UserStatus
    created_at: datetime
    updated_at: datetime

    def validate(self) -> None:
        self.validate_uuid(self.id, "id")
        self.validate_email(self.email, "email")
        self.validate_required_string(self.first_name, "first_name")
        self.validate_string_length(self.first_name, "first_name", 1, 100)
        self.validate_required_string(self.last_name, "last_name")
        self.validate_string_length(self.last_name, "last_name", 1, 100)
        self.validate_enum(self.role, UserRole, "role")
        self.validate_enum(self.status, UserStatus, "status")
        self.validate_date(self.created_at, "created_at")
        self.validate_date(self.updated_at, "updated_at")

    @classmethod
    def create(cls, data: CreateUserRequest) -> User:
        """Build a new PENDING user with a fresh id and validate it."""
        now = utc_now()
        user = cls(
            id=str(uuid.uuid4()),
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role,
            status=UserStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        user.validate()
        return user

    def update(self, data: UpdateUserRequest) -> None:
        if data.email is not None:
            self.email = data.email
        if data.first_name is not None:
            self.first_name = data.first_name
        if data.last_name is not None:
            self.last_name = data.last_name
        if data.role is not None:
            self.role = data.role
        if data.status is not None:
            self.status = data.status
        self.updated_at = utc_now()
        self.validate()

    def activate(self) -> None:
        self.status = UserStatus.ACTIVE
        self.updated_at = utc_now()
        self.validate()

    def deactivate(self) -> None:
        self.status = UserStatus.INACTIVE
        self.updated_at = utc_now()
        self.validate()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def is_product_people(self) -> bool:
        return self.role == UserRole.PRODUCT_PEOPLE

    def is_client_manager(self) -> bool:
        return self.role == UserRole.CLIENT_MANAGER

    # --- Mapping ---

    def to_row(self) -> UserRow:
        return UserRow(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            role=enum_value(self.role),
            status=enum_value(self.status),
            created_at=to_iso(self.created_at),
            updated_at=to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> User:
        r = decode_row(UserRow, row)
        return cls(
            id=r.id,
            email=r.email,
            first_name=r.first_name,
            last_name=r.last_name,
            role=UserRole(r.role),
            status=UserStatus(r.status),
            created_at=parse_datetime(r.created_at),
            updated_at=parse_datetime(r.updated_at),
        )

    @staticmethod
    def partial_row(changes: Mapping[str, Any]) -> dict[str, Any]:
        return build_partial_row("User", changes, _UPDATABLE_COLUMNS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": enum_value(self.role),
            "status": enum_value(self.status),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> User:
        return cls(
            id=data["id"],
            email=data["email"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            role=UserRole(data["role"]),
            status=UserStatus(data["status"]),
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
        )
