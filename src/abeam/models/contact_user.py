"""Contact user entity, shared by enrollment requests and clients."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from abeam.models.base import (
    BaseModel,
    build_partial_row,
    decode_row,
    identity,
    parse_datetime,
    to_iso,
    utc_now,
)


@dataclass(frozen=True)
class ContactUserRow:
    """Column layout of the contact_users table."""

    id: str
    first_name: str
    last_name: str
    email: str
    created_at: str


_UPDATABLE_COLUMNS = {
    "first_name": ("first_name", identity),
    "last_name": ("last_name", identity),
    "email": ("email", identity),
}


@dataclass
class ContactUser(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    created_at: datetime

    def validate(self) -> None:
        self.validate_uuid(self.id, "id")
        self.validate_required_string(self.first_name, "first_name")
        self.validate_string_length(self.first_name, "first_name", 1, 100)
        self.validate_required_string(self.last_name, "last_name")
        self.validate_string_length(self.last_name, "last_name", 1, 100)
        self.validate_email(self.email, "email")
        self.validate_date(self.created_at, "created_at")

    @classmethod
    def create(cls, first_name: str, last_name: str, email: str) -> ContactUser:
        contact = cls(
            id=str(uuid.uuid4()),
            first_name=first_name,
            last_name=last_name,
            email=email,
            created_at=utc_now(),
        )
        contact.validate()
        return contact

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_row(self) -> ContactUserRow:
        return ContactUserRow(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            created_at=to_iso(self.created_at),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ContactUser:
        r = decode_row(ContactUserRow, row)
        return cls(
            id=r.id,
            first_name=r.first_name,
            last_name=r.last_name,
            email=r.email,
            created_at=parse_datetime(r.created_at),
        )

    @staticmethod
    def partial_row(changes: Mapping[str, Any]) -> dict[str, Any]:
        return build_partial_row("ContactUser", changes, _UPDATABLE_COLUMNS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "created_at": to_iso(self.created_at),
        }
