"""Enrollment request and client entities.

An enrollment request asks for a client to be admitted into a program.
Once approved it becomes a Client, whose ``is_active`` flag records
whether the client actually engaged with the program.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from abeam.errors import ValidationError
from abeam.models.base import (
    BaseModel,
    build_partial_row,
    decode_row,
    dump_list,
    enum_value,
    identity,
    load_list,
    parse_datetime,
    to_iso,
    utc_now,
)


class EnrollmentRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


def _validate_account_ids(account_ids: list[str]) -> None:
    for account_id in account_ids:
        BaseModel.validate_required_string(account_id, "account_ids")
        BaseModel.validate_string_length(account_id, "account_ids", 1, 100)


# ---------------------------------------------------------------------------
# EnrollmentRequest
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class CreateEnrollmentRequest:
    program_id: str
    client_name: str
    requested_by: str
    account_ids: tuple[str, ...] = ()
    motivation: str | None = None


@dataclass(frozen=True)
class EnrollmentRequestRow:
    """Column layout of the enrollment_requests table."""

    id: str
    program_id: str
    client_name: str
    account_ids: str | None
    motivation: str | None
    status: str
    requested_by: str
    created_at: str
    updated_at: str


_REQUEST_UPDATABLE_COLUMNS = {
    "client_name": ("client_name", identity),
    "account_ids": ("account_ids", dump_list),
    "motivation": ("motivation", identity),
    "status": ("status", enum_value),
    "updated_at": ("updated_at", to_iso),
}


@dataclass
class EnrollmentRequest(BaseModel):
    id: str
    program_id: str
    client_name: str
    status: EnrollmentRequestStatus
    requested_by: str
    created_at: datetime
    updated_at: datetime
    account_ids: list[str] = field(default_factory=list)
    motivation: str | None = None

    def validate(self) -> None:
        self.validate_uuid(self.id, "id")
        self.validate_uuid(self.program_id, "program_id")
        self.validate_required_string(self.client_name, "client_name")
        self.validate_string_length(self.client_name, "client_name", 1, 200)
        _validate_account_ids(self.account_ids)
        self.validate_optional(
            self.motivation,
            lambda v: self.validate_string_length(v, "motivation", 0, 2000),
        )
        self.validate_enum(self.status, EnrollmentRequestStatus, "status")
        self.validate_uuid(self.requested_by, "requested_by")
        self.validate_date(self.created_at, "created_at")
        self.validate_date(self.updated_at, "updated_at")

    @classmethod
    def create(cls, data: CreateEnrollmentRequest) -> EnrollmentRequest:
        now = utc_now()
        request = cls(
            id=str(uuid.uuid4()),
            program_id=data.program_id,
            client_name=data.client_name,
            status=EnrollmentRequestStatus.PENDING,
            requested_by=data.requested_by,
            created_at=now,
            updated_at=now,
            account_ids=list(data.account_ids),
            motivation=data.motivation,
        )
        request.validate()
        return request

    def _decide(self, status: EnrollmentRequestStatus) -> None:
        if self.status != EnrollmentRequestStatus.PENDING:
            raise ValidationError(
                "status", f"only PENDING requests can be decided, not {enum_value(self.status)}"
            )
        self.status = status
        self.updated_at = utc_now()
        self.validate()

    def approve(self) -> None:
        self._decide(EnrollmentRequestStatus.APPROVED)

    def reject(self) -> None:
        self._decide(EnrollmentRequestStatus.REJECTED)

    def is_pending(self) -> bool:
        return self.status == EnrollmentRequestStatus.PENDING

    def is_approved(self) -> bool:
        return self.status == EnrollmentRequestStatus.APPROVED

    def to_row(self) -> EnrollmentRequestRow:
        return EnrollmentRequestRow(
            id=self.id,
            program_id=self.program_id,
            client_name=self.client_name,
            account_ids=dump_list(self.account_ids),
            motivation=self.motivation,
            status=enum_value(self.status),
            requested_by=self.requested_by,
            created_at=to_iso(self.created_at),
            updated_at=to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> EnrollmentRequest:
        r = decode_row(EnrollmentRequestRow, row)
        return cls(
            id=r.id,
            program_id=r.program_id,
            client_name=r.client_name,
            status=EnrollmentRequestStatus(r.status),
            requested_by=r.requested_by,
            created_at=parse_datetime(r.created_at),
            updated_at=parse_datetime(r.updated_at),
            account_ids=load_list(r.account_ids),
            motivation=r.motivation,
        )

    @staticmethod
    def partial_row(changes: Mapping[str, Any]) -> dict[str, Any]:
        return build_partial_row("EnrollmentRequest", changes, _REQUEST_UPDATABLE_COLUMNS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "client_name": self.client_name,
            "account_ids": list(self.account_ids),
            "motivation": self.motivation,
            "status": enum_value(self.status),
            "requested_by": self.requested_by,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ClientRow:
    """Column layout of the clients table."""

    id: str
    program_id: str
    enrollment_request_id: str
    account_ids: str | None
    is_active: int
    enrolled_at: str
    updated_at: str


_CLIENT_UPDATABLE_COLUMNS = {
    "account_ids": ("account_ids", dump_list),
    "is_active": ("is_active", int),
    "updated_at": ("updated_at", to_iso),
}


@dataclass
class Client(BaseModel):
    id: str
    program_id: str
    enrollment_request_id: str
    enrolled_at: datetime
    updated_at: datetime
    account_ids: list[str] = field(default_factory=list)
    is_active: bool = True

    def validate(self) -> None:
        self.validate_uuid(self.id, "id")
        self.validate_uuid(self.program_id, "program_id")
        self.validate_uuid(self.enrollment_request_id, "enrollment_request_id")
        _validate_account_ids(self.account_ids)
        if not isinstance(self.is_active, bool):
            raise ValidationError("is_active", "is_active must be a boolean")
        self.validate_date(self.enrolled_at, "enrolled_at")
        self.validate_date(self.updated_at, "updated_at")

    @classmethod
    def from_enrollment(cls, request: EnrollmentRequest) -> Client:
        """Build the client admitted by an approved enrollment request."""
        if request.status != EnrollmentRequestStatus.APPROVED:
            raise ValidationError(
                "enrollment_request_id", "a client can only be created from an APPROVED request"
            )
        now = utc_now()
        client = cls(
            id=str(uuid.uuid4()),
            program_id=request.program_id,
            enrollment_request_id=request.id,
            enrolled_at=now,
            updated_at=now,
            account_ids=list(request.account_ids),
        )
        client.validate()
        return client

    def mark_active(self) -> None:
        self.is_active = True
        self.updated_at = utc_now()
        self.validate()

    def mark_inactive(self) -> None:
        self.is_active = False
        self.updated_at = utc_now()
        self.validate()

    def to_row(self) -> ClientRow:
        return ClientRow(
            id=self.id,
            program_id=self.program_id,
            enrollment_request_id=self.enrollment_request_id,
            account_ids=dump_list(self.account_ids),
            is_active=int(self.is_active),
            enrolled_at=to_iso(self.enrolled_at),
            updated_at=to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Client:
        r = decode_row(ClientRow, row)
        return cls(
            id=r.id,
            program_id=r.program_id,
            enrollment_request_id=r.enrollment_request_id,
            enrolled_at=parse_datetime(r.enrolled_at),
            updated_at=parse_datetime(r.updated_at),
            account_ids=load_list(r.account_ids),
            is_active=bool(r.is_active),
        )

    @staticmethod
    def partial_row(changes: Mapping[str, Any]) -> dict[str, Any]:
        return build_partial_row("Client", changes, _CLIENT_UPDATABLE_COLUMNS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "program_id": self.program_id,
            "enrollment_request_id": self.enrollment_request_id,
            "account_ids": list(self.account_ids),
            "is_active": self.is_active,
            "enrolled_at": to_iso(self.enrolled_at),
            "updated_at": to_iso(self.updated_at),
        }
