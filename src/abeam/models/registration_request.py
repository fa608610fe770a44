"""Registration request entity: the approval workflow for new accounts."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from abeam.errors import ValidationError
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
from abeam.models.user import UserRole


class RegistrationRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class CreateRegistrationRequest:
    email: str
    first_name: str
    last_name: str
    requested_role: UserRole


@dataclass(frozen=True)
class ApprovalDecision:
    """Outcome of reviewing a registration request.

    ``assigned_role`` is carried for the service layer that creates the
    user; the request itself keeps the role that was asked for.
    """

    approved: bool
    assigned_role: UserRole | None = None
    rejection_reason: str | None = None


@dataclass(frozen=True)
class RegistrationRequestRow:
    """Column layout of the registration_requests table."""

    id: str
    email: str
    first_name: str
    last_name: str
    requested_role: str
    status: str
    approved_by: str | None
    approved_at: str | None
    rejection_reason: str | None
    created_at: str
    updated_at: str


_UPDATABLE_COLUMNS = {
    "email": ("email", identity),
    "first_name": ("first_name", identity),
    "last_name": ("last_name", identity),
    "requested_role": ("requested_role", enum_value),
    "status": ("status", enum_value),
    "approved_by": ("approved_by", identity),
    "approved_at": ("approved_at", to_iso),
    "rejection_reason": ("rejection_reason", identity),
    "updated_at": ("updated_at", to_iso),
}


@dataclass
class RegistrationRequest(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    requested_role: UserRole
    status: RegistrationRequestStatus
    created_at: datetime
    updated_at: datetime
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None

    def validate(self) -> None:
        self.validate_uuid(self.id, "id")
        self.validate_email(self.email, "email")
        self.validate_required_string(self.first_name, "first_name")
        self.validate_string_length(self.first_name, "first_name", 1, 100)
        self.validate_required_string(self.last_name, "last_name")
        self.validate_string_length(self.last_name, "last_name", 1, 100)
        self.validate_enum(self.requested_role, UserRole, "requested_role")
        self.validate_enum(self.status, RegistrationRequestStatus, "status")
        self.validate_date(self.created_at, "created_at")
        self.validate_date(self.updated_at, "updated_at")

        self.validate_optional(self.approved_by, lambda v: self.validate_uuid(v, "approved_by"))
        self.validate_optional(self.approved_at, lambda v: self.validate_date(v, "approved_at"))
        self.validate_optional(self.rejection_reason, self._validate_rejection_reason)

        if self.status == RegistrationRequestStatus.APPROVED and not self.approved_by:
            raise ValidationError("approved_by", "approved_by is required when status is APPROVED")
        if self.status == RegistrationRequestStatus.REJECTED and not self.rejection_reason:
            raise ValidationError(
                "rejection_reason", "rejection_reason is required when status is REJECTED"
            )
        if self.status == RegistrationRequestStatus.REJECTED and not self.approved_by:
            raise ValidationError("approved_by", "approved_by is required when status is REJECTED")

    def _validate_rejection_reason(self, value: str) -> None:
        self.validate_required_string(value, "rejection_reason")
        self.validate_string_length(value, "rejection_reason", 1, 500)

    @classmethod
    def create(cls, data: CreateRegistrationRequest) -> RegistrationRequest:
        now = utc_now()
        request = cls(
            id=str(uuid.uuid4()),
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            requested_role=data.requested_role,
            status=RegistrationRequestStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        request.validate()
        return request

    def process(self, decision: ApprovalDecision, approved_by: str) -> None:
        """Approve or reject the request on behalf of ``approved_by``.

        Re-processing is not blocked here; callers check can_be_processed().
        """
        now = utc_now()
        self.approved_by = approved_by
        self.approved_at = now
        self.updated_at = now

        if decision.approved:
            self.status = RegistrationRequestStatus.APPROVED
            self.rejection_reason = None
        else:
            self.status = RegistrationRequestStatus.REJECTED
            self.rejection_reason = decision.rejection_reason

        self.validate()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def is_pending(self) -> bool:
        return self.status == RegistrationRequestStatus.PENDING

    def is_approved(self) -> bool:
        return self.status == RegistrationRequestStatus.APPROVED

    def is_rejected(self) -> bool:
        return self.status == RegistrationRequestStatus.REJECTED

    def can_be_processed(self) -> bool:
        return self.status == RegistrationRequestStatus.PENDING

    # --- Mapping ---

    def to_row(self) -> RegistrationRequestRow:
        return RegistrationRequestRow(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            requested_role=enum_value(self.requested_role),
            status=enum_value(self.status),
            approved_by=self.approved_by,
            approved_at=to_iso(self.approved_at),
            rejection_reason=self.rejection_reason,
            created_at=to_iso(self.created_at),
            updated_at=to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> RegistrationRequest:
        r = decode_row(RegistrationRequestRow, row)
        return cls(
            id=r.id,
            email=r.email,
            first_name=r.first_name,
            last_name=r.last_name,
            requested_role=UserRole(r.requested_role),
            status=RegistrationRequestStatus(r.status),
            created_at=parse_datetime(r.created_at),
            updated_at=parse_datetime(r.updated_at),
            approved_by=r.approved_by,
            approved_at=parse_datetime(r.approved_at),
            rejection_reason=r.rejection_reason,
        )

    @staticmethod
    def partial_row(changes: Mapping[str, Any]) -> dict[str, Any]:
        return build_partial_row("RegistrationRequest", changes, _UPDATABLE_COLUMNS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "requested_role": enum_value(self.requested_role),
            "status": enum_value(self.status),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
            "approved_by": self.approved_by,
            "approved_at": to_iso(self.approved_at),
            "rejection_reason": self.rejection_reason,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RegistrationRequest:
        return cls(
            id=data["id"],
            email=data["email"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            requested_role=UserRole(data["requested_role"]),
            status=RegistrationRequestStatus(data["status"]),
            created_at=parse_datetime(data["created_at"]),
            updated_at=parse_datetime(data["updated_at"]),
            approved_by=data.get("approved_by"),
            approved_at=parse_datetime(data.get("approved_at")),
            rejection_reason=data.get("rejection_reason"),
        )
