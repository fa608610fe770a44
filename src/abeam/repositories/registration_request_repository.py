"""Registration request repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from abeam.models.base import enum_value
from abeam.models.registration_request import RegistrationRequest, RegistrationRequestStatus
from abeam.models.user import UserRole
from abeam.repositories.base import BaseRepository, Page, PaginationOptions
from abeam.storage.database import Database


@dataclass(frozen=True)
class RegistrationRequestFilters:
    status: RegistrationRequestStatus | None = None
    requested_role: UserRole | None = None
    email: str | None = None
    search: str | None = None


class RegistrationRequestRepository(BaseRepository[RegistrationRequest]):
    def __init__(self, db: Database) -> None:
        super().__init__(
            db,
            "registration_requests",
            from_row=RegistrationRequest.from_row,
            to_row=RegistrationRequest.to_row,
            partial_row=RegistrationRequest.partial_row,
        )

    def find_by_email(self, email: str) -> RegistrationRequest | None:
        return self._find_one("email = ?", (email,))

    def find_with_filters(
        self, filters: RegistrationRequestFilters, options: PaginationOptions | None = None
    ) -> Page[RegistrationRequest]:
        conditions: list[str] = []
        params: list[Any] = []

        if filters.status:
            conditions.append("status = ?")
            params.append(enum_value(filters.status))
        if filters.requested_role:
            conditions.append("requested_role = ?")
            params.append(enum_value(filters.requested_role))
        if filters.email:
            conditions.append("email LIKE ?")
            params.append(f"%{filters.email}%")
        if filters.search:
            conditions.append("(first_name LIKE ? OR last_name LIKE ? OR email LIKE ?)")
            term = f"%{filters.search}%"
            params.extend([term, term, term])

        return self._find_page(conditions, params, options)

    def find_pending_requests(self) -> list[RegistrationRequest]:
        """Pending requests, oldest first, in review order."""
        return self._find_many(
            "status = ?", (RegistrationRequestStatus.PENDING.value,), order_by="created_at ASC"
        )

    def find_approved_requests(self) -> list[RegistrationRequest]:
        return self._find_many(
            "status = ?", (RegistrationRequestStatus.APPROVED.value,), order_by="approved_at DESC"
        )

    def find_rejected_requests(self) -> list[RegistrationRequest]:
        return self._find_many(
            "status = ?", (RegistrationRequestStatus.REJECTED.value,), order_by="approved_at DESC"
        )

    def find_by_requested_role(self, role: UserRole | str) -> list[RegistrationRequest]:
        return self._find_many("requested_role = ?", (enum_value(role),))

    def has_pending_request(self, email: str) -> bool:
        return (
            self._count_where(
                "email = ? AND status = ?", (email, RegistrationRequestStatus.PENDING.value)
            )
            > 0
        )

    def email_exists(self, email: str) -> bool:
        return self._count_where("email = ?", (email,)) > 0
