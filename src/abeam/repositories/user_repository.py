"""User repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from abeam.models.base import enum_value
from abeam.models.user import User, UserRole, UserStatus
from abeam.repositories.base import BaseRepository, Page, PaginationOptions
from abeam.storage.database import Database


@dataclass(frozen=True)
class UserFilters:
    role: UserRole | None = None
    status: UserStatus | None = None
    email: str | None = None
    search: str | None = None  # matches first name, last name or email


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Database) -> None:
        super().__init__(
            db,
            "users",
            from_row=User.from_row,
            to_row=User.to_row,
            partial_row=User.partial_row,
        )

    def find_by_email(self, email: str) -> User | None:
        """Exact, case-sensitive email lookup."""
        return self._find_one("email = ?", (email,))

    def find_with_filters(
        self, filters: UserFilters, options: PaginationOptions | None = None
    ) -> Page[User]:
        conditions: list[str] = []
        params: list[Any] = []

        if filters.role:
            conditions.append("role = ?")
            params.append(enum_value(filters.role))
        if filters.status:
            conditions.append("status = ?")
            params.append(enum_value(filters.status))
        if filters.email:
            conditions.append("email LIKE ?")
            params.append(f"%{filters.email}%")
        if filters.search:
            conditions.append("(first_name LIKE ? OR last_name LIKE ? OR email LIKE ?)")
            term = f"%{filters.search}%"
            params.extend([term, term, term])

        return self._find_page(conditions, params, options)

    def find_active_users(self) -> list[User]:
        return self._find_many("status = ?", (UserStatus.ACTIVE.value,))

    def find_by_role(self, role: UserRole | str) -> list[User]:
        return self._find_many("role = ?", (enum_value(role),))

    def email_exists(self, email: str) -> bool:
        return self._count_where("email = ?", (email,)) > 0
