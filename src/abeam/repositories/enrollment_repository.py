"""Enrollment request and client repositories, including contact user links."""

from __future__ import annotations

from abeam.models.contact_user import ContactUser
from abeam.models.enrollment import Client, EnrollmentRequest, EnrollmentRequestStatus
from abeam.repositories.base import BaseRepository
from abeam.storage.database import Database


class EnrollmentRequestRepository(BaseRepository[EnrollmentRequest]):
    def __init__(self, db: Database) -> None:
        super().__init__(
            db,
            "enrollment_requests",
            from_row=EnrollmentRequest.from_row,
            to_row=EnrollmentRequest.to_row,
            partial_row=EnrollmentRequest.partial_row,
        )

    def find_by_program(self, program_id: str) -> list[EnrollmentRequest]:
        return self._find_many("program_id = ?", (program_id,))

    def find_by_requester(self, user_id: str) -> list[EnrollmentRequest]:
        return self._find_many("requested_by = ?", (user_id,))

    def find_pending_for_program(self, program_id: str) -> list[EnrollmentRequest]:
        return self._find_many(
            "program_id = ? AND status = ?",
            (program_id, EnrollmentRequestStatus.PENDING.value),
            order_by="created_at ASC",
        )

    def add_contact_user(self, request_id: str, contact_user_id: str) -> bool:
        """Link a contact user. Returns False if the link already existed."""
        result = self.db.run(
            "INSERT OR IGNORE INTO enrollment_request_contact_users "
            "(enrollment_request_id, contact_user_id) VALUES (?, ?)",
            (request_id, contact_user_id),
        )
        return result.changes > 0

    def contact_users_for(self, request_id: str) -> list[ContactUser]:
        rows = self.db.all(
            "SELECT c.* FROM contact_users c "
            "JOIN enrollment_request_contact_users l ON l.contact_user_id = c.id "
            "WHERE l.enrollment_request_id = ? ORDER BY c.last_name, c.first_name",
            (request_id,),
        )
        return [ContactUser.from_row(r) for r in rows]


class ClientRepository(BaseRepository[Client]):
    def __init__(self, db: Database) -> None:
        super().__init__(
            db,
            "clients",
            from_row=Client.from_row,
            to_row=Client.to_row,
            partial_row=Client.partial_row,
            order_by="enrolled_at DESC",
        )

    def find_by_program(self, program_id: str) -> list[Client]:
        return self._find_many("program_id = ?", (program_id,))

    def find_active_by_program(self, program_id: str) -> list[Client]:
        return self._find_many("program_id = ? AND is_active = 1", (program_id,))

    def find_by_enrollment_request(self, request_id: str) -> Client | None:
        return self._find_one("enrollment_request_id = ?", (request_id,))

    def add_contact_user(self, client_id: str, contact_user_id: str) -> bool:
        result = self.db.run(
            "INSERT OR IGNORE INTO client_contact_users "
            "(client_id, contact_user_id) VALUES (?, ?)",
            (client_id, contact_user_id),
        )
        return result.changes > 0

    def contact_users_for(self, client_id: str) -> list[ContactUser]:
        rows = self.db.all(
            "SELECT c.* FROM contact_users c "
            "JOIN client_contact_users l ON l.contact_user_id = c.id "
            "WHERE l.client_id = ? ORDER BY c.last_name, c.first_name",
            (client_id,),
        )
        return [ContactUser.from_row(r) for r in rows]
