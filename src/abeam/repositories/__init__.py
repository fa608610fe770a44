"""Repositories mapping entities to SQLite rows."""

from abeam.repositories.base import (
    BaseRepository,
    Page,
    Pagination,
    PaginationOptions,
    Repository,
)
from abeam.repositories.contact_user_repository import ContactUserRepository
from abeam.repositories.enrollment_repository import ClientRepository, EnrollmentRequestRepository
from abeam.repositories.program_repository import ProgramRepository
from abeam.repositories.registration_request_repository import (
    RegistrationRequestFilters,
    RegistrationRequestRepository,
)
from abeam.repositories.user_repository import UserFilters, UserRepository

__all__ = [
    "BaseRepository",
    "ClientRepository",
    "ContactUserRepository",
    "EnrollmentRequestRepository",
    "Page",
    "Pagination",
    "PaginationOptions",
    "ProgramRepository",
    "RegistrationRequestFilters",
    "RegistrationRequestRepository",
    "Repository",
    "UserFilters",
    "UserRepository",
]
