"""Domain entities."""

from abeam.models.base import BaseModel
from abeam.models.contact_user import ContactUser
from abeam.models.enrollment import (
    Client,
    CreateEnrollmentRequest,
    EnrollmentRequest,
    EnrollmentRequestStatus,
)
from abeam.models.program import CreateProgramRequest, Program, ProgramStatus
from abeam.models.registration_request import (
    ApprovalDecision,
    CreateRegistrationRequest,
    RegistrationRequest,
    RegistrationRequestStatus,
)
from abeam.models.user import CreateUserRequest, UpdateUserRequest, User, UserRole, UserStatus

__all__ = [
    "ApprovalDecision",
    "BaseModel",
    "Client",
    "ContactUser",
    "CreateEnrollmentRequest",
    "CreateProgramRequest",
    "CreateRegistrationRequest",
    "CreateUserRequest",
    "EnrollmentRequest",
    "EnrollmentRequestStatus",
    "Program",
    "ProgramStatus",
    "RegistrationRequest",
    "RegistrationRequestStatus",
    "UpdateUserRequest",
    "User",
    "UserRole",
    "UserStatus",
]
