"""Tests for abeam.repositories against a migrated SQLite database."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

import pytest

from abeam.models import (
    ApprovalDecision,
    Client,
    CreateEnrollmentRequest,
    CreateProgramRequest,
    CreateRegistrationRequest,
    CreateUserRequest,
    EnrollmentRequest,
    Program,
    ProgramStatus,
    RegistrationRequest,
    RegistrationRequestStatus,
    User,
    UserRole,
    UserStatus,
)
from abeam.repositories import (
    ClientRepository,
    ContactUserRepository,
    EnrollmentRequestRepository,
    Pagination,
    PaginationOptions,
    ProgramRepository,
    RegistrationRequestFilters,
    RegistrationRequestRepository,
    UserFilters,
    UserRepository,
)


@pytest.fixture()
def users(db):
    return UserRepository(db)


def _new_user(users: UserRepository, email: str, role: UserRole = UserRole.PRODUCT_PEOPLE,
              first_name: str = "Ada", last_name: str = "Lovelace") -> User:
    user = User.create(CreateUserRequest(email=email, first_name=first_name, last_name=last_name, role=role))
    return users.create(user)


# --- Base CRUD via UserRepository ---


class TestUserRepository:
    def test_create_then_find_by_id(self, users):
        user = _new_user(users, "ada@example.com")
        assert users.find_by_id(user.id) == user

    def test_find_by_id_unknown(self, users):
        assert users.find_by_id("00000000-0000-4000-8000-000000000000") is None

    def test_pagination(self, users):
        for i in range(3):
            _new_user(users, f"user{i}@example.com")

        first = users.find_all(PaginationOptions(page=1, limit=2))
        assert len(first.data) == 2
        assert first.pagination == Pagination(page=1, limit=2, total=3, pages=2)

        second = users.find_all(PaginationOptions(page=2, limit=2))
        assert len(second.data) == 1
        ids = {u.id for u in first.data} | {u.id for u in second.data}
        assert len(ids) == 3

    def test_pagination_stable_when_timestamps_tie(self, users):
        stamp = datetime(2025, 1, 1, tzinfo=timezone.utc)
        created = []
        for i in range(3):
            user = User.create(CreateUserRequest(
                email=f"tie{i}@example.com", first_name="Ada", last_name="Lovelace",
                role=UserRole.PRODUCT_PEOPLE,
            ))
            user.created_at = user.updated_at = stamp
            created.append(users.create(user).id)

        seen = []
        for page in (1, 2, 3):
            result = users.find_all(PaginationOptions(page=page, limit=1))
            seen.extend(u.id for u in result.data)

        assert seen == sorted(created)

    def test_pagination_default_and_empty(self, users):
        page = users.find_all()
        assert page.data == []
        assert page.pagination == Pagination(page=1, limit=10, total=0, pages=0)

    @pytest.mark.parametrize("page, limit", [(0, 10), (1, 0)])
    def test_pagination_rejects_non_positive(self, users, page, limit):
        with pytest.raises(ValueError):
            users.find_all(PaginationOptions(page=page, limit=limit))

    def test_newest_first(self, users):
        older = _new_user(users, "older@example.com")
        newer = _new_user(users, "newer@example.com")
        assert [u.id for u in users.find_all().data] == [newer.id, older.id]

    def test_update_writes_only_given_fields(self, users):
        user = _new_user(users, "ada@example.com")
        updated = users.update(user.id, {"status": UserStatus.ACTIVE})
        assert updated.status == UserStatus.ACTIVE
        assert updated.email == user.email
        assert updated.updated_at == user.updated_at

    def test_update_unknown_id_returns_none(self, users):
        assert users.update("00000000-0000-4000-8000-000000000000", {"first_name": "X"}) is None

    def test_update_with_no_changes_returns_none(self, users):
        user = _new_user(users, "ada@example.com")
        assert users.update(user.id, {}) is None

    def test_delete_count_exists(self, users):
        user = _new_user(users, "ada@example.com")
        _new_user(users, "bob@example.com")
        assert users.count() == 2
        assert users.exists(user.id)

        assert users.delete(user.id) is True
        assert users.delete(user.id) is False
        assert not users.exists(user.id)
        assert users.count() == 1

    def test_find_by_email_is_case_sensitive(self, users):
        user = _new_user(users, "ada@example.com")
        assert users.find_by_email("ada@example.com") == user
        assert users.find_by_email("Ada@Example.com") is None
        assert users.email_exists("ada@example.com")
        assert not users.email_exists("ADA@example.com")

    def test_duplicate_email_rejected_by_storage(self, users):
        _new_user(users, "ada@example.com")
        with pytest.raises(sqlite3.IntegrityError):
            _new_user(users, "ada@example.com")

    def test_find_with_filters(self, users):
        _new_user(users, "ada@example.com", UserRole.PRODUCT_PEOPLE)
        manager = _new_user(users, "grace@example.com", UserRole.CLIENT_MANAGER,
                            first_name="Grace", last_name="Hopper")
        _new_user(users, "linus@example.com", UserRole.CLIENT_MANAGER,
                  first_name="Linus", last_name="Torvalds")

        by_role = users.find_with_filters(UserFilters(role=UserRole.CLIENT_MANAGER))
        assert by_role.pagination.total == 2

        searched = users.find_with_filters(
            UserFilters(role=UserRole.CLIENT_MANAGER, search="Hop")
        )
        assert [u.id for u in searched.data] == [manager.id]

        by_email = users.find_with_filters(UserFilters(email="example.com"))
        assert by_email.pagination.total == 3

    def test_find_active_and_by_role(self, users):
        active = _new_user(users, "ada@example.com")
        users.update(active.id, {"status": UserStatus.ACTIVE})
        _new_user(users, "bob@example.com", UserRole.CLIENT_MANAGER)

        assert [u.id for u in users.find_active_users()] == [active.id]
        assert len(users.find_by_role(UserRole.CLIENT_MANAGER)) == 1
        assert len(users.find_by_role("PRODUCT_PEOPLE")) == 1

    def test_create_inside_rolled_back_transaction(self, db, users):
        with pytest.raises(RuntimeError):
            with db.transaction():
                _new_user(users, "ada@example.com")
                raise RuntimeError("abort")
        assert users.count() == 0


# --- Registration requests ---


class TestRegistrationRequestRepository:
    @pytest.fixture()
    def requests(self, db):
        return RegistrationRequestRepository(db)

    def _new_request(self, requests, email: str, role: UserRole = UserRole.CLIENT_MANAGER):
        request = RegistrationRequest.create(
            CreateRegistrationRequest(
                email=email, first_name="Grace", last_name="Hopper", requested_role=role
            )
        )
        return requests.create(request)

    def _persist_decision(self, requests, request: RegistrationRequest) -> RegistrationRequest:
        return requests.update(
            request.id,
            {
                "status": request.status,
                "approved_by": request.approved_by,
                "approved_at": request.approved_at,
                "rejection_reason": request.rejection_reason,
                "updated_at": request.updated_at,
            },
        )

    def test_workflow(self, users, requests):
        admin = _new_user(users, "admin@example.com")
        approved = self._new_request(requests, "one@example.com")
        rejected = self._new_request(requests, "two@example.com")
        pending = self._new_request(requests, "three@example.com", UserRole.PRODUCT_PEOPLE)

        approved.process(ApprovalDecision(approved=True), admin.id)
        rejected.process(ApprovalDecision(approved=False, rejection_reason="unknown org"), admin.id)
        stored = self._persist_decision(requests, approved)
        self._persist_decision(requests, rejected)

        assert stored == approved
        assert [r.id for r in requests.find_pending_requests()] == [pending.id]
        assert [r.id for r in requests.find_approved_requests()] == [approved.id]
        assert [r.id for r in requests.find_rejected_requests()] == [rejected.id]
        assert requests.find_by_id(rejected.id).rejection_reason == "unknown org"

        assert requests.has_pending_request("three@example.com")
        assert not requests.has_pending_request("one@example.com")
        assert requests.email_exists("one@example.com")
        assert requests.find_by_email("two@example.com").status == RegistrationRequestStatus.REJECTED

    def test_filters_and_role_lookup(self, requests):
        self._new_request(requests, "one@example.com", UserRole.CLIENT_MANAGER)
        self._new_request(requests, "two@example.com", UserRole.PRODUCT_PEOPLE)

        page = requests.find_with_filters(
            RegistrationRequestFilters(
                status=RegistrationRequestStatus.PENDING,
                requested_role=UserRole.PRODUCT_PEOPLE,
            )
        )
        assert page.pagination.total == 1
        assert page.data[0].email == "two@example.com"
        assert len(requests.find_by_requested_role(UserRole.CLIENT_MANAGER)) == 1

    def test_pending_requests_oldest_first(self, requests):
        first = self._new_request(requests, "first@example.com")
        second = self._new_request(requests, "second@example.com")
        assert [r.id for r in requests.find_pending_requests()] == [first.id, second.id]


# --- Programs, contacts, enrollment and clients ---


class TestProgramAndEnrollment:
    @pytest.fixture()
    def creator(self, users):
        return _new_user(users, "creator@example.com")

    @pytest.fixture()
    def programs(self, db):
        return ProgramRepository(db)

    def _new_program(self, programs, creator, title: str = "Pilot") -> Program:
        return programs.create(Program.create(CreateProgramRequest(title=title, creator_id=creator.id)))

    def test_program_queries(self, programs, creator):
        pilot = self._new_program(programs, creator, "Pilot")
        self._new_program(programs, creator, "Beta")
        programs.update(pilot.id, {"status": ProgramStatus.LIVE})

        assert len(programs.find_by_creator(creator.id)) == 2
        assert [p.id for p in programs.find_live_programs()] == [pilot.id]
        assert len(programs.find_by_status(ProgramStatus.PENDING)) == 1

    def test_program_with_iso_string_dates_persists(self, programs, creator):
        program = Program.create(
            CreateProgramRequest(
                title="Pilot",
                creator_id=creator.id,
                start_date="2025-01-01",
                end_date="2025-02-01",
            )
        )
        programs.create(program)
        stored = programs.find_by_id(program.id)
        assert stored.start_date == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert stored.end_date == datetime(2025, 2, 1, tzinfo=timezone.utc)

    def test_program_stakeholders_persist(self, programs, creator, users):
        stakeholder = _new_user(users, "stake@example.com")
        program = Program.create(
            CreateProgramRequest(title="Pilot", creator_id=creator.id, stakeholders=(stakeholder.id,))
        )
        programs.create(program)
        assert programs.find_by_id(program.id).stakeholders == [stakeholder.id]

    def test_deleting_creator_removes_programs(self, users, programs, creator):
        self._new_program(programs, creator)
        users.delete(creator.id)
        assert programs.count() == 0

    def test_contact_find_or_create(self, db):
        contacts = ContactUserRepository(db)
        created = contacts.find_or_create("Linus", "Torvalds", "linus@example.com")
        again = contacts.find_or_create("Someone", "Else", "linus@example.com")
        assert again == created
        assert again.first_name == "Linus"
        assert contacts.count() == 1

    def test_enrollment_to_client(self, db, programs, creator):
        program = self._new_program(programs, creator)
        enrollments = EnrollmentRequestRepository(db)
        clients = ClientRepository(db)
        contacts = ContactUserRepository(db)

        request = enrollments.create(
            EnrollmentRequest.create(
                CreateEnrollmentRequest(
                    program_id=program.id,
                    client_name="Acme",
                    requested_by=creator.id,
                    account_ids=("ACC-1",),
                )
            )
        )
        contact = contacts.find_or_create("Linus", "Torvalds", "linus@example.com")
        assert enrollments.add_contact_user(request.id, contact.id) is True
        assert enrollments.add_contact_user(request.id, contact.id) is False
        assert enrollments.contact_users_for(request.id) == [contact]
        assert [r.id for r in enrollments.find_pending_for_program(program.id)] == [request.id]

        request.approve()
        enrollments.update(request.id, {"status": request.status, "updated_at": request.updated_at})
        assert enrollments.find_pending_for_program(program.id) == []
        assert [r.id for r in enrollments.find_by_requester(creator.id)] == [request.id]

        client = clients.create(Client.from_enrollment(request))
        clients.add_contact_user(client.id, contact.id)
        assert clients.find_by_enrollment_request(request.id) == client
        assert clients.contact_users_for(client.id) == [contact]
        assert [c.id for c in clients.find_active_by_program(program.id)] == [client.id]

        updated = clients.update(client.id, {"is_active": False})
        assert updated.is_active is False
        assert clients.find_active_by_program(program.id) == []
        assert len(clients.find_by_program(program.id)) == 1

    def test_deleting_program_cascades_to_enrollment(self, db, programs, creator):
        program = self._new_program(programs, creator)
        enrollments = EnrollmentRequestRepository(db)
        enrollments.create(
            EnrollmentRequest.create(
                CreateEnrollmentRequest(program_id=program.id, client_name="Acme", requested_by=creator.id)
            )
        )
        programs.delete(program.id)
        assert enrollments.find_by_program(program.id) == []
