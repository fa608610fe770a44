"""Program entity."""

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


class ProgramStatus(str, Enum):
    PENDING = "PENDING"
    LIVE = "LIVE"
    STOPPED = "STOPPED"
    ARCHIVED = "ARCHIVED"


# Allowed source states for each target state
_TRANSITIONS = {
    ProgramStatus.LIVE: {ProgramStatus.PENDING, ProgramStatus.STOPPED},
    ProgramStatus.STOPPED: {ProgramStatus.LIVE},
    ProgramStatus.ARCHIVED: {ProgramStatus.PENDING, ProgramStatus.LIVE, ProgramStatus.STOPPED},
}


@dataclass(frozen=True)
class CreateProgramRequest:
    title: str
    creator_id: str
    description: str | None = None
    stakeholders: tuple[str, ...] = ()
    start_date: datetime | str | None = None  # ISO 8601 strings are parsed
    end_date: datetime | str | None = None


@dataclass(frozen=True)
class ProgramRow:
    """Column layout of the programs table."""

    id: str
    title: str
    description: str | None
    creator_id: str
    stakeholders: str | None
    start_date: str | None
    end_date: str | None
    status: str
    created_at: str
    updated_at: str


_UPDATABLE_COLUMNS = {
    "title": ("title", identity),
    "description": ("description", identity),
    "stakeholders": ("stakeholders", dump_list),
    "start_date": ("start_date", to_iso),
    "end_date": ("end_date", to_iso),
    "status": ("status", enum_value),
    "updated_at": ("updated_at", to_iso),
}


@dataclass
class Program(BaseModel):
    id: str
    title: str
    creator_id: str
    status: ProgramStatus
    created_at: datetime
    updated_at: datetime
    description: str | None = None
    stakeholders: list[str] = field(default_factory=list)
    start_date: datetime | None = None
    end_date: datetime | None = None

    def validate(self) -> None:
        self.validate_uuid(self.id, "id")
        self.validate_required_string(self.title, "title")
        self.validate_string_length(self.title, "title", 1, 200)
        self.validate_optional(
            self.description,
            lambda v: self.validate_string_length(v, "description", 0, 2000),
        )
        self.validate_uuid(self.creator_id, "creator_id")
        self.validate_uuid_list(self.stakeholders, "stakeholders")
        self.validate_enum(self.status, ProgramStatus, "status")
        self.validate_date(self.created_at, "created_at")
        self.validate_date(self.updated_at, "updated_at")
        self.validate_optional(self.start_date, lambda v: self.validate_datetime(v, "start_date"))
        self.validate_optional(self.end_date, lambda v: self.validate_datetime(v, "end_date"))

        start = parse_datetime(self.start_date)
        end = parse_datetime(self.end_date)
        if start and end and end < start:
            raise ValidationError("end_date", "end_date must not be before start_date")

    @classmethod
    def create(cls, data: CreateProgramRequest) -> Program:
        now = utc_now()
        program = cls(
            id=str(uuid.uuid4()),
            title=data.title,
            creator_id=data.creator_id,
            status=ProgramStatus.PENDING,
            created_at=now,
            updated_at=now,
            description=data.description,
            stakeholders=list(data.stakeholders),
            start_date=cls.coerce_datetime(data.start_date, "start_date"),
            end_date=cls.coerce_datetime(data.end_date, "end_date"),
        )
        program.validate()
        return program

    def _transition(self, target: ProgramStatus) -> None:
        if self.status not in _TRANSITIONS[target]:
            raise ValidationError(
                "status", f"cannot move program from {enum_value(self.status)} to {target.value}"
            )
        self.status = target
        self.updated_at = utc_now()
        self.validate()

    def go_live(self) -> None:
        self._transition(ProgramStatus.LIVE)

    def stop(self) -> None:
        self._transition(ProgramStatus.STOPPED)

    def archive(self) -> None:
        self._transition(ProgramStatus.ARCHIVED)

    def add_stakeholder(self, user_id: str) -> None:
        if user_id not in self.stakeholders:
            self.stakeholders.append(user_id)
            self.updated_at = utc_now()
        self.validate()

    def is_live(self) -> bool:
        return self.status == ProgramStatus.LIVE

    # --- Mapping ---

    def to_row(self) -> ProgramRow:
        return ProgramRow(
            id=self.id,
            title=self.title,
            description=self.description,
            creator_id=self.creator_id,
            stakeholders=dump_list(self.stakeholders),
            start_date=to_iso(self.start_date),
            end_date=to_iso(self.end_date),
            status=enum_value(self.status),
            created_at=to_iso(self.created_at),
            updated_at=to_iso(self.updated_at),
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Program:
        r = decode_row(ProgramRow, row)
        return cls(
            id=r.id,
            title=r.title,
            creator_id=r.creator_id,
            status=ProgramStatus(r.status),
            created_at=parse_datetime(r.created_at),
            updated_at=parse_datetime(r.updated_at),
            description=r.description,
            stakeholders=load_list(r.stakeholders),
            start_date=parse_datetime(r.start_date),
            end_date=parse_datetime(r.end_date),
        )

    @staticmethod
    def partial_row(changes: Mapping[str, Any]) -> dict[str, Any]:
        return build_partial_row("Program", changes, _UPDATABLE_COLUMNS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "creator_id": self.creator_id,
            "stakeholders": list(self.stakeholders),
            "start_date": to_iso(self.start_date),
            "end_date": to_iso(self.end_date),
            "status": enum_value(self.status),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }
