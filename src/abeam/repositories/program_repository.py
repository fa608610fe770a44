"""Program repository."""

from __future__ import annotations

from abeam.models.base import enum_value
from abeam.models.program import Program, ProgramStatus
from abeam.repositories.base import BaseRepository
from abeam.storage.database import Database


class ProgramRepository(BaseRepository[Program]):
    def __init__(self, db: Database) -> None:
        super().__init__(
            db,
            "programs",
            from_row=Program.from_row,
            to_row=Program.to_row,
            partial_row=Program.partial_row,
        )

    def find_by_creator(self, creator_id: str) -> list[Program]:
        return self._find_many("creator_id = ?", (creator_id,))

    def find_by_status(self, status: ProgramStatus | str) -> list[Program]:
        return self._find_many("status = ?", (enum_value(status),))

    def find_live_programs(self) -> list[Program]:
        return self._find_many(
            "status = ?", (ProgramStatus.LIVE.value,), order_by="start_date ASC"
        )
