"""Generic repository over one table and an entity/row mapping pair."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Callable, Generic, Mapping, Protocol, Sequence, TypeVar

from abeam.storage.database import Database

T = TypeVar("T")


@dataclass(frozen=True)
class PaginationOptions:
    page: int = 1
    limit: int = 10


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    pages: int


@dataclass(frozen=True)
class Page(Generic[T]):
    data: list[T]
    pagination: Pagination


class Repository(Protocol[T]):
    """CRUD contract shared by every entity repository."""

    def find_all(self, options: PaginationOptions | None = None) -> Page[T]: ...

    def find_by_id(self, entity_id: str) -> T | None: ...

    def create(self, entity: T) -> T: ...

    def update(self, entity_id: str, changes: Mapping[str, Any]) -> T | None: ...

    def delete(self, entity_id: str) -> bool: ...

    def count(self) -> int: ...

    def exists(self, entity_id: str) -> bool: ...


class BaseRepository(Generic[T]):
    """CRUD operations implemented once, specialized per entity.

    ``from_row`` decodes a database row into an entity, ``to_row`` encodes an
    entity into its typed row dataclass and ``partial_row`` encodes a set of
    field changes into column values. Table and column names always come
    from code, never from caller input; values are bound parameters.
    """

    def __init__(
        self,
        db: Database,
        table_name: str,
        *,
        from_row: Callable[[Mapping[str, Any]], T],
        to_row: Callable[[T], Any],
        partial_row: Callable[[Mapping[str, Any]], dict[str, Any]],
        order_by: str = "created_at DESC",
    ) -> None:
        self.db = db
        self.table_name = table_name
        self._from_row = from_row
        self._to_row = to_row
        self._partial_row = partial_row
        self._order_by = order_by

    # --- Queries ---

    def find_all(self, options: PaginationOptions | None = None) -> Page[T]:
        """Return one page of entities, newest first."""
        return self._find_page([], [], options)

    def find_by_id(self, entity_id: str) -> T | None:
        row = self.db.get(f"SELECT * FROM {self.table_name} WHERE id = ?", (entity_id,))
        return self._from_row(row) if row is not None else None

    def count(self) -> int:
        row = self.db.get(f"SELECT COUNT(*) AS total FROM {self.table_name}")
        return row["total"]

    def exists(self, entity_id: str) -> bool:
        row = self.db.get(
            f"SELECT COUNT(*) AS count FROM {self.table_name} WHERE id = ?", (entity_id,)
        )
        return row["count"] > 0

    # --- Mutations ---

    def create(self, entity: T) -> T:
        """Insert the entity's full row. Returns the entity unchanged."""
        data = asdict(self._to_row(entity))
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        self.db.run(
            f"INSERT INTO {self.table_name} ({columns}) VALUES ({placeholders})",
            list(data.values()),
        )
        return entity

    def update(self, entity_id: str, changes: Mapping[str, Any]) -> T | None:
        """Write only the given fields, then re-read the entity.

        Returns None when no row has this id or there is nothing to change.
        """
        data = self._partial_row(changes)
        if not data:
            return None
        set_clause = ", ".join(f"{column} = ?" for column in data)
        result = self.db.run(
            f"UPDATE {self.table_name} SET {set_clause} WHERE id = ?",
            [*data.values(), entity_id],
        )
        if result.changes == 0:
            return None
        return self.find_by_id(entity_id)

    def delete(self, entity_id: str) -> bool:
        result = self.db.run(f"DELETE FROM {self.table_name} WHERE id = ?", (entity_id,))
        return result.changes > 0

    # --- Helpers for specializations ---

    def _find_page(
        self,
        conditions: Sequence[str],
        params: Sequence[Any],
        options: PaginationOptions | None,
    ) -> Page[T]:
        """Run a filtered, paginated query; conditions are combined with AND."""
        options = options or PaginationOptions()
        if options.page < 1 or options.limit < 1:
            raise ValueError("page and limit must be positive integers")
        offset = (options.page - 1) * options.limit

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        # Count and page are separate reads; total may lag a concurrent write.
        count_row = self.db.get(
            f"SELECT COUNT(*) AS total FROM {self.table_name} {where_clause}", list(params)
        )
        rows = self.db.all(
            f"SELECT * FROM {self.table_name} {where_clause} "
            f"ORDER BY {self._order_clause()} LIMIT ? OFFSET ?",
            [*params, options.limit, offset],
        )

        total = count_row["total"]
        return Page(
            data=[self._from_row(r) for r in rows],
            pagination=Pagination(
                page=options.page,
                limit=options.limit,
                total=total,
                pages=math.ceil(total / options.limit),
            ),
        )

    def _order_clause(self, order_by: str | None = None) -> str:
        # id breaks ties so pages stay stable when timestamps collide
        return f"{order_by or self._order_by}, id"

    def _find_many(
        self, where: str, params: Sequence[Any], order_by: str | None = None
    ) -> list[T]:
        rows = self.db.all(
            f"SELECT * FROM {self.table_name} WHERE {where} "
            f"ORDER BY {self._order_clause(order_by)}",
            list(params),
        )
        return [self._from_row(r) for r in rows]

    def _find_one(self, where: str, params: Sequence[Any]) -> T | None:
        row = self.db.get(f"SELECT * FROM {self.table_name} WHERE {where}", list(params))
        return self._from_row(row) if row is not None else None

    def _count_where(self, where: str, params: Sequence[Any]) -> int:
        row = self.db.get(
            f"SELECT COUNT(*) AS count FROM {self.table_name} WHERE {where}", list(params)
        )
        return row["count"]
