"""Storage layer: the SQLite storage handle."""

from abeam.storage.database import Database, RunResult, split_statements

__all__ = ["Database", "RunResult", "split_statements"]
