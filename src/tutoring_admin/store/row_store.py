from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from ..errors import StorageError

"""Row store contract.

The table engine only talks to storage through these calls. Row index 0 of
every table is the header row; data rows start at index 1.
"""

__all__ = [
    "RowStore",
    "MemoryRowStore",
]


class RowStore(ABC):
    @abstractmethod
    def get_all_rows(self, table_id: str) -> list[list[Any]]:
        """Return a copy of every row (header included) of ``table_id``."""

    @abstractmethod
    def append_row(self, table_id: str, row: Sequence[Any]) -> None: ...

    @abstractmethod
    def update_row(self, table_id: str, row_index: int, row: Sequence[Any]) -> None: ...

    @abstractmethod
    def delete_row(self, table_id: str, row_index: int) -> None: ...

    @abstractmethod
    def get_column_count(self, table_id: str) -> int: ...

    @abstractmethod
    def ensure_table(self, table_id: str) -> bool:
        """Create an empty table if missing. Returns True when one was created."""

    def flush(self) -> None:
        """Persist pending writes. No-op for stores that write through."""


class MemoryRowStore(RowStore):
    """Rows kept in plain lists; used by tests and as the base of the workbook store."""

    def __init__(self, tables: dict[str, list[list[Any]]] | None = None) -> None:
        self._tables: dict[str, list[list[Any]]] = {
            name: [list(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self.dirty = False

    def _rows(self, table_id: str) -> list[list[Any]]:
        try:
            return self._tables[table_id]
        except KeyError:
            raise StorageError(f"sheet {table_id} not found") from None

    def _check_index(self, table_id: str, rows: list[list[Any]], row_index: int) -> None:
        if not 0 <= row_index < len(rows):
            raise StorageError(f"row {row_index} out of range in sheet {table_id}")

    def table_ids(self) -> list[str]:
        return list(self._tables)

    def get_all_rows(self, table_id: str) -> list[list[Any]]:
        return copy.deepcopy(self._rows(table_id))

    def append_row(self, table_id: str, row: Sequence[Any]) -> None:
        self._rows(table_id).append(list(row))
        self.dirty = True

    def update_row(self, table_id: str, row_index: int, row: Sequence[Any]) -> None:
        rows = self._rows(table_id)
        self._check_index(table_id, rows, row_index)
        rows[row_index] = list(row)
        self.dirty = True

    def delete_row(self, table_id: str, row_index: int) -> None:
        rows = self._rows(table_id)
        self._check_index(table_id, rows, row_index)
        del rows[row_index]
        self.dirty = True

    def get_column_count(self, table_id: str) -> int:
        rows = self._rows(table_id)
        return max((len(r) for r in rows), default=0)

    def ensure_table(self, table_id: str) -> bool:
        if table_id in self._tables:
            return False
        self._tables[table_id] = []
        self.dirty = True
        return True
