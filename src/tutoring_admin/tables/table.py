from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from ..errors import DuplicateKey, FormWriteForbidden, NotFound, SchemaDrift
from ..store.row_store import RowStore
from .fields import UNSET
from .ids import IdGenerator
from .schema import TableInfo

"""Record table: CRUD over one schema and one row-store table.

A record is a plain dict (field name -> typed value). Every read returns
fresh dicts, and every write serializes the full row: there is no partial
column update.
"""

__all__ = [
    "Record",
    "Table",
]

Record = dict[str, Any]

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Table:
    """Binds a TableInfo to a row store.

    The expected column count is cached from the schema; the stored column
    count is checked against it before every full read.
    """

    def __init__(self, info: TableInfo, store: RowStore, id_generator: IdGenerator) -> None:
        self.info = info
        self.store = store
        self.id_generator = id_generator
        self.column_count = len(info.fields)

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def sheet_name(self) -> str:
        return self.info.sheet_name

    def _check_column_count(self) -> None:
        actual = self.store.get_column_count(self.sheet_name)
        if actual != self.column_count:
            raise SchemaDrift(
                f"table {self.name}: sheet {self.sheet_name} has {actual} columns, "
                f"schema expects {self.column_count}"
            )

    def _forbid_form(self, verb: str) -> None:
        if self.info.is_form:
            raise FormWriteForbidden(f"cannot {verb} records of form table {self.name}")

    def parse_row(self, raw: list[Any]) -> Record:
        padded = list(raw) + [""] * (self.column_count - len(raw))
        rec: Record = {}
        for field, cell in zip(self.info.fields, padded):
            rec[field.name] = field.parse(cell)
        if self.info.is_form:
            rec["id"] = rec["date"]
        return rec

    def serialize_record(self, record: Record) -> list[Any]:
        return [field.serialize(record.get(field.name)) for field in self.info.fields]

    def _stored_keys(self) -> list[Any]:
        """Primary key of every stored row, index aligned with the store (0 = header)."""
        pk_field = self.info.fields[self.info.primary_key_index]
        keys: list[Any] = [None]
        for raw in self.store.get_all_rows(self.sheet_name)[1:]:
            cell = raw[self.info.primary_key_index] if len(raw) > self.info.primary_key_index else ""
            keys.append(pk_field.parse(cell))
        return keys

    def _locate(self, key: Any) -> int:
        matching_row = -1
        for i, stored in enumerate(self._stored_keys()):
            if i == 0:
                continue
            if stored == key:
                if matching_row != -1:
                    raise DuplicateKey(f"duplicate primary key {key} in table {self.name}")
                matching_row = i
        if matching_row == -1:
            raise NotFound(f"primary key {key} not found in table {self.name}")
        return matching_row

    def retrieve_all(self) -> dict[str, Record]:
        self._check_column_count()
        rows = self.store.get_all_rows(self.sheet_name)
        result: dict[str, Record] = {}
        for raw in rows[1:]:
            rec = self.parse_row(raw)
            result[str(rec["id"])] = rec
        return result

    def retrieve(self, record_id: Any) -> Record:
        try:
            return self.retrieve_all()[str(record_id)]
        except KeyError:
            raise NotFound(f"primary key {record_id} not found in table {self.name}") from None

    def create(self, record: Record) -> Record:
        rec = dict(record)
        if rec.get("date") in (None, UNSET):
            rec["date"] = _now_ms()
        if self.info.is_form:
            rec["id"] = rec["date"]
        elif rec.get("id") in (None, UNSET):
            rec["id"] = self.id_generator.next_id()
        row = self.serialize_record(rec)
        self.store.append_row(self.sheet_name, row)
        logger.debug(f"create table={self.name} id={rec['id']}")
        # absent fields come back with their empty values, extra keys are dropped
        return self.parse_row(row)

    def update(self, record: Record) -> None:
        self._forbid_form("update")
        row_index = self._locate(record["id"])
        self.store.update_row(self.sheet_name, row_index, self.serialize_record(record))
        logger.debug(f"update table={self.name} id={record['id']}")

    def update_all(self, records: Iterable[Record]) -> int:
        """Update many records with one scan of the key column. Returns rows written."""
        self._forbid_form("update")
        keys = self._stored_keys()
        if len(keys) <= 1:
            return 0
        index: dict[Any, list[int]] = {}
        for i, key in enumerate(keys[1:], start=1):
            index.setdefault(key, []).append(i)
        written = 0
        for record in records:
            positions = index.get(record["id"], [])
            if len(positions) > 1:
                raise DuplicateKey(f"duplicate primary key {record['id']} in table {self.name}")
            if not positions:
                raise NotFound(f"primary key {record['id']} not found in table {self.name}")
            self.store.update_row(self.sheet_name, positions[0], self.serialize_record(record))
            written += 1
        logger.debug(f"update_all table={self.name} rows={written}")
        return written

    def delete(self, record_id: Any) -> None:
        self._forbid_form("delete")
        row_index = self._locate(record_id)
        self.store.delete_row(self.sheet_name, row_index)
        logger.debug(f"delete table={self.name} id={record_id}")

    def rebuild_headers(self) -> None:
        header = self.info.field_names
        if self.store.get_all_rows(self.sheet_name):
            self.store.update_row(self.sheet_name, 0, header)
        else:
            self.store.append_row(self.sheet_name, header)
        logger.info(f"header rebuilt table={self.name} columns={len(header)}")
