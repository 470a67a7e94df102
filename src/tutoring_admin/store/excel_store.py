from __future__ import annotations

import logging
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..errors import StorageError
from .row_store import MemoryRowStore

"""Workbook-backed row store.

The whole workbook is read once with pandas (one sheet per table, no header
inference) and kept in memory; ``flush()`` writes every sheet back through
``pandas.ExcelWriter`` (openpyxl engine) when something changed.

Cell normalization on read:
- blank / NaN cells -> ""
- strings such as "NA" or "null" stay literal (pandas NA parsing disabled)
- trailing blank cells of a row are trimmed, fully blank rows are dropped
- pandas/numpy scalars are turned back into plain Python values
"""

__all__ = [
    "ExcelRowStore",
    "read_workbook",
    "normalize_rows",
]

logger = logging.getLogger(__name__)


def _normalize_cell(val: Any) -> Any:
    if isinstance(val, str):
        return val
    if pd.isna(val):
        return ""
    if isinstance(val, pd.Timestamp):
        return val.to_pydatetime()
    item = getattr(val, "item", None)
    if callable(item) and not isinstance(val, datetime):
        return item()
    return val


def normalize_rows(df: pd.DataFrame) -> list[list[Any]]:
    """Turn a raw (header=None) sheet DataFrame into trimmed row lists."""
    rows: list[list[Any]] = []
    for raw in df.itertuples(index=False, name=None):
        row = [_normalize_cell(v) for v in raw]
        while row and row[-1] == "":
            row.pop()
        if not row:
            continue
        rows.append(row)
    return rows


def read_workbook(path: Path) -> dict[str, list[list[Any]]]:
    """Read every sheet of ``path`` into ``{sheet name: rows}``."""
    try:
        xls = pd.ExcelFile(path, engine="openpyxl")
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise StorageError(f"cannot open workbook {path}: {e}") from e
    sheets: dict[str, list[list[Any]]] = {}
    with xls:
        for name in xls.sheet_names:
            df = xls.parse(name, header=None, keep_default_na=False, na_values=[])
            sheets[str(name)] = normalize_rows(df)
    return sheets


class ExcelRowStore(MemoryRowStore):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        tables = read_workbook(self.path) if self.path.exists() else {}
        super().__init__(tables)
        logger.debug(f"workbook loaded path={self.path} sheets={len(tables)}")

    def flush(self) -> None:
        if not self.dirty:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with pd.ExcelWriter(self.path, engine="openpyxl") as writer:
                for name in self.table_ids():
                    rows = self.get_all_rows(name)
                    pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
        except OSError as e:
            raise StorageError(f"cannot write workbook {self.path}: {e}") from e
        self.dirty = False
        logger.debug(f"workbook written path={self.path}")
