from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd  # type: ignore
import pytest

from tutoring_admin.errors import SchemaDrift, StorageError
from tutoring_admin.store.excel_store import ExcelRowStore, normalize_rows
from tutoring_admin.tables.database import Database
from tutoring_admin.tables.ids import IdGenerator

"""Workbook round trip: records written through ExcelRowStore read back unchanged."""

# 2024-03-04T15:30:00Z, whole seconds survive the Excel datetime cell
ATTENDED = 1709566200000


def _database(path: Path) -> Database:
    return Database(ExcelRowStore(path), id_generator=IdGenerator(clock=lambda: 5000))


def test_missing_workbook_starts_empty_and_init_creates_every_sheet(tmp_path: Path):
    path = tmp_path / "data" / "tutoring.xlsx"
    db = _database(path)
    created = db.initialize()
    db.flush()
    assert path.exists()
    sheet_names = pd.ExcelFile(path, engine="openpyxl").sheet_names
    assert set(sheet_names) == {db.table(name).sheet_name for name in created}

    reopened = _database(path)
    assert reopened.initialize() == []
    assert reopened.table("tutors").retrieve_all() == {}


def test_records_survive_a_reload(tmp_path: Path):
    path = tmp_path / "tutoring.xlsx"
    db = _database(path)
    db.initialize()
    tutor = db.table("tutors").create({
        "id": -1,
        "date": ATTENDED,
        "friendlyFullName": "Ann Lee",
        "friendlyName": "Ann",
        "firstName": "Ann",
        "lastName": "Lee",
        "studentId": "NA",
        "grade": 11,
        "mods": [1, 13],
        "modsPref": [],
        "subjectList": "",
        "attendance": {"1709510400000": ["1 40"]},
        "dropInMods": [2],
        "adminComment": "",
    })
    entry = db.table("attendanceLog").create({
        "id": -1,
        "date": ATTENDED,
        "dateOfAttendance": ATTENDED,
        "validity": "",
        "mod": 1,
        "tutor": tutor["id"],
        "learner": -1,
        "minutesForTutor": 40,
        "minutesForLearner": -1,
        "markForReset": True,
    })
    db.flush()

    reopened = _database(path)
    assert reopened.table("tutors").retrieve_all() == {str(tutor["id"]): tutor}
    assert reopened.table("attendanceLog").retrieve(entry["id"]) == entry
    assert reopened.table("tutors").retrieve(tutor["id"])["studentId"] == "NA"
    assert reopened.table("attendanceLog").retrieve(entry["id"])["markForReset"] is True


def test_flush_without_changes_does_not_write(tmp_path: Path):
    path = tmp_path / "tutoring.xlsx"
    db = _database(path)
    db.flush()
    assert not path.exists()


def test_foreign_column_is_schema_drift(tmp_path: Path):
    path = tmp_path / "tutoring.xlsx"
    db = _database(path)
    db.initialize()
    db.flush()

    sheets = {name: pd.read_excel(path, sheet_name=name, header=None, engine="openpyxl")
              for name in pd.ExcelFile(path, engine="openpyxl").sheet_names}
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            if name == "$learners":
                df[len(df.columns)] = ["extra"]
            df.to_excel(writer, sheet_name=name, header=False, index=False)

    with pytest.raises(SchemaDrift):
        _database(path).table("learners").retrieve_all()


def test_unreadable_workbook_is_storage_error(tmp_path: Path):
    path = tmp_path / "tutoring.xlsx"
    path.write_text("not a workbook", encoding="utf-8")
    with pytest.raises(StorageError):
        ExcelRowStore(path)


def test_normalize_rows_trims_blank_cells():
    df = pd.DataFrame([["id", "date", None], [1, pd.Timestamp("2024-03-04 15:30:00"), float("nan")], [None, None, None]])
    rows = normalize_rows(df)
    assert rows == [["id", "date"], [1, datetime(2024, 3, 4, 15, 30)]]
    assert type(rows[1][0]) is int
