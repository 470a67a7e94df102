# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import pytest

from tutoring_admin.config.loader import AppConfig
from tutoring_admin.logging.error_log import ErrorLogBuffer
from tutoring_admin.store.row_store import MemoryRowStore
from tutoring_admin.tables.database import Database
from tutoring_admin.tables.ids import IdGenerator


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("TUTORING_WORKBOOK", raising=False)
        monkeypatch.delenv("TUTORING_TIMEZONE", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """workbook: ./data/tutoring.xlsx
timezone: UTC
present_minutes: 40
operation_log: true
logs_directory: ./logs
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "tutoring.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(workbook=tmp_path / "tutoring.xlsx", timezone="UTC", logs_directory=tmp_path / "logs")


@pytest.fixture()
def db() -> Database:
    """Initialized in-memory database whose id clock is frozen at 1000."""
    database = Database(MemoryRowStore(), id_generator=IdGenerator(clock=lambda: 1000))
    database.initialize()
    return database


@pytest.fixture()
def error_log(tmp_path: Path) -> ErrorLogBuffer:
    return ErrorLogBuffer(tmp_path / "logs")


class Seeder:
    """Creates fully populated records with overridable fields."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def _create(self, table: str, defaults: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
        record = {"id": -1, "date": -1, **defaults, **overrides}
        return self.db.table(table).create(record)

    def tutor(self, name: str = "Alice Tutor", **kw: Any) -> dict[str, Any]:
        first, _, last = name.partition(" ")
        return self._create("tutors", {
            "friendlyFullName": name,
            "friendlyName": first,
            "firstName": first,
            "lastName": last,
            "studentId": "",
            "grade": 11,
            "mods": [],
            "modsPref": [],
            "subjectList": "Math",
            "attendance": {},
            "dropInMods": [],
            "adminComment": "",
        }, kw)

    def learner(self, name: str = "Bob Learner", **kw: Any) -> dict[str, Any]:
        first, _, last = name.partition(" ")
        return self._create("learners", {
            "friendlyFullName": name,
            "friendlyName": first,
            "firstName": first,
            "lastName": last,
            "studentId": "",
            "grade": 9,
            "attendance": {},
        }, kw)

    def matching(self, tutor: int, learner: int, mod: int, **kw: Any) -> dict[str, Any]:
        return self._create("matchings", {
            "learner": learner,
            "tutor": tutor,
            "subject": "Math",
            "mod": mod,
            "annotation": "",
        }, kw)

    def log_entry(self, day: int, mod: int, **kw: Any) -> dict[str, Any]:
        return self._create("attendanceLog", {
            "dateOfAttendance": day,
            "validity": "",
            "mod": mod,
            "tutor": -1,
            "learner": -1,
            "minutesForTutor": -1,
            "minutesForLearner": -1,
            "markForReset": False,
        }, kw)

    def day(self, day: int, ab_day: str = "A", status: str = "doit") -> dict[str, Any]:
        return self._create("attendanceDays", {
            "dateOfAttendance": day,
            "abDay": ab_day,
            "status": status,
        }, {})

    def form(self, table: str, date: int, **fields: Any) -> dict[str, Any]:
        return self.db.table(table).create({"date": date, **fields})


@pytest.fixture()
def seed(db: Database) -> Seeder:
    return Seeder(db)
