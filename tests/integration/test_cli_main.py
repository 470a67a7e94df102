from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from tutoring_admin.cli.__main__ import main as cli_main
from tutoring_admin.logging.init import reset_logging

"""End-to-end CLI runs against a workbook in a temporary directory."""


def _envelope(out: str) -> dict[str, Any]:
    lines = [line for line in out.splitlines() if line.startswith("{")]
    assert len(lines) == 1, out
    return json.loads(lines[0])


def _run(argv: list[str], capsys) -> tuple[int, str]:
    reset_logging()
    code = cli_main(argv)
    return code, capsys.readouterr().out


def test_missing_config_is_fatal(temp_workdir: Path, capsys):
    code, out = _run(["init"], capsys)
    assert code == 1
    assert "ERROR config:" in out


def test_init_then_retrieve(write_config: Path, capsys):
    code, out = _run(["init"], capsys)
    assert code == 0
    assert (write_config.parent.parent / "data" / "tutoring.xlsx").exists()
    assert "INFO workbook=" in out

    code, out = _run(["ask", '["tutors", "retrieveAll"]'], capsys)
    assert code == 0
    assert _envelope(out) == {"error": False, "val": {}, "message": None}


def test_create_is_persisted_and_logged(write_config: Path, capsys):
    _run(["init"], capsys)
    learner = {
        "id": -1,
        "date": 1709566200000,
        "friendlyFullName": "Bo Kim",
        "friendlyName": "Bo",
        "firstName": "Bo",
        "lastName": "Kim",
        "studentId": "1234",
        "grade": 9,
        "attendance": {},
    }
    code, out = _run(["ask", json.dumps(["learners", "create", learner])], capsys)
    assert code == 0
    created = _envelope(out)["val"]
    assert created["id"] != -1

    code, out = _run(["ask", '["command", "retrieveMultiple", ["learners", "operationLog"]]'], capsys)
    val = _envelope(out)["val"]
    assert val["learners"] == {str(created["id"]): created}
    assert [rec["args"][:2] for rec in val["operationLog"].values()] == [["learners", "create"]]


def test_failed_request_exits_2_and_writes_error_log(write_config: Path, capsys):
    _run(["init"], capsys)
    code, out = _run(["ask", '["tutors", "update", {"id": 42}]'], capsys)
    assert code == 2
    envelope = _envelope(out)
    assert envelope["error"] is True
    assert envelope["code"] == "NotFound"
    assert envelope["message"].startswith("NotFound: ")
    assert "ERROR request tutors/update failed" in out

    logs = list((write_config.parent.parent / "logs").glob("errors-*.log"))
    assert len(logs) == 1
    record = json.loads(logs[0].read_text(encoding="utf-8").splitlines()[0])
    assert record["target"] == "tutors"
    assert record["error_type"] == "NotFound"


def test_bad_request_json_is_fatal(write_config: Path, capsys):
    code, out = _run(["ask", "[tutors"], capsys)
    assert code == 1
    assert "ERROR request path is not valid JSON" in out

    code, out = _run(["ask", '{"a": 1}'], capsys)
    assert code == 1


def test_sync_shortcut_prints_summary(write_config: Path, capsys):
    _run(["init"], capsys)
    code, out = _run(["sync"], capsys)
    assert code == 0
    assert "SUMMARY command=syncDataFromForms changes=0" in out
    assert _envelope(out)["val"] == {
        "tutorRegistrationForm": 0,
        "requestForm": 0,
        "specialRequestForm": 0,
        "attendanceForm": 0,
    }


def test_unknown_table_for_rebuild_headers_is_fatal(write_config: Path, capsys):
    _run(["init"], capsys)
    code, out = _run(["rebuild-headers", "nope"], capsys)
    assert code == 1
    assert "ERROR SchemaNotFound:" in out


def test_dotenv_overrides_workbook(write_config: Path, monkeypatch, capsys):
    root = write_config.parent.parent
    # registered so the variable dotenv sets is removed again after the test
    monkeypatch.setenv("TUTORING_WORKBOOK", "unused.xlsx")
    (root / ".env").write_text("TUTORING_WORKBOOK=./data/other.xlsx\n", encoding="utf-8")
    code, _ = _run(["init"], capsys)
    assert code == 0
    assert (root / "data" / "other.xlsx").exists()
    assert not (root / "data" / "tutoring.xlsx").exists()
