from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

from ..config.loader import AppConfig
from ..errors import FormWriteForbidden, UnknownOperation
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..logging.init import log_summary
from ..models.command_result import CommandResult
from ..tables.database import Database
from ..tables.fields import UNSET
from ..tables.table import Table
from .attendance import recalculate_attendance
from .form_sync import sync_data_from_forms
from .schedule import generate_schedule
from .summary import render_summary_line

"""Client RPC dispatcher.

A request is a JSON array:

    [<table name>, "retrieveAll" | "create" | "update" | "delete", *args]
    ["command", "syncDataFromForms" | "recalculateAttendance"
                | "generateSchedule" | "retrieveMultiple", *args]

and the response is always ``{"error", "val", "message"}`` (plus ``"code"``,
the error class name, on failure). Every exception raised below this
boundary is converted into that envelope.
"""

__all__ = [
    "COMMAND",
    "Dispatcher",
    "stringify_error",
]

logger = logging.getLogger(__name__)

COMMAND = "command"
MUTATING_VERBS = frozenset({"create", "update", "delete"})


def stringify_error(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


def _expect_args(name: str, args: Sequence[Any], count: int) -> None:
    if len(args) != count:
        raise UnknownOperation(f"{name} takes {count} argument(s), got {len(args)}")


class Dispatcher:
    """Single entry point of the RPC surface.

    ``handle`` calls are serialized with a lock: every request is a
    read-modify-write over whole tables and must not interleave with
    another. Store writes are flushed after each successful request.
    """

    def __init__(self, db: Database, config: AppConfig, error_log: ErrorLogBuffer | None = None) -> None:
        self.db = db
        self.config = config
        self.error_log = error_log if error_log is not None else ErrorLogBuffer(config.logs_directory)
        self._lock = threading.Lock()
        # command name -> (handler, number of arguments)
        self._commands: dict[str, tuple[Callable[..., Any], int]] = {
            "syncDataFromForms": (self._sync_data_from_forms, 0),
            "recalculateAttendance": (self._recalculate_attendance, 0),
            "generateSchedule": (self._generate_schedule, 0),
            "retrieveMultiple": (self._retrieve_multiple, 1),
        }

    def handle(self, path: Sequence[Any]) -> dict[str, Any]:
        with self._lock:
            try:
                val = self._dispatch(list(path))
                self.db.flush()
            except Exception as e:
                target = str(path[0]) if len(path) > 0 else ""
                operation = str(path[1]) if len(path) > 1 else ""
                logger.error(f"request {target}/{operation} failed: {stringify_error(e)}")
                self.error_log.append(ErrorRecord.create(target, operation, type(e).__name__, str(e)))
                return {"error": True, "val": None, "message": stringify_error(e), "code": type(e).__name__}
            return {"error": False, "val": val, "message": None}

    def _dispatch(self, path: list[Any]) -> Any:
        if not path:
            raise UnknownOperation("empty request path")
        head, rest = path[0], path[1:]
        if not rest:
            raise UnknownOperation(f"no operation given for {head!r}")
        if head == COMMAND:
            name, args = rest[0], rest[1:]
            if name not in self._commands:
                raise UnknownOperation(f"unknown command {name!r}")
            command, argcount = self._commands[name]
            _expect_args(name, args, argcount)
            val = command(*args)
            if name in ("syncDataFromForms", "recalculateAttendance"):
                self._record_operation(path)
            return val
        table = self.db.table(head)
        val = self._table_verb(table, rest[0], rest[1:])
        if rest[0] in MUTATING_VERBS:
            self._record_operation(path)
        return val

    def _table_verb(self, table: Table, verb: str, args: list[Any]) -> Any:
        if verb in MUTATING_VERBS and table.info.is_form:
            raise FormWriteForbidden(f"{verb} is not allowed on form table {table.name}")
        if verb == "retrieveAll":
            _expect_args(verb, args, 0)
            return table.retrieve_all()
        if verb == "create":
            _expect_args(verb, args, 1)
            return table.create(args[0])
        if verb == "update":
            _expect_args(verb, args, 1)
            table.update(args[0])
            return None
        if verb == "delete":
            _expect_args(verb, args, 1)
            table.delete(args[0])
            return None
        raise UnknownOperation(f"unknown verb {verb!r} for table {table.name}")

    def _record_operation(self, path: list[Any]) -> None:
        if not self.config.operation_log:
            return
        self.db.table("operationLog").create({"id": UNSET, "date": UNSET, "args": path})

    def _timed(self, name: str, run: Callable[[], tuple[int, dict[str, Any]]]) -> CommandResult:
        start = datetime.now(UTC)
        changes, details = run()
        end = datetime.now(UTC)
        result = CommandResult(
            command=name,
            changes=changes,
            start_time=start,
            end_time=end,
            elapsed_seconds=(end - start).total_seconds(),
            details=details,
        )
        log_summary(render_summary_line(result))
        return result

    def _sync_data_from_forms(self) -> dict[str, int]:
        def run() -> tuple[int, dict[str, Any]]:
            stats = sync_data_from_forms(self.db, self.config)
            return sum(s.created for s in stats), {s.form: s.created for s in stats}

        return self._timed("syncDataFromForms", run).details

    def _recalculate_attendance(self) -> dict[str, Any]:
        def run() -> tuple[int, dict[str, Any]]:
            result = recalculate_attendance(self.db, self.config.tzinfo)
            return result.changes, asdict(result)

        return self._timed("recalculateAttendance", run).details

    def _generate_schedule(self) -> list[dict[str, Any]]:
        return generate_schedule(self.db)

    def _retrieve_multiple(self, table_names: list[str]) -> dict[str, Any]:
        if not isinstance(table_names, list):
            raise UnknownOperation("retrieveMultiple expects a list of table names")
        return {name: self.db.table(name).retrieve_all() for name in table_names}
