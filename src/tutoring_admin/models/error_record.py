from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

One record per failed RPC request. ``target`` is the table name or
"command"; ``operation`` the verb or command name ("" when the path was too
short to name one).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    timestamp: str  # ISO8601 UTC with Z suffix
    target: str
    operation: str
    error_type: str  # error class name, e.g. NotFound
    message: str

    @staticmethod
    def create(target: str, operation: str, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            target=target,
            operation=operation,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # fixed key set: dataclass -> dict
        return json.dumps(asdict(self), ensure_ascii=False)
