from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

"""Result models for the batch commands (form sync, attendance reconciliation).

These feed the SUMMARY line and are returned (as dicts) through the RPC
envelope.
"""

__all__ = [
    "SyncStat",
    "AttendanceResult",
    "CommandResult",
]


@dataclass(frozen=True)
class SyncStat:
    """Outcome of importing one form table into its target table."""
    form: str
    target: str
    created: int


@dataclass(frozen=True)
class AttendanceResult:
    changes: int  # attendance entries added or removed
    processed_days: list[int]  # midnight epoch ms of every settled day
    skipped_entries: int = 0  # log entries ignored because validity was set


@dataclass(frozen=True)
class CommandResult:
    """Timing envelope around one batch command run."""
    command: str
    changes: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    details: dict[str, Any] = field(default_factory=dict)
