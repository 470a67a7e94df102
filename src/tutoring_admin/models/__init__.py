"""Domain models shared by the services and the CLI."""

from .command_result import AttendanceResult, CommandResult, SyncStat
from .error_record import ErrorRecord

__all__ = [
    "AttendanceResult",
    "CommandResult",
    "SyncStat",
    "ErrorRecord",
]
