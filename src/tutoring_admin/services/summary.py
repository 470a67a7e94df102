from __future__ import annotations

from ..models.command_result import CommandResult

"""SUMMARY line rendering for batch commands."""

__all__ = [
    "render_summary_line",
]


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation for very small numbers
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: CommandResult) -> str:
    """Render the body of the SUMMARY line of one batch command.

    The "SUMMARY" label itself is added by the log formatter. Format:
    command={name} changes={n} elapsed_sec={elapsed}[ {key}={value}...]

    Extra ``key=value`` pairs come from ``result.details`` entries whose
    values are ints, in insertion order ("changes" is not repeated).

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = CommandResult("syncDataFromForms", 3, t, t, 0.0, {"requestForm": 3})
        >>> render_summary_line(r)
        'command=syncDataFromForms changes=3 elapsed_sec=0 requestForm=3'
    """
    parts = [
        f"command={result.command}",
        f"changes={result.changes}",
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}",
    ]
    for key, value in result.details.items():
        if key == "changes":
            continue
        if isinstance(value, int) and not isinstance(value, bool):
            parts.append(f"{key}={value}")
    return " ".join(parts)
