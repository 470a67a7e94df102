from __future__ import annotations

import threading
import time
from collections.abc import Callable

"""Monotonic millisecond-clock ID source.

Strictly increasing within one process: when the clock has not moved past
the last issued id, the next id is last + 1. Not collision safe across
processes sharing one workbook.
"""

__all__ = [
    "IdGenerator",
    "default_id_generator",
]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class IdGenerator:
    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or _now_ms
        self._last = 0
        self._lock = threading.Lock()

    @property
    def last_issued(self) -> int:
        return self._last

    def next_id(self) -> int:
        with self._lock:
            now = self._clock()
            if now <= self._last:
                self._last += 1
            else:
                self._last = now
            return self._last


_default: IdGenerator | None = None


def default_id_generator() -> IdGenerator:
    """Process-wide generator used when no generator is injected."""
    global _default
    if _default is None:
        _default = IdGenerator()
    return _default
