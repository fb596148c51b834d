"""
Diagnostic failure channel.

The facade never raises into application code. Every failure it swallows is
recorded here instead, and mirrored to the stdlib logger
``codeflow_logger.diagnostics`` so it stays visible without touching the sinks.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Optional

from .errors import LoggerError

_stdlib_logger = logging.getLogger("codeflow_logger.diagnostics")


class Diagnostics:
    """Bounded, thread-safe history of recorded failures."""

    def __init__(self, max_entries: int = 100):
        self._entries: deque[LoggerError] = deque(maxlen=max(1, max_entries))
        self._lock = threading.Lock()

    def record(self, error: LoggerError) -> LoggerError:
        with self._lock:
            self._entries.append(error)
        _stdlib_logger.warning("%s [%s] %s", type(error).__name__, error.code, error)
        return error

    @property
    def last_failure(self) -> Optional[LoggerError]:
        with self._lock:
            return self._entries[-1] if self._entries else None

    def failures(self) -> list[LoggerError]:
        """Recorded failures, oldest first."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
