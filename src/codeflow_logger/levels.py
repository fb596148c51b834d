"""
Severity levels.

Numeric values follow the Monolog scale (DEBUG=100 ... EMERGENCY=600), so
thresholds may also be given as integers, e.g. ``CF_LOG_CHAT_SINK_MIN_LEVEL=500``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    DEBUG = 100
    INFO = 200
    NOTICE = 250
    WARNING = 300
    ERROR = 400
    CRITICAL = 500
    ALERT = 550
    EMERGENCY = 600

    @property
    def method_name(self) -> str:
        """Name of the facade method emitting at this level."""
        return self.name.lower()

    @classmethod
    def parse(cls, value: Any) -> LogLevel:
        """
        Coerce a level given as a member, its numeric value or its name.

        Raises:
            ValueError: the value does not name a known level.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unknown log level: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Unknown log level: {value!r}") from None
        if isinstance(value, str):
            name = value.strip().upper()
            name = _ALIASES.get(name, name)
            if name.isdigit():
                return cls.parse(int(name))
            member = cls.__members__.get(name)
            if member is not None:
                return member
        raise ValueError(f"Unknown log level: {value!r}")


_ALIASES = {
    "WARN": "WARNING",
    "FATAL": "CRITICAL",
    "ERR": "ERROR",
}
