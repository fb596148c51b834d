"""
Event formatters.

File sink lines come in two shapes:

- line: ``[2026-01-17T10:30:00.123456+00:00] app.INFO: User created {"request_id":"req_..."}``
- json: one orjson object per line

Notification sinks (email, chat) reuse the line form followed by the context
pretty-printed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson
from structlog.typing import EventDict

_JSON_OPTIONS = orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC | orjson.OPT_NON_STR_KEYS


def orjson_dumps(v: Any, *, default: Any = None, indent: bool = False) -> str:
    """Fast JSON serialization using orjson."""
    option = _JSON_OPTIONS | orjson.OPT_INDENT_2 if indent else _JSON_OPTIONS
    return orjson.dumps(v, default=default or str, option=option).decode()


def _event_timestamp(event_dict: EventDict) -> str:
    timestamp = event_dict.get("timestamp")
    if timestamp:
        return str(timestamp)
    return datetime.now(timezone.utc).isoformat()


class LineFormatter:
    """Single-line rendering: ``[timestamp] channel.LEVEL: message context``."""

    LINE_FORMAT = "[{timestamp}] {channel}.{level}: {message} {context}"

    @classmethod
    def format(cls, event_dict: EventDict) -> str:
        message = str(event_dict.get("message", event_dict.get("event", "")))
        return cls.LINE_FORMAT.format(
            timestamp=_event_timestamp(event_dict),
            channel=event_dict.get("channel", "app"),
            level=str(event_dict.get("level", "info")).upper(),
            message=cls._single_line(message),
            context=orjson_dumps(event_dict.get("context") or {}),
        )

    @staticmethod
    def _single_line(text: str) -> str:
        # One event per line; embedded newlines would split an entry
        return text.replace("\r\n", "\\n").replace("\n", "\\n").replace("\r", "\\n")


class JsonFormatter:
    @staticmethod
    def format(event_dict: EventDict) -> str:
        return orjson_dumps(
            {
                "timestamp": _event_timestamp(event_dict),
                "channel": event_dict.get("channel", "app"),
                "level": str(event_dict.get("level", "info")).upper(),
                "message": event_dict.get("message", event_dict.get("event", "")),
                "context": event_dict.get("context") or {},
            }
        )


class NotificationFormatter:
    """Human-oriented body for email and chat notifications."""

    @staticmethod
    def format(event_dict: EventDict, *, max_length: int | None = None) -> str:
        level = str(event_dict.get("level", "info")).upper()
        message = str(event_dict.get("message", event_dict.get("event", "")))
        header = f"[{_event_timestamp(event_dict)}] {event_dict.get('channel', 'app')}.{level}: {message}"
        context = event_dict.get("context") or {}
        body = header if not context else f"{header}\n\n{orjson_dumps(context, indent=True)}"
        if max_length is not None and len(body) > max_length:
            body = body[: max(0, max_length - 3)] + "..."
        return body
