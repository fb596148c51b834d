"""
CodeFlow structured logging facade.

Emits leveled events with free-form context to multiple sinks:
- file: date-stamped local file, always active
- email: SMTP notifications for high-severity events (opt-in)
- chat: Telegram bot notifications for high-severity events (opt-in)

Every event is enriched with request metadata (request id, session, user,
network peer) and sanitized (secrets redacted, long strings cut) before it
reaches a sink. No call ever raises into application code; failures are
available through `last_failure()`.

Design Pattern: Strategy Pattern for sink abstraction.
Library: structlog + orjson for the event pipeline and JSON serialization.

Usage:
    import codeflow_logger as log

    log.configure({"log_directory": "/var/log/app"})
    log.enable_email_sink("infra@app.com", "ops@app.com")
    log.info("User authenticated", {"user_id": 42})
"""

from .config import LoggerSettings
from .context import (
    bind_request_context,
    build_context,
    current_request_context,
    current_request_id,
    request_scope,
    reset_request_identity,
)
from .core import Logger
from .errors import LoggerError
from .facade import (
    alert,
    configure,
    critical,
    debug,
    emergency,
    enable_chat_sink,
    enable_email_sink,
    error,
    get_logger,
    info,
    last_failure,
    log,
    notice,
    set_default_logger,
    warning,
)
from .levels import LogLevel
from .sanitizer import sanitize

__all__ = [
    "Logger",
    "LoggerSettings",
    "LoggerError",
    "LogLevel",
    "get_logger",
    "set_default_logger",
    "log",
    "debug",
    "info",
    "notice",
    "warning",
    "error",
    "critical",
    "alert",
    "emergency",
    "configure",
    "enable_email_sink",
    "enable_chat_sink",
    "last_failure",
    "sanitize",
    "build_context",
    "current_request_id",
    "current_request_context",
    "bind_request_context",
    "request_scope",
    "reset_request_identity",
]
