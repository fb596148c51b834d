"""
Process-default logger and module-level shortcuts.

Applications that want one logger for the whole process call the functions
here; they all delegate to a single lazily created `Logger`. Code that owns
its composition root can build and pass its own `Logger` instead.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from .core import Context, Logger
from .errors import LoggerError

_default_logger: Optional[Logger] = None
_default_lock = threading.Lock()


def get_logger() -> Logger:
    """Return the process-default logger, creating it on first use."""
    global _default_logger
    if _default_logger is None:
        with _default_lock:
            if _default_logger is None:
                _default_logger = Logger()
    return _default_logger


def set_default_logger(logger: Optional[Logger]) -> None:
    """Install ``logger`` as the process default (``None`` resets it)."""
    global _default_logger
    with _default_lock:
        _default_logger = logger


def log(level: Any, message: str, context: Context = None) -> None:
    get_logger().log(level, message, context)


def debug(message: str, context: Context = None) -> None:
    get_logger().debug(message, context)


def info(message: str, context: Context = None) -> None:
    get_logger().info(message, context)


def notice(message: str, context: Context = None) -> None:
    get_logger().notice(message, context)


def warning(message: str, context: Context = None) -> None:
    get_logger().warning(message, context)


def error(message: str, context: Context = None) -> None:
    get_logger().error(message, context)


def critical(message: str, context: Context = None) -> None:
    get_logger().critical(message, context)


def alert(message: str, context: Context = None) -> None:
    get_logger().alert(message, context)


def emergency(message: str, context: Context = None) -> None:
    get_logger().emergency(message, context)


def configure(options: Optional[dict[str, Any]] = None, **overrides: Any) -> Optional[LoggerError]:
    return get_logger().configure(options, **overrides)


def enable_email_sink(sender: str, recipient: str, subject: Optional[str] = None) -> Optional[LoggerError]:
    return get_logger().enable_email_sink(sender, recipient, subject)


def enable_chat_sink(bot_token: str, chat_id: str | int) -> Optional[LoggerError]:
    return get_logger().enable_chat_sink(bot_token, chat_id)


def last_failure() -> Optional[LoggerError]:
    return get_logger().last_failure()
