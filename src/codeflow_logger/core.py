"""
Core logger facade.

A `Logger` owns its settings, its sink registry and its diagnostics. Events go
through a structlog processor chain that ends in the registry's multi-sink
renderer:

    add_log_level -> add_timestamp -> add_channel -> rename_event_key
        -> enrich_context -> registry.multi_sink_renderer

No public method raises: failures are recorded and exposed via
`Logger.last_failure()`.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import httpx
import structlog
from pydantic import ValidationError
from structlog.typing import EventDict, WrappedLogger

from .config import ChatSinkConfig, EmailSinkConfig, LoggerSettings
from .context import build_context
from .diagnostics import Diagnostics
from .errors import (
    ConfigurationFrozen,
    EmissionError,
    InvalidChatCredentials,
    InvalidEmailAddress,
    InvalidEmailSubject,
    InvalidSetting,
    LoggerError,
    MissingMessage,
    UnknownLevel,
)
from .levels import LogLevel
from .registry import SinkRegistry
from .sinks import EmailTransport

Context = Optional[Mapping[str, Any]]


# =============================================================================
# Structlog Processors
# =============================================================================


def add_log_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add level name and numeric value, derived from the method called."""
    level = LogLevel.parse(method_name)
    event_dict["level"] = level.method_name
    event_dict["level_value"] = int(level)
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO 8601 timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def rename_event_key(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename structlog's 'event' to 'message'."""
    if "event" in event_dict:
        event_dict["message"] = event_dict.pop("event")
    return event_dict


def enrich_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace the raw caller context with the sanitized, request-enriched one."""
    event_dict["context"] = build_context(event_dict.get("context"))
    return event_dict


class _SilentLogger:
    """Wrapped logger that writes nowhere; the sinks do the writing."""

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return self._discard

    @staticmethod
    def _discard(*args: Any, **kwargs: Any) -> None:
        pass


# =============================================================================
# Facade
# =============================================================================


class Logger:
    """
    Structured logging facade.

    Configure before the first event; the sink set is built lazily on the
    first emission and frozen afterwards.

    Usage:
        logger = Logger()
        logger.configure({"log_directory": "/var/log/app"})
        logger.enable_email_sink("infra@app.com", "ops@app.com")
        logger.info("User authenticated", {"user_id": 42})
    """

    def __init__(
        self,
        settings: Optional[LoggerSettings] = None,
        *,
        email_transport: Optional[EmailTransport] = None,
        chat_transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = settings or LoggerSettings()
        self._diagnostics = Diagnostics(settings.max_recorded_failures)
        self._registry = SinkRegistry(
            settings,
            self._diagnostics,
            email_transport=email_transport,
            chat_transport=chat_transport,
        )
        self._config_lock = threading.Lock()
        self._engine = structlog.BoundLogger(
            _SilentLogger(),
            processors=[
                add_log_level,
                add_timestamp,
                self._add_channel,
                rename_event_key,
                enrich_context,
                self._registry.multi_sink_renderer,
            ],
            context={},
        )

    @property
    def settings(self) -> LoggerSettings:
        return self._registry.settings

    @property
    def registry(self) -> SinkRegistry:
        return self._registry

    def _add_channel(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["channel"] = self._registry.settings.channel
        return event_dict

    # =========================================================================
    # Emission (ascending severity)
    # =========================================================================

    def log(self, level: Any, message: Optional[str], context: Context = None) -> None:
        """
        Emit one event at ``level``.

        Args:
            level: A `LogLevel`, its numeric value or its name.
            message: Non-empty message; empty messages are dropped.
            context: Extra metadata, sanitized before dispatch.
        """
        try:
            self._write(level, message, context)
        except LoggerError as exc:
            self._diagnostics.record(exc)
        except Exception as exc:
            error = EmissionError(f"Failed to emit log event: {exc}", code="EMISSION_FAILED")
            error.__cause__ = exc
            self._diagnostics.record(error)

    def _write(self, level: Any, message: Optional[str], context: Context) -> None:
        if level is None:
            raise MissingMessage(level=None)
        try:
            level = LogLevel.parse(level)
        except ValueError:
            raise UnknownLevel(level=level) from None
        if message is None or message == "":
            raise MissingMessage(level=level.method_name)

        self._registry.ensure_initialized()
        getattr(self._engine, level.method_name)(str(message), context=context)

    def debug(self, message: str, context: Context = None) -> None:
        """Detailed debugging information."""
        self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Context = None) -> None:
        """Informational events and successful operations."""
        self.log(LogLevel.INFO, message, context)

    def notice(self, message: str, context: Context = None) -> None:
        """Normal but significant events."""
        self.log(LogLevel.NOTICE, message, context)

    def warning(self, message: str, context: Context = None) -> None:
        """Warnings that may need follow-up."""
        self.log(LogLevel.WARNING, message, context)

    def error(self, message: str, context: Context = None) -> None:
        """Runtime errors; notify when notification sinks are enabled."""
        self.log(LogLevel.ERROR, message, context)

    def critical(self, message: str, context: Context = None) -> None:
        """Critical conditions needing immediate intervention."""
        self.log(LogLevel.CRITICAL, message, context)

    def alert(self, message: str, context: Context = None) -> None:
        """Action must be taken immediately."""
        self.log(LogLevel.ALERT, message, context)

    def emergency(self, message: str, context: Context = None) -> None:
        """System is unusable."""
        self.log(LogLevel.EMERGENCY, message, context)

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(self, options: Optional[Mapping[str, Any]] = None, **overrides: Any) -> Optional[LoggerError]:
        """
        Override settings before the first emission.

        Recognized keys are the `LoggerSettings` fields, notably
        ``log_directory``, ``log_filename``, ``file_sink_min_level``,
        ``email_sink_min_level`` and ``chat_sink_min_level``. ``None`` values
        keep the current setting.

        Returns:
            ``None`` on success, otherwise the recorded error.
        """
        changes = {k: v for k, v in {**(options or {}), **overrides}.items() if v is not None}
        with self._config_lock:
            if self._registry.initialized:
                return self._diagnostics.record(ConfigurationFrozen(operation="configure"))
            try:
                self._registry.settings = self._registry.settings.with_overrides(changes)
            except KeyError as exc:
                return self._diagnostics.record(
                    InvalidSetting(f"Unknown logger setting(s): {exc.args[0]}", details={"keys": exc.args[0]})
                )
            except ValidationError as exc:
                fields = [".".join(str(part) for part in err["loc"]) for err in exc.errors()]
                return self._diagnostics.record(
                    InvalidSetting(f"Invalid logger setting(s): {', '.join(fields)}", details={"fields": fields})
                )
        return None

    def enable_email_sink(self, sender: str, recipient: str, subject: Optional[str] = None) -> Optional[LoggerError]:
        """
        Enable email notifications (``email_sink_min_level`` and above).

        Both addresses must be well formed, otherwise the sink stays disabled.
        Subject defaults to ``settings.email_subject`` and must be a single
        line.
        """
        with self._config_lock:
            if self._registry.initialized:
                return self._diagnostics.record(ConfigurationFrozen(operation="enable_email_sink"))
            try:
                config = EmailSinkConfig(
                    sender=sender,
                    recipient=recipient,
                    subject=subject or self._registry.settings.email_subject,
                )
            except ValidationError as exc:
                fields = [str(err["loc"][0]) for err in exc.errors() if err["loc"]]
                addresses = {"sender": sender, "recipient": recipient}
                field = next((f for f in fields if f in addresses), None)
                if field is None:
                    return self._diagnostics.record(InvalidEmailSubject(value=str(subject)))
                return self._diagnostics.record(InvalidEmailAddress(field=field, value=str(addresses[field])))
            self._registry.email = config
        return None

    def enable_chat_sink(self, bot_token: str, chat_id: str | int) -> Optional[LoggerError]:
        """
        Enable chat bot notifications (``chat_sink_min_level`` and above).

        Token and chat id must be non-blank, otherwise the sink stays disabled.
        """
        with self._config_lock:
            if self._registry.initialized:
                return self._diagnostics.record(ConfigurationFrozen(operation="enable_chat_sink"))
            try:
                config = ChatSinkConfig(bot_token=bot_token, chat_id=chat_id)
            except ValidationError as exc:
                missing = sorted({str(err["loc"][0]) for err in exc.errors()})
                return self._diagnostics.record(InvalidChatCredentials(missing=missing))
            self._registry.chat = config
        return None

    # =========================================================================
    # Diagnostics & lifecycle
    # =========================================================================

    def last_failure(self) -> Optional[LoggerError]:
        """Most recent configuration, emission or delivery failure."""
        return self._diagnostics.last_failure

    def failures(self) -> list[LoggerError]:
        return self._diagnostics.failures()

    def clear_failures(self) -> None:
        self._diagnostics.clear()

    def close(self) -> None:
        """Flush background deliveries and close all sinks."""
        self._registry.close()
