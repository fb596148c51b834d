"""
Sink registry with lazy, single initialization.

Configuration is collected first (`settings`, `email`, `chat`) and the sink
set is materialized once, on the first emission. From then on the registry is
frozen: configuration changes are rejected and the sinks stay as built.
"""

from __future__ import annotations

import os
import threading
from datetime import date
from pathlib import Path
from typing import Callable, Optional

import httpx
from structlog.typing import EventDict, WrappedLogger

from .config import ChatSinkConfig, EmailSinkConfig, LoggerSettings
from .diagnostics import Diagnostics
from .errors import LogDirectoryNotWritable, SinkDeliveryError
from .levels import LogLevel
from .sinks import BaseSink, ChatSink, EmailSink, EmailTransport, FileSink


def default_log_filename(today: Optional[date] = None) -> str:
    return f"file-{(today or date.today()).isoformat()}.log"


def _is_writable_dir(path: Path) -> bool:
    return path.is_dir() and os.access(path, os.W_OK | os.X_OK)


class SinkRegistry:
    def __init__(
        self,
        settings: LoggerSettings,
        diagnostics: Diagnostics,
        *,
        email_transport: Optional[EmailTransport] = None,
        chat_transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings
        self.email: Optional[EmailSinkConfig] = None
        self.chat: Optional[ChatSinkConfig] = None
        self._diagnostics = diagnostics
        self._email_transport = email_transport
        self._chat_transport = chat_transport
        self._sinks: list[BaseSink] = []
        self._log_path: Optional[Path] = None
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def sinks(self) -> list[BaseSink]:
        return list(self._sinks)

    @property
    def log_path(self) -> Optional[Path]:
        """Path of the file sink, once initialized and writable."""
        return self._log_path

    # =========================================================================
    # Initialization
    # =========================================================================

    def ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            try:
                self._sinks = self._build_sinks()
            finally:
                self._initialized = True

    def _build_sinks(self) -> list[BaseSink]:
        settings = self.settings
        sinks: list[BaseSink] = []

        directory = self.resolve_directory()
        if directory is not None:
            path = directory / (settings.log_filename or default_log_filename())
            try:
                sinks.append(FileSink(path, min_level=settings.file_sink_min_level, fmt=settings.file_format))
                self._log_path = path
            except OSError as exc:
                self._diagnostics.record(LogDirectoryNotWritable(path=str(path.parent), reason=str(exc)))

        if self.email is not None:
            password = settings.smtp_password.get_secret_value() if settings.smtp_password else None
            self._append_sink(
                sinks,
                EmailSink.name,
                lambda: EmailSink(
                    self.email,
                    min_level=settings.email_sink_min_level,
                    smtp_host=settings.smtp_host,
                    smtp_port=settings.smtp_port,
                    timeout=settings.smtp_timeout_seconds,
                    username=settings.smtp_username,
                    password=password,
                    starttls=settings.smtp_starttls,
                    transport=self._email_transport,
                    on_error=self._record_delivery_failure,
                    max_queue_size=settings.notification_queue_size,
                    close_timeout=settings.notification_close_timeout_seconds,
                ),
            )

        if self.chat is not None:
            self._append_sink(
                sinks,
                ChatSink.name,
                lambda: ChatSink(
                    self.chat,
                    min_level=settings.chat_sink_min_level,
                    api_base_url=settings.chat_api_base_url,
                    timeout=settings.chat_timeout_seconds,
                    transport=self._chat_transport,
                    on_error=self._record_delivery_failure,
                    max_queue_size=settings.notification_queue_size,
                    close_timeout=settings.notification_close_timeout_seconds,
                ),
            )

        return sinks

    def _append_sink(self, sinks: list[BaseSink], name: str, factory: Callable[[], BaseSink]) -> None:
        try:
            sinks.append(factory())
        except Exception as exc:
            self._record_delivery_failure(name, exc)

    def resolve_directory(self) -> Optional[Path]:
        """
        Pick the log directory: the configured one if it exists and is
        writable, else the default ``logs`` directory (created on demand).
        Records `LogDirectoryNotWritable` and returns ``None`` when neither works.
        """
        configured = self.settings.log_directory
        if configured is not None and _is_writable_dir(Path(configured)):
            return Path(configured)

        fallback = Path(self.settings.default_directory).resolve()
        reason = None
        try:
            fallback.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            reason = str(exc)
        if _is_writable_dir(fallback):
            return fallback

        self._diagnostics.record(
            LogDirectoryNotWritable(
                path=str(fallback),
                configured=str(configured) if configured is not None else None,
                reason=reason,
            )
        )
        return None

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, event_dict: EventDict) -> None:
        level = event_dict.get("level_value", LogLevel.DEBUG)
        for sink in self._sinks:
            if not sink.accepts(level):
                continue
            try:
                sink.emit(event_dict)
            except Exception as exc:
                self._record_delivery_failure(sink.name, exc)

    def multi_sink_renderer(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
        """Final structlog processor: render to all sinks, suppress default output."""
        self.dispatch(event_dict)
        return ""

    def _record_delivery_failure(self, sink: str, error: BaseException) -> None:
        self._diagnostics.record(SinkDeliveryError(sink=sink, error=error))

    def close(self) -> None:
        """Close every sink. The registry stays initialized; later events go nowhere."""
        with self._lock:
            sinks, self._sinks = self._sinks, []
        for sink in sinks:
            try:
                sink.close()
            except Exception as exc:
                self._record_delivery_failure(sink.name, exc)
