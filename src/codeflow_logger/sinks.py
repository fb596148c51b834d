"""
Log sink abstractions and concrete implementations.

Each sink owns a minimum level and fails independently: the registry isolates
synchronous failures, and network sinks deliver on their own daemon worker
thread, behind a bounded queue and with transport timeouts, so that a slow
SMTP relay or bot API never stalls the caller, the file sink or process exit.
"""

from __future__ import annotations

import queue
import smtplib
import threading
from abc import ABC, abstractmethod
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
from structlog.typing import EventDict

from .config import ChatSinkConfig, EmailSinkConfig, LogFormat
from .formatters import JsonFormatter, LineFormatter, NotificationFormatter
from .levels import LogLevel

ErrorCallback = Callable[[str, BaseException], None]
EmailTransport = Callable[[EmailMessage], None]

_STOP = object()


class DeliveryError(Exception):
    """Delivery failure reported by an external transport."""


# =============================================================================
# Sink Abstraction (Strategy Pattern)
# =============================================================================


class BaseSink(ABC):
    """Abstract base class for log sinks."""

    name = "sink"

    def __init__(self, min_level: LogLevel = LogLevel.DEBUG):
        self.min_level = min_level

    def accepts(self, level: int) -> bool:
        return level >= self.min_level

    @abstractmethod
    def emit(self, event_dict: EventDict) -> None:
        """Emit a log event to the sink."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the sink and release resources."""
        ...


class FileSink(BaseSink):
    """Append-only local file sink, one event per line."""

    name = "file"

    def __init__(
        self,
        path: str | Path,
        *,
        min_level: LogLevel = LogLevel.DEBUG,
        fmt: LogFormat = LogFormat.LINE,
    ):
        super().__init__(min_level)
        self._path = Path(path)
        self._formatter = JsonFormatter if fmt == LogFormat.JSON else LineFormatter
        self._lock = threading.Lock()
        self._file = open(self._path, "a", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, event_dict: EventDict) -> None:
        line = self._formatter.format(event_dict)
        with self._lock:
            self._file.write(line + "\n")
            self._file.flush()

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.close()


class BackgroundSink(BaseSink):
    """
    Sink whose delivery runs on a single daemon worker thread (fire-and-forget).

    Subclasses turn the event into a payload on the caller's thread
    (`prepare`) and ship it on the worker (`deliver`). Worker failures are
    reported through ``on_error``.

    At most ``max_queue_size`` deliveries are pending at any time; further
    events are dropped with a `DeliveryError`. The worker is a daemon, so a
    stalled transport never holds up interpreter exit, and `close` waits at
    most ``close_timeout`` seconds for the backlog.
    """

    def __init__(
        self,
        min_level: LogLevel,
        on_error: Optional[ErrorCallback] = None,
        *,
        max_queue_size: int = 100,
        close_timeout: float = 10.0,
    ):
        super().__init__(min_level)
        self._on_error = on_error
        self._max_queue_size = max(1, max_queue_size)
        self._close_timeout = close_timeout
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._idle = threading.Condition()
        self._pending = 0
        self._closed = False
        self._worker = threading.Thread(target=self._run, name=f"codeflow-{self.name}", daemon=True)
        self._worker.start()

    @abstractmethod
    def prepare(self, event_dict: EventDict) -> Any: ...

    @abstractmethod
    def deliver(self, payload: Any) -> None: ...

    @property
    def pending(self) -> int:
        """Deliveries queued or in flight."""
        with self._idle:
            return self._pending

    def emit(self, event_dict: EventDict) -> None:
        payload = self.prepare(event_dict)
        with self._idle:
            if self._closed:
                raise DeliveryError(f"{self.name} sink is closed")
            if self._pending >= self._max_queue_size:
                raise DeliveryError(f"{self.name} queue full ({self._max_queue_size} pending); event dropped")
            self._pending += 1
            self._queue.put(payload)

    def _run(self) -> None:
        while True:
            payload = self._queue.get()
            if payload is _STOP:
                return
            try:
                self.deliver(payload)
            except Exception as exc:
                self._report(exc)
            finally:
                with self._idle:
                    self._pending -= 1
                    self._idle.notify_all()

    def _report(self, error: BaseException) -> None:
        if self._on_error is not None:
            self._on_error(self.name, error)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every accepted delivery has finished; False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def close(self) -> None:
        with self._idle:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        self._worker.join(self._close_timeout)
        if self._worker.is_alive():
            self._report(
                DeliveryError(
                    f"{self.name} sink closed after {self._close_timeout}s with {self.pending} deliveries pending"
                )
            )


class EmailSink(BackgroundSink):
    """Sends each accepted event as one email through an SMTP relay."""

    name = "email"

    def __init__(
        self,
        config: EmailSinkConfig,
        *,
        min_level: LogLevel = LogLevel.ERROR,
        smtp_host: str = "localhost",
        smtp_port: int = 25,
        timeout: float = 5.0,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = False,
        transport: Optional[EmailTransport] = None,
        on_error: Optional[ErrorCallback] = None,
        max_queue_size: int = 100,
        close_timeout: float = 10.0,
    ):
        super().__init__(min_level, on_error, max_queue_size=max_queue_size, close_timeout=close_timeout)
        self._config = config
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._timeout = timeout
        self._username = username
        self._password = password
        self._starttls = starttls
        self._transport = transport or self._send_smtp

    def prepare(self, event_dict: EventDict) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.sender
        message["To"] = self._config.recipient
        message["Subject"] = self._config.subject
        message.set_content(NotificationFormatter.format(event_dict))
        return message

    def deliver(self, payload: EmailMessage) -> None:
        self._transport(payload)

    def _send_smtp(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self._smtp_host, self._smtp_port, timeout=self._timeout) as smtp:
            if self._starttls:
                smtp.starttls()
            if self._username:
                smtp.login(self._username, self._password or "")
            smtp.send_message(message)


class ChatSink(BackgroundSink):
    """Telegram bot notifications (``sendMessage``)."""

    name = "chat"
    MAX_MESSAGE_LENGTH = 4096

    def __init__(
        self,
        config: ChatSinkConfig,
        *,
        min_level: LogLevel = LogLevel.ERROR,
        api_base_url: str = "https://api.telegram.org",
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
        on_error: Optional[ErrorCallback] = None,
        max_queue_size: int = 100,
        close_timeout: float = 10.0,
    ):
        super().__init__(min_level, on_error, max_queue_size=max_queue_size, close_timeout=close_timeout)
        self._config = config
        self._client = httpx.Client(base_url=api_base_url, timeout=timeout, transport=transport)

    def prepare(self, event_dict: EventDict) -> dict[str, str]:
        return {
            "chat_id": self._config.chat_id,
            "text": NotificationFormatter.format(event_dict, max_length=self.MAX_MESSAGE_LENGTH),
        }

    def deliver(self, payload: dict[str, str]) -> None:
        token = self._config.bot_token.get_secret_value()
        # Errors are re-raised without the request URL, which embeds the token
        try:
            response = self._client.post(f"/bot{token}/sendMessage", data=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DeliveryError(f"chat API responded with HTTP {exc.response.status_code}") from None
        except httpx.HTTPError as exc:
            raise DeliveryError(f"chat API request failed: {type(exc).__name__}") from None

    def close(self) -> None:
        super().close()
        self._client.close()
