"""
Logger error taxonomy.

Errors are recorded as values (see `codeflow_logger.diagnostics`) and never
raised across the public facade. The hierarchy separates the three failure
families: configuration, per-emission input, and per-sink delivery.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LoggerError(Exception):
    """Root of every failure the facade records.

    Attributes:
        code: Stable machine-readable identifier.
        details: Structured diagnostic data (never contains secrets).
    """

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


# ================================
# Configuration failures
# The affected sink or setting is simply not activated.
# ================================


class ConfigurationError(LoggerError):
    """Base class for rejected configuration."""

    pass


class InvalidEmailAddress(ConfigurationError):
    def __init__(self, *, field: str, value: str) -> None:
        super().__init__(
            f"Invalid email address provided for logging: {field}",
            code="INVALID_EMAIL_ADDRESS",
            details={"field": field, "value": value},
        )


class InvalidChatCredentials(ConfigurationError):
    def __init__(self, *, missing: list[str]) -> None:
        super().__init__(
            "Invalid chat bot token or chat id provided for logging",
            code="INVALID_CHAT_CREDENTIALS",
            details={"missing": missing},
        )


class InvalidEmailSubject(ConfigurationError):
    def __init__(self, *, value: str) -> None:
        super().__init__(
            "Email subject must be a single line",
            code="INVALID_EMAIL_SUBJECT",
            details={"value": value},
        )


class LogDirectoryNotWritable(ConfigurationError):
    def __init__(self, *, path: str, configured: Optional[str] = None, reason: Optional[str] = None) -> None:
        super().__init__(
            f"Log directory is not writable: {path}",
            code="LOG_DIRECTORY_NOT_WRITABLE",
            details={"path": path, "configured": configured, "reason": reason},
        )


class InvalidSetting(ConfigurationError):
    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="INVALID_SETTING", details=details)


class ConfigurationFrozen(ConfigurationError):
    """Configuration change arriving after the first emission."""

    def __init__(self, *, operation: str) -> None:
        super().__init__(
            f"Logger already initialized; '{operation}' has no effect",
            code="CONFIGURATION_FROZEN",
            details={"operation": operation},
        )


# ================================
# Per-emission input failures
# The single event is dropped.
# ================================


class EmissionError(LoggerError):
    pass


class MissingMessage(EmissionError):
    def __init__(self, *, level: Optional[str] = None) -> None:
        super().__init__(
            "Log level or message is missing",
            code="MISSING_MESSAGE",
            details={"level": level},
        )


class UnknownLevel(EmissionError):
    def __init__(self, *, level: Any) -> None:
        super().__init__(
            f"Unknown log level: {level!r}",
            code="UNKNOWN_LEVEL",
            details={"level": repr(level)},
        )


# ================================
# Per-sink delivery failures
# Isolated to one sink; the others still receive the event.
# ================================


class SinkDeliveryError(LoggerError):
    def __init__(self, *, sink: str, error: BaseException) -> None:
        super().__init__(
            f"Sink '{sink}' failed to deliver event: {error}",
            code="SINK_DELIVERY_FAILED",
            details={"sink": sink, "error_type": type(error).__name__},
        )
        self.sink = sink
        self.__cause__ = error
