"""
Logger Configuration.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from codeflow_logger.levels import LogLevel

DEFAULT_EMAIL_SUBJECT = "Error detected in the system"


def check_single_line(value: str, field: str) -> str:
    """Reject header values that would break the message (CR/LF injection)."""
    if "\r" in value or "\n" in value:
        raise ValueError(f"{field} must not contain line breaks")
    return value


class LogFormat(str, Enum):
    LINE = "line"
    JSON = "json"


class LoggerSettings(BaseSettings):
    """Sink configuration for one logger instance.

    Every field can be set from the environment (``CF_LOG_<FIELD>``) or a
    ``.env`` file. Defaults yield a working file-only logger.
    """

    model_config = SettingsConfigDict(
        env_prefix="CF_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # File sink
    log_directory: Optional[Path] = Field(default=None, description="Preferred log directory (must exist)")
    default_directory: Path = Field(default=Path("logs"), description="Fallback directory, relative to cwd")
    log_filename: Optional[str] = Field(default=None, description="File name; defaults to file-YYYY-MM-DD.log")
    file_format: LogFormat = Field(default=LogFormat.LINE, description="File line format")
    channel: str = Field(default="app", description="Channel name written with every event")

    # Minimum levels
    file_sink_min_level: LogLevel = Field(default=LogLevel.DEBUG)
    email_sink_min_level: LogLevel = Field(default=LogLevel.ERROR)
    chat_sink_min_level: LogLevel = Field(default=LogLevel.ERROR)

    # Email transport
    email_subject: str = Field(default=DEFAULT_EMAIL_SUBJECT, description="Subject when none is given")
    smtp_host: str = Field(default="localhost", description="SMTP relay host")
    smtp_port: int = Field(default=25, description="SMTP relay port")
    smtp_username: Optional[str] = Field(default=None)
    smtp_password: Optional[SecretStr] = Field(default=None)
    smtp_starttls: bool = Field(default=False)
    smtp_timeout_seconds: float = Field(default=5.0, gt=0)

    # Chat transport
    chat_api_base_url: str = Field(default="https://api.telegram.org", description="Bot API base URL")
    chat_timeout_seconds: float = Field(default=5.0, gt=0)

    # Background delivery (email and chat)
    notification_queue_size: int = Field(
        default=100, ge=1, description="Pending deliveries per sink before events are dropped"
    )
    notification_close_timeout_seconds: float = Field(
        default=10.0, ge=0, description="Longest wait for the backlog on close"
    )

    max_recorded_failures: int = Field(default=100, ge=1, description="Diagnostic history size")

    @field_validator("file_sink_min_level", "email_sink_min_level", "chat_sink_min_level", mode="before")
    @classmethod
    def _parse_level(cls, value: Any) -> LogLevel:
        return LogLevel.parse(value)

    @field_validator("log_filename")
    @classmethod
    def _check_filename(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if "/" in value or "\\" in value:
            raise ValueError("log_filename must not contain a directory component")
        return value

    @field_validator("email_subject")
    @classmethod
    def _check_email_subject(cls, value: str) -> str:
        return check_single_line(value, "email_subject")

    @field_validator("channel")
    @classmethod
    def _check_channel(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("channel must not be empty")
        return value

    def with_overrides(self, overrides: Mapping[str, Any]) -> "LoggerSettings":
        """Return a validated copy with ``overrides`` applied.

        Raises:
            KeyError: an override names no known field.
            pydantic.ValidationError: an override has an invalid value.
        """
        unknown = sorted(set(overrides) - set(type(self).model_fields))
        if unknown:
            raise KeyError(", ".join(unknown))
        data = self.model_dump()
        data.update(overrides)
        return type(self).model_validate(data)
