"""
Notification sink credentials.

Built by ``Logger.enable_email_sink`` / ``Logger.enable_chat_sink``; a
successfully validated instance is what enables the sink.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, SecretStr, field_validator

from .logging import DEFAULT_EMAIL_SUBJECT, check_single_line


class EmailSinkConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    sender: EmailStr
    recipient: EmailStr
    subject: str = DEFAULT_EMAIL_SUBJECT

    @field_validator("subject")
    @classmethod
    def _subject_single_line(cls, value: str) -> str:
        return check_single_line(value, "subject")


class ChatSinkConfig(BaseModel):
    """Telegram bot credentials."""

    model_config = ConfigDict(frozen=True)

    bot_token: SecretStr
    chat_id: str

    @field_validator("bot_token", "chat_id", mode="before")
    @classmethod
    def _not_blank(cls, value: Any) -> str:
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        if value is None or isinstance(value, bool):
            raise ValueError("value must not be empty")
        value = str(value).strip()
        if not value:
            raise ValueError("value must not be empty")
        return value
