"""
Logger configuration module.

Usage:
    from codeflow_logger.config import LoggerSettings

    settings = LoggerSettings()                 # env: CF_LOG_*
    settings = settings.with_overrides({"log_directory": "/var/log/app"})
"""

from .logging import DEFAULT_EMAIL_SUBJECT, LogFormat, LoggerSettings
from .notifications import ChatSinkConfig, EmailSinkConfig

__all__ = [
    "DEFAULT_EMAIL_SUBJECT",
    "LogFormat",
    "LoggerSettings",
    "EmailSinkConfig",
    "ChatSinkConfig",
]
