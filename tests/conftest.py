import json
import typing as t
from pathlib import Path

import httpx
import pytest

from codeflow_logger import Logger, LoggerSettings, reset_request_identity, set_default_logger


@pytest.fixture(autouse=True)
def fresh_request_identity():
    """Each test starts with a new process-wide request id."""
    reset_request_identity()
    yield
    reset_request_identity()


@pytest.fixture(autouse=True)
def reset_default_logger():
    yield
    set_default_logger(None)


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    path = tmp_path / "logs"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path, log_dir: Path) -> LoggerSettings:
    return LoggerSettings(
        _env_file=None,
        log_directory=log_dir,
        log_filename="test.log",
        file_format="json",
        default_directory=tmp_path / "fallback",
    )


@pytest.fixture
def outbox() -> list:
    """Messages handed to the injected email transport."""
    return []


@pytest.fixture
def chat_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def chat_transport(chat_requests) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        chat_requests.append(request)
        return httpx.Response(200, json={"ok": True})

    return httpx.MockTransport(handler)


@pytest.fixture
def logger(settings, outbox, chat_transport) -> t.Iterator[Logger]:
    logger = Logger(settings, email_transport=outbox.append, chat_transport=chat_transport)
    yield logger
    logger.close()


def _read_events(path: Path) -> list[dict]:
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


def _parse_line_context(line: str) -> dict:
    return json.loads(line[line.index("{") :])


@pytest.fixture
def read_events():
    """Parser for JSON-lines log files."""
    return _read_events


@pytest.fixture
def parse_line_context():
    """Extract the JSON context from a ``[ts] channel.LEVEL: message {...}`` line."""
    return _parse_line_context
