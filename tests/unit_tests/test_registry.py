"""
Sink registry tests: lazy single initialization, directory resolution and
failure isolation during dispatch.
"""

from __future__ import annotations

import threading

import pytest

from codeflow_logger.config import ChatSinkConfig, EmailSinkConfig, LoggerSettings
from codeflow_logger.diagnostics import Diagnostics
from codeflow_logger.errors import LogDirectoryNotWritable, SinkDeliveryError
from codeflow_logger.levels import LogLevel
from codeflow_logger.registry import SinkRegistry, default_log_filename
from codeflow_logger.sinks import BaseSink, ChatSink, EmailSink, FileSink


class RecordingSink(BaseSink):
    name = "recording"

    def __init__(self, min_level=LogLevel.DEBUG):
        super().__init__(min_level)
        self.events = []

    def emit(self, event_dict):
        self.events.append(event_dict)

    def close(self):
        pass


class ExplodingSink(RecordingSink):
    name = "exploding"

    def emit(self, event_dict):
        raise OSError("disk full")


def event(level: LogLevel) -> dict:
    return {"level": level.method_name, "level_value": int(level), "message": "m", "context": {}}


@pytest.fixture
def diagnostics() -> Diagnostics:
    return Diagnostics()


@pytest.fixture
def registry(settings, diagnostics, outbox):
    registry = SinkRegistry(settings, diagnostics, email_transport=outbox.append)
    yield registry
    registry.close()


# ================================
# Initialization
# ================================


class TestInitialization:
    def test_not_initialized_until_first_call(self, registry):
        assert registry.initialized is False
        assert registry.sinks == []
        assert registry.log_path is None

    def test_repeated_calls_build_one_file_sink(self, registry, monkeypatch):
        calls = []
        original = registry.resolve_directory

        def spy():
            calls.append(1)
            return original()

        monkeypatch.setattr(registry, "resolve_directory", spy)
        for _ in range(5):
            registry.ensure_initialized()
        file_sinks = [s for s in registry.sinks if isinstance(s, FileSink)]
        assert len(file_sinks) == 1
        assert len(calls) == 1

    def test_concurrent_first_calls_initialize_once(self, registry, monkeypatch):
        builds = []
        original = registry._build_sinks

        def counting_build():
            builds.append(1)
            return original()

        monkeypatch.setattr(registry, "_build_sinks", counting_build)
        barrier = threading.Barrier(16)

        def worker():
            barrier.wait()
            registry.ensure_initialized()

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(builds) == 1
        assert len(registry.sinks) == 1

    def test_file_sink_path_and_level(self, registry, log_dir):
        registry.ensure_initialized()
        (sink,) = registry.sinks
        assert registry.log_path == log_dir / "test.log"
        assert sink.path == log_dir / "test.log"
        assert sink.min_level is LogLevel.DEBUG

    def test_default_filename_is_date_stamped(self, settings, diagnostics, log_dir):
        registry = SinkRegistry(settings.with_overrides({"log_filename": None}), diagnostics)
        registry.ensure_initialized()
        assert registry.log_path == log_dir / default_log_filename()
        assert registry.log_path.name.startswith("file-")
        registry.close()

    def test_optional_sinks_only_when_enabled(self, registry):
        registry.ensure_initialized()
        assert [type(s) for s in registry.sinks] == [FileSink]

    def test_optional_sinks_built_from_configuration(self, registry):
        registry.email = EmailSinkConfig(sender="infra@app.com", recipient="ops@app.com")
        registry.chat = ChatSinkConfig(bot_token="123:ABC", chat_id="42")
        registry.ensure_initialized()
        kinds = [type(s) for s in registry.sinks]
        assert kinds == [FileSink, EmailSink, ChatSink]
        assert registry.sinks[1].min_level is LogLevel.ERROR
        assert registry.sinks[2].min_level is LogLevel.ERROR

    def test_configuration_after_initialization_not_applied(self, registry):
        registry.ensure_initialized()
        registry.email = EmailSinkConfig(sender="infra@app.com", recipient="ops@app.com")
        registry.ensure_initialized()
        assert [type(s) for s in registry.sinks] == [FileSink]


# ================================
# Directory resolution
# ================================


class TestDirectoryResolution:
    def test_missing_configured_directory_falls_back(self, tmp_path, diagnostics):
        settings = LoggerSettings(
            _env_file=None,
            log_directory=tmp_path / "does-not-exist",
            default_directory=tmp_path / "fallback" / "logs",
        )
        registry = SinkRegistry(settings, diagnostics)
        registry.ensure_initialized()
        assert registry.log_path.parent == (tmp_path / "fallback" / "logs").resolve()
        assert registry.log_path.parent.is_dir()
        registry.close()

    def test_unusable_directories_record_failure(self, tmp_path, diagnostics):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        settings = LoggerSettings(
            _env_file=None,
            log_directory=tmp_path / "missing",
            default_directory=blocker / "logs",
        )
        registry = SinkRegistry(settings, diagnostics)
        registry.ensure_initialized()
        assert registry.initialized is True
        assert registry.sinks == []
        assert registry.log_path is None
        failure = diagnostics.last_failure
        assert isinstance(failure, LogDirectoryNotWritable)
        assert failure.details["configured"] == str(tmp_path / "missing")
        registry.dispatch(event(LogLevel.ERROR))

    def test_unusable_directory_keeps_notification_sinks(self, tmp_path, diagnostics, outbox):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        settings = LoggerSettings(_env_file=None, default_directory=blocker / "logs")
        registry = SinkRegistry(settings, diagnostics, email_transport=outbox.append)
        registry.email = EmailSinkConfig(sender="infra@app.com", recipient="ops@app.com")
        registry.ensure_initialized()
        assert [type(s) for s in registry.sinks] == [EmailSink]
        registry.close()


# ================================
# Dispatch
# ================================


class TestDispatch:
    def test_level_gating(self, registry):
        registry.ensure_initialized()
        sink = RecordingSink(min_level=LogLevel.ERROR)
        registry._sinks.append(sink)
        registry.dispatch(event(LogLevel.WARNING))
        registry.dispatch(event(LogLevel.ERROR))
        registry.dispatch(event(LogLevel.EMERGENCY))
        assert [e["level"] for e in sink.events] == ["error", "emergency"]

    def test_failing_sink_does_not_block_others(self, registry, diagnostics):
        registry.ensure_initialized()
        after = RecordingSink()
        registry._sinks[:0] = [ExplodingSink()]
        registry._sinks.append(after)
        registry.dispatch(event(LogLevel.INFO))
        assert len(after.events) == 1
        failure = diagnostics.last_failure
        assert isinstance(failure, SinkDeliveryError)
        assert failure.sink == "exploding"
        assert isinstance(failure.__cause__, OSError)

    def test_renderer_returns_empty_string(self, registry):
        registry.ensure_initialized()
        assert registry.multi_sink_renderer(None, "info", event(LogLevel.INFO)) == ""

    def test_close_empties_sinks_but_stays_initialized(self, registry):
        registry.ensure_initialized()
        registry.close()
        assert registry.sinks == []
        assert registry.initialized is True
        registry.dispatch(event(LogLevel.INFO))
