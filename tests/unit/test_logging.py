"""Tests for the verbosity logger and log bus."""

import pytest

from savesync.core import log_bus as log_bus_module
from savesync.core.config import LoggingPolicy
from savesync.core.log_bus import LogBus, LogRecord
from savesync.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)


class TestVerbosity:
    """Test verbosity filtering."""

    def test_default_normal(self):
        assert get_verbosity() == VerbosityLevel.NORMAL

    def test_set_by_int(self):
        set_verbosity(3)
        assert get_verbosity() == VerbosityLevel.DEBUG

    def test_quiet_hides_info(self, capsys):
        set_verbosity(VerbosityLevel.QUIET)
        log = get_logger("tests.quiet")
        log.info("hidden")
        log.warning("shown")
        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "[warning] shown" in out

    def test_verbose_shows_verbose_not_debug(self, capsys):
        set_verbosity(VerbosityLevel.VERBOSE)
        log = get_logger("tests.verbose")
        log.verbose("detail")
        log.debug("internal")
        out = capsys.readouterr().out
        assert "[verbose] detail" in out
        assert "internal" not in out

    def test_error_always_to_stderr(self, capsys):
        set_verbosity(VerbosityLevel.QUIET)
        get_logger("tests.error").error("bad")
        captured = capsys.readouterr()
        assert "[error] bad" in captured.err
        assert captured.out == ""


class TestPolicy:
    def test_apply_logging_policy(self):
        apply_logging_policy(LoggingPolicy(level_name="debug", color=False, sources={}))
        assert get_verbosity() == VerbosityLevel.DEBUG


class TestLogBus:
    """Records reach subscribers of the process-wide bus."""

    @pytest.fixture
    def bus(self, monkeypatch) -> LogBus:
        fresh = LogBus()
        monkeypatch.setattr(log_bus_module, "_LOG_BUS", fresh)
        return fresh

    def test_records_published(self, bus, capsys):
        seen: list[LogRecord] = []
        bus.subscribe(seen.append)
        set_colors(False)
        get_logger("tests.bus").info("hello")

        assert seen == [LogRecord(level_name="INFO", plain="[info] hello", logger_name="tests.bus")]

    def test_filtered_records_not_published(self, bus):
        seen: list[LogRecord] = []
        bus.subscribe(seen.append)
        set_verbosity(VerbosityLevel.NORMAL)
        get_logger("tests.bus").debug("nope")
        assert seen == []

    def test_failing_subscriber_is_reported(self, bus, capsys):
        seen: list[LogRecord] = []

        def boom(record: LogRecord) -> None:
            raise RuntimeError("subscriber failure")

        bus.subscribe(boom)
        bus.subscribe(seen.append)
        get_logger("tests.bus").info("still printed")

        captured = capsys.readouterr()
        assert "[info] still printed" in captured.out
        assert "subscriber failure" in captured.err
        assert len(seen) == 1
