"""
Unit tests for logging configuration.

Tests structured JSON logging, text output, logger adapters and the
per-test log handler.
"""

import json
import logging
from pathlib import Path

import pytest

from runreport.core.config import Config
from runreport.core.logging_config import (
    StructuredFormatter,
    TestLogHandler,
    TextFormatter,
    get_logger,
    log_performance,
    setup_logging,
)


def _record(msg="Test message", level=logging.INFO, name="test.component"):
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in list(root.handlers):
        if isinstance(handler.formatter, (StructuredFormatter, TextFormatter)):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestFormatters:
    """Test cases for StructuredFormatter and TextFormatter."""

    def test_structured_basic_log_record(self):
        formatter = StructuredFormatter("1700000000000")

        log_data = json.loads(formatter.format(_record()))

        assert log_data["level"] == "INFO"
        assert log_data["component"] == "test.component"
        assert log_data["launch_id"] == "1700000000000"
        assert log_data["message"] == "Test message"
        assert "timestamp" in log_data

    def test_structured_with_metadata_and_context(self):
        formatter = StructuredFormatter("launch")
        record = _record(level=logging.ERROR)
        record.metadata = {"artifact": "report.pdf", "size": 10}
        record.session_id = "abc"

        log_data = json.loads(formatter.format(record))

        assert log_data["metadata"] == {"artifact": "report.pdf", "size": 10}
        assert log_data["session_id"] == "abc"

    def test_structured_serializes_paths(self):
        formatter = StructuredFormatter("launch")
        record = _record()
        record.metadata = {"path": Path("/tmp/x")}

        log_data = json.loads(formatter.format(record))

        assert log_data["metadata"]["path"] == "/tmp/x"

    def test_text_formatter(self):
        formatter = TextFormatter("launch-1")
        record = _record()
        record.metadata = {"root_id": 5}

        text = formatter.format(record)

        assert "INFO" in text
        assert "Test message" in text
        assert "(launch: launch-1)" in text
        assert "root_id=5" in text


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_setup_logging_writes_log_file(self, tmp_path, restore_root_logger):
        config = Config(report_root=tmp_path / "reports", log_level="DEBUG")

        root = setup_logging(config, "launch-1")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert config.get_log_file_path().exists()

    def test_setup_logging_ci_mode_console_only(self, tmp_path, restore_root_logger):
        config = Config(report_root=tmp_path / "reports", ci_mode=True)

        root = setup_logging(config, "launch-1")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)


class TestGetLogger:
    """Test cases for get_logger and log_performance."""

    def test_plain_logger(self):
        logger = get_logger("runreport.test")

        assert isinstance(logger, logging.Logger)

    def test_context_adapter_adds_extra(self, caplog):
        logger = get_logger("runreport.test", test_dir="login")

        with caplog.at_level(logging.INFO, logger="runreport.test"):
            logger.info("hello")

        assert caplog.records[0].test_dir == "login"

    def test_log_performance(self, caplog):
        logger = logging.getLogger("runreport.perf")

        with caplog.at_level(logging.INFO, logger="runreport.perf"):
            log_performance(logger, "prune", 1.234, removed_count=2)

        record = caplog.records[0]
        assert "prune completed in 1.23s" in record.getMessage()
        assert record.metadata["removed_count"] == 2


class TestTestLogHandler:
    """Test cases for the per-test log handler."""

    def test_writes_to_bound_directory(self, tmp_path):
        handler = TestLogHandler(lambda: tmp_path, formatter=logging.Formatter("%(message)s"))

        handler.emit(_record("first"))
        handler.emit(_record("second"))
        handler.close()

        assert (tmp_path / "test.log").read_text().splitlines() == ["first", "second"]

    def test_ignores_records_without_directory(self, tmp_path):
        handler = TestLogHandler(lambda: None)

        handler.emit(_record())

        assert handler.open_directories() == []
        handler.close()

    def test_release_closes_file_and_reopens_at_new_path(self, tmp_path):
        current = {"dir": tmp_path / "auto"}
        current["dir"].mkdir()
        handler = TestLogHandler(lambda: current["dir"], formatter=logging.Formatter("%(message)s"))

        handler.emit(_record("before"))
        handler.release(current["dir"])
        assert handler.open_directories() == []

        renamed = tmp_path / "custom"
        current["dir"].rename(renamed)
        current["dir"] = renamed
        handler.emit(_record("after"))
        handler.close()

        assert (renamed / "test.log").read_text().splitlines() == ["before", "after"]
