"""
Tests for logging infrastructure.
"""

import json
import logging
import sys

import pytest

from condexpr.core.logging_config import (
    JSONFormatter,
    TextFormatter,
    log_with_context,
    parse_size,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Restore the condexpr logger after each test."""
    package_logger = logging.getLogger("condexpr")
    level = package_logger.level
    yield
    for handler in list(package_logger.handlers):
        handler.close()
        package_logger.removeHandler(handler)
    package_logger.setLevel(level)


def make_record(msg="Test message", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="condexpr.test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=exc_info
    )


class TestLoggingSetup:
    """Test suite for logging setup."""

    def test_setup_logging_defaults(self):
        """Test setting up logging with defaults."""
        setup_logging()

        package_logger = logging.getLogger("condexpr")
        assert package_logger.level == logging.WARNING
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, TextFormatter)

    def test_setup_logging_with_level(self):
        """Test setting up logging with custom level."""
        setup_logging(level="debug")

        assert logging.getLogger("condexpr").level == logging.DEBUG

    def test_setup_logging_json(self):
        """Test JSON format selects the JSON formatter."""
        setup_logging(format_type="json")

        handler = logging.getLogger("condexpr").handlers[0]
        assert isinstance(handler.formatter, JSONFormatter)

    def test_setup_is_idempotent(self):
        """Test repeated setup does not stack handlers."""
        setup_logging()
        setup_logging()

        assert len(logging.getLogger("condexpr").handlers) == 1

    def test_setup_logging_with_file(self, tmp_path):
        """Test setting up logging with file output."""
        log_file = tmp_path / "logs" / "condexpr.log"
        setup_logging(level="INFO", log_file=str(log_file), rotation_size="1KB")

        logging.getLogger("condexpr.test").info("Test message")
        for handler in logging.getLogger("condexpr").handlers:
            handler.flush()

        assert log_file.exists()
        assert "Test message" in log_file.read_text()

        file_handler = logging.getLogger("condexpr").handlers[1]
        assert file_handler.maxBytes == 1024
        assert file_handler.backupCount == 5


class TestJSONFormatter:
    """Test suite for JSON formatter."""

    def test_format_basic_message(self):
        """Test formatting a basic log message."""
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["module"] == "condexpr.test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "context" not in data

    def test_format_with_context(self):
        """Test context is included."""
        record = make_record()
        record.context = {"error_code": "UnrecognizedNodeKind"}

        data = json.loads(JSONFormatter().format(record))

        assert data["context"] == {"error_code": "UnrecognizedNodeKind"}

    def test_format_with_exception(self):
        """Test formatting with exception info."""
        try:
            raise ValueError("Test error")
        except ValueError:
            record = make_record("Error occurred", logging.ERROR, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError" in data["exception"]
        assert "Test error" in data["exception"]


class TestLogWithContext:
    """Test suite for log_with_context."""

    def test_context_attached(self, caplog):
        """Test context lands on the record."""
        logger = logging.getLogger("condexpr.test")
        with caplog.at_level(logging.INFO, logger="condexpr"):
            log_with_context(logger, logging.INFO, "evaluated", result=True)

        assert caplog.records[-1].context == {"result": True}

    def test_no_context(self, caplog):
        """Test plain messages have no context attribute."""
        logger = logging.getLogger("condexpr.test")
        with caplog.at_level(logging.INFO, logger="condexpr"):
            log_with_context(logger, logging.INFO, "plain")

        assert not hasattr(caplog.records[-1], "context")


class TestParseSize:
    """Test suite for size parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("10MB", 10 * 1024 * 1024),
        ("1gb", 1024 ** 3),
        ("512 KB", 512 * 1024),
        ("100B", 100),
        ("2048", 2048),
        ("1.5KB", 1536),
    ])
    def test_valid(self, text, expected):
        """Test valid sizes."""
        assert parse_size(text) == expected

    @pytest.mark.parametrize("text", ["", "MB", "ten", "10XB"])
    def test_invalid(self, text):
        """Test invalid sizes raise ValueError."""
        with pytest.raises(ValueError):
            parse_size(text)


class TestEnumArguments:
    """Test suite for enum-valued settings."""

    def test_enum_level_and_format(self):
        """Test LogLevel and LogFormat members are accepted."""
        from condexpr.core.config_manager import LogFormat, LogLevel

        setup_logging(level=LogLevel.DEBUG, format_type=LogFormat.JSON)

        package_logger = logging.getLogger("condexpr")
        assert package_logger.level == logging.DEBUG
        assert isinstance(package_logger.handlers[0].formatter, JSONFormatter)
