"""Tests for logging configuration and formatters."""

import json
import logging
from datetime import date

import pytest

from subscription_notifier.logging import ComponentLoggerAdapter, get_logger
from subscription_notifier.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from subscription_notifier.logging.context import clear_log_context, log_context


@pytest.fixture(autouse=True)
def clean_context():
    """Clear logging context before and after each test."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def logger():
    """Create a test logger with handler for capturing output."""
    test_logger = logging.getLogger("test_logger")
    test_logger.setLevel(logging.DEBUG)
    test_logger.handlers.clear()

    yield test_logger

    test_logger.handlers.clear()


def _key_value_formatter():
    return KeyValueFormatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def test_json_formatter_basic(logger):
    """Test JSONFormatter produces valid JSON with mandatory fields."""
    record = logger.makeRecord("test", logging.INFO, "test.py", 1, "Test message", (), None)

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["level"] == "INFO"
    assert log_obj["message"] == "Test message"
    assert "name" not in log_obj

    # YYYY-MM-DDTHH:MM:SS.sssZ
    assert log_obj["timestamp"].endswith("Z")
    assert len(log_obj["timestamp"]) == 24


def test_json_formatter_with_extra_fields(logger):
    """Test JSONFormatter includes extra fields and coerces dates."""
    record = logger.makeRecord(
        "test",
        logging.INFO,
        "test.py",
        1,
        "Test message",
        (),
        None,
        extra={"event": "selector.completed", "renewal_candidates": 2, "local_date": date(2024, 1, 15)},
    )

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["event"] == "selector.completed"
    assert log_obj["renewal_candidates"] == 2
    assert log_obj["local_date"] == "2024-01-15"


def test_json_formatter_keeps_non_ascii(logger):
    record = logger.makeRecord("test", logging.INFO, "test.py", 1, "续费提醒", (), None)

    assert "续费提醒" in JSONFormatter().format(record)


def test_contextual_filter_adds_static_and_context_fields(logger):
    """Test ContextualFilter adds service metadata and log context."""
    contextual_filter = ContextualFilter(service="test-service", environment="test")

    with log_context(run_id="abc123", subscription_id=7):
        record = logger.makeRecord("test", logging.INFO, "test.py", 1, "Test message", (), None)
        contextual_filter.filter(record)

    assert record.service == "test-service"
    assert record.environment == "test"
    assert record.run_id == "abc123"
    assert record.subscription_id == 7


def test_contextual_filter_explicit_extra_wins(logger):
    contextual_filter = ContextualFilter()

    with log_context(channel="telegram"):
        record = logger.makeRecord(
            "test", logging.INFO, "test.py", 1, "msg", (), None, extra={"channel": "email"}
        )
        contextual_filter.filter(record)

    assert record.channel == "email"


def test_json_formatter_with_context(logger):
    """Test full pipeline: context + filter + JSON formatter."""
    contextual_filter = ContextualFilter(service="subscription-notifier", environment="test")

    with log_context(run_id="abc123"):
        record = logger.makeRecord(
            "test",
            logging.INFO,
            "test.py",
            1,
            "Notification check started",
            (),
            None,
            extra={"event": "pipeline.run.started"},
        )
        contextual_filter.filter(record)
        log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["event"] == "pipeline.run.started"
    assert log_obj["service"] == "subscription-notifier"
    assert log_obj["run_id"] == "abc123"


def test_key_value_formatter_with_extras(logger):
    """Test KeyValueFormatter renders sorted key=value pairs and quotes spaces."""
    record = logger.makeRecord(
        "test",
        logging.INFO,
        "test.py",
        1,
        "Test message",
        (),
        None,
        extra={"event": "test.event", "count": 42, "error": "smtp down", "flag": True, "missing": None},
    )
    record.service = "subscription-notifier"

    output = _key_value_formatter().format(record)

    assert "[INFO]" in output
    assert "Test message" in output
    assert 'count=42 error="smtp down" event=test.event flag=true missing=null' in output
    assert "service=" not in output


def test_component_logger_adapter_merges_extra(caplog):
    component_logger = get_logger("subscription_notifier.test", component="scheduler")

    assert isinstance(component_logger, ComponentLoggerAdapter)
    with caplog.at_level(logging.INFO, logger="subscription_notifier.test"):
        component_logger.info("hello", extra={"event": "scheduler.started"})

    record = caplog.records[-1]
    assert record.component == "scheduler"
    assert record.event == "scheduler.started"


def test_get_logger_without_component_returns_plain_logger():
    assert isinstance(get_logger("subscription_notifier.plain"), logging.Logger)


def test_configure_logging_invalid_level():
    """Test configure_logging rejects invalid log level."""
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(level="INVALID")


def test_configure_logging_invalid_format():
    """Test configure_logging rejects invalid format type."""
    with pytest.raises(ValueError, match="Invalid log format"):
        configure_logging(format_type="invalid")


@pytest.mark.parametrize(
    "format_type,formatter_class",
    [("json", JSONFormatter), ("key-value", KeyValueFormatter)],
)
def test_configure_logging_installs_formatter(format_type, formatter_class):
    configure_logging(level="DEBUG", format_type=format_type, environment="test")

    root_logger = logging.getLogger()
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, formatter_class)
    assert root_logger.level == logging.DEBUG
    assert logging.getLogger("apscheduler").level == logging.WARNING
