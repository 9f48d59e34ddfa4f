# tests/utils/test_logging_utils.py
"""
Tests for the logging helpers: correlation filter, JSON formatter and level parsing.
"""

import json
import logging
import sys

import pytest

from portfolio_dashboard.utils.context import clear_correlation_id, set_correlation_id
from portfolio_dashboard.utils.logging import (
    NO_CORRELATION_ID,
    CorrelationIdFilter,
    JsonFormatter,
    _get_log_level,
)


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("portfolio_dashboard.test", logging.WARNING, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationIdFilter:
    """Tests for CorrelationIdFilter."""

    def test_placeholder_outside_request(self):
        clear_correlation_id()
        record = make_record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == NO_CORRELATION_ID

    def test_stamps_current_id(self):
        set_correlation_id("abc-123")
        try:
            record = make_record()
            CorrelationIdFilter().filter(record)
            assert record.correlation_id == "abc-123"
        finally:
            clear_correlation_id()


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_core_fields(self):
        record = make_record("Oversell clamped", correlation_id="req-1")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "portfolio_dashboard.test"
        assert entry["correlation_id"] == "req-1"
        assert entry["message"] == "Oversell clamped"
        assert "extra" not in entry

    def test_extra_fields_serialized(self):
        record = make_record(ticker="AAPL", on=object())

        entry = json.loads(JsonFormatter().format(record))

        assert entry["extra"]["ticker"] == "AAPL"
        # Non-JSON values fall back to str()
        assert isinstance(entry["extra"]["on"], str)

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        entry = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: boom" in entry["exception"]


class TestGetLogLevel:
    """Tests for _get_log_level()."""

    @pytest.mark.parametrize("name,expected", [
        ("debug", logging.DEBUG),
        (" INFO ", logging.INFO),
        ("warn", logging.WARNING),
        ("Critical", logging.CRITICAL),
    ])
    def test_valid(self, name, expected):
        assert _get_log_level(name) == expected

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            _get_log_level("verbose")
