"""
Tests for structured logging.
"""

import io
import json
import logging

import pytest

from dcb.logging_config import get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_json_logs_carry_trace_id(monkeypatch, restore_root_logger):
    monkeypatch.setenv("DCB_LOG_FORMAT", "json")
    monkeypatch.setenv("DCB_LOG_LEVEL", "INFO")
    stream = io.StringIO()
    setup_logging(stream=stream)

    get_logger("dcb.test", trace_id="RegisterAccount").info("Handling command")

    record = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert record["message"] == "Handling command"
    assert record["level"] == "INFO"
    assert record["logger"] == "dcb.test"
    assert record["trace_id"] == "RegisterAccount"
    assert "timestamp" in record


def test_plain_loggers_get_default_trace_id(monkeypatch, restore_root_logger):
    monkeypatch.setenv("DCB_LOG_FORMAT", "text")
    stream = io.StringIO()
    setup_logging(stream=stream)

    logging.getLogger("dcb.other").warning("Something happened")

    line = stream.getvalue().strip()
    assert "Something happened" in line
    assert "[trace_id=N/A]" in line


def test_level_filters(monkeypatch, restore_root_logger):
    monkeypatch.setenv("DCB_LOG_LEVEL", "WARNING")
    stream = io.StringIO()
    setup_logging(stream=stream)

    logging.getLogger("dcb.test").info("hidden")

    assert stream.getvalue() == ""
