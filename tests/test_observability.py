"""Structured logging and correlation ids."""

import io
import json
import logging

import pytest

from pubky_app.runtime.config import get_config_manager
from pubky_app.runtime.observability import (
    ContentLogger,
    LogEvent,
    StructuredHandler,
    correlation_id_var,
    generate_correlation_id,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    timed_operation,
)


@pytest.fixture
def stream_logger():
    """A ContentLogger writing to an in-memory stream."""
    logger = ContentLogger("test_observability", level="debug")
    stream = io.StringIO()
    handler = StructuredHandler(stream=stream, fmt="json")
    logger.stdlib_logger.addHandler(handler)
    yield logger, stream
    logger.stdlib_logger.removeHandler(handler)


def _events(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestLogEvent:

    def test_drops_empty_fields(self):
        event = LogEvent(timestamp="t", level="info", logger="x", message="m")
        assert event.to_dict() == {"timestamp": "t", "level": "info", "logger": "x", "message": "m"}

    def test_json_keeps_non_ascii(self):
        event = LogEvent(timestamp="t", level="info", logger="x", message="héllo")
        assert "héllo" in event.to_json()


class TestStructuredHandler:

    def test_json_line(self, stream_logger):
        logger, stream = stream_logger
        token = set_correlation_id("corr-abc")
        try:
            logger.warning("Record rejected", operation="validate", error_code="identifier_mismatch", kind="tag")
        finally:
            correlation_id_var.reset(token)

        event = _events(stream)[0]
        assert event["level"] == "warning"
        assert event["logger"] == "pubky_app.test_observability"
        assert event["message"] == "Record rejected"
        assert event["operation"] == "validate"
        assert event["error_code"] == "identifier_mismatch"
        assert event["correlation_id"] == "corr-abc"
        assert event["context"] == {"kind": "tag"}

    def test_text_format(self):
        stream = io.StringIO()
        handler = StructuredHandler(stream=stream, fmt="text")
        record = logging.LogRecord("pubky_app.x", logging.ERROR, __file__, 1, "boom", None, None)
        record.error_code = "label_too_long"
        record.context = {"kind": "tag"}
        handler.emit(record)
        line = stream.getvalue()
        assert "ERROR pubky_app.x: boom [label_too_long] kind=tag" in line

    def test_exception_is_included(self, stream_logger):
        logger, stream = stream_logger
        try:
            raise RuntimeError("kaput")
        except RuntimeError:
            logger.error("Failure", error_code="internal", exc_info=True)
        event = _events(stream)[0]
        assert "RuntimeError: kaput" in event["exception"]

    def test_level_filtering(self):
        logger = ContentLogger("test_observability_quiet", level="warning")
        stream = io.StringIO()
        logger.stdlib_logger.addHandler(StructuredHandler(stream=stream))
        logger.info("hidden")
        logger.warning("shown")
        assert [e["message"] for e in _events(stream)] == ["shown"]

    def test_level_follows_config(self):
        logger = ContentLogger("test_observability_follow")
        stream = io.StringIO()
        logger.stdlib_logger.addHandler(StructuredHandler(stream=stream, fmt="json"))
        logger.info("before")
        get_config_manager().set("observability.log_level", "warning")
        logger.info("hidden")
        logger.warning("shown")
        assert [e["message"] for e in _events(stream)] == ["before", "shown"]

    def test_format_follows_config(self):
        stream = io.StringIO()
        handler = StructuredHandler(stream=stream)
        record = logging.LogRecord("pubky_app.x", logging.INFO, __file__, 1, "hello", None, None)
        handler.emit(record)
        get_config_manager().set("observability.log_format", "text")
        handler.emit(record)
        first, second = stream.getvalue().splitlines()
        assert json.loads(first)["message"] == "hello"
        assert "INFO pubky_app.x: hello" in second


class TestCorrelationIds:

    def test_generate(self):
        cid = generate_correlation_id()
        assert cid.startswith("corr-")
        assert len(cid) == 17
        assert cid != generate_correlation_id()

    def test_get_creates_once(self):
        token = correlation_id_var.set("")
        try:
            first = get_correlation_id()
            assert first
            assert get_correlation_id() == first
        finally:
            correlation_id_var.reset(token)


class TestTimedOperation:

    def test_success_logged_at_debug(self, stream_logger):
        logger, stream = stream_logger

        @timed_operation(logger, "derive")
        def derive():
            return 7

        assert derive() == 7
        event = _events(stream)[0]
        assert event["message"] == "Operation derive completed"
        assert event["level"] == "debug"
        assert event["duration_ms"] >= 0

    def test_failure_logged_and_reraised(self, stream_logger):
        logger, stream = stream_logger

        @timed_operation(logger, "derive")
        def derive():
            raise ValueError("nope")

        with pytest.raises(ValueError):
            derive()
        event = _events(stream)[0]
        assert event["message"] == "Operation derive failed"
        assert event["level"] == "info"

    def test_preserves_metadata(self, stream_logger):
        logger, _ = stream_logger

        @timed_operation(logger, "derive")
        def derive():
            """Docstring."""

        assert derive.__name__ == "derive"
        assert derive.__doc__ == "Docstring."


def test_get_logger_is_cached():
    assert get_logger("validation") is get_logger("validation")
