"""Tests for the structured logging system (staff_portal/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from staff_portal.exceptions import AlreadyApprovedError, InvalidStateError
from staff_portal.logging_config import (
    CONTEXT_FIELDS,
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests and restore the suite's configuration."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


class _JsonLines:
    """A StringIO-backed handler plus a reader for the JSON lines it received."""

    def __init__(self):
        self.stream = StringIO()
        self.handler = logging.StreamHandler(self.stream)
        self.handler.setFormatter(StructuredFormatter())

    def records(self) -> list[dict]:
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line]

    def first(self) -> dict:
        return self.records()[0]


@pytest.fixture
def log_lines():
    """Configure the portal logger (default INFO) to write into memory."""
    lines = _JsonLines()
    configure_logging(handler=lines.handler)
    return lines


class TestStructuredFormatter:
    def test_core_keys(self, log_lines):
        get_logger("test").info("hello")

        record = log_lines.first()
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "staff_portal.test"
        assert "ts" in record

    def test_extra_fields_become_keys(self, log_lines):
        get_logger("services.review").info(
            "submission_reviewed", extra={"new_status": "approved", "review_count": 2},
        )

        record = log_lines.first()
        assert record["new_status"] == "approved"
        assert record["review_count"] == 2

    def test_bound_context_on_every_line(self, log_lines):
        LogContext.set(correlation_id="abc-123", document_id="doc-1")
        get_logger("test").info("first")
        get_logger("test").info("second")

        for record in log_lines.records():
            assert record["correlation_id"] == "abc-123"
            assert record["document_id"] == "doc-1"

    def test_context_beats_extra_with_same_key(self, log_lines):
        LogContext.set(document_id="from-context")
        get_logger("test").info("collide", extra={"document_id": "from-extra"})

        assert log_lines.first()["document_id"] == "from-context"

    def test_plain_exception(self, log_lines):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = log_lines.first()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "traceback" in record

    def test_portal_error_attributes(self, log_lines):
        try:
            raise InvalidStateError("sub-1", "submitted", "cannot modify a submitted document")
        except InvalidStateError:
            get_logger("test").error("lifecycle_error", exc_info=True)

        record = log_lines.first()
        assert record["exc_code"] == "INVALID_STATE"
        assert record["exc_type"] == "InvalidStateError"
        assert record["exc_entity_id"] == "sub-1"
        assert record["exc_status"] == "submitted"

    def test_subclass_code_reported(self, log_lines):
        try:
            raise AlreadyApprovedError("sub-2")
        except AlreadyApprovedError:
            get_logger("test").warning("blocked", exc_info=True)

        record = log_lines.first()
        assert record["exc_code"] == "ALREADY_APPROVED"
        assert record["exc_status"] == "approved"

    def test_unbound_context_is_absent(self, log_lines):
        get_logger("test").info("bare_message")

        record = log_lines.first()
        assert not set(CONTEXT_FIELDS) & set(record)

    def test_uuid_and_enum_values(self, log_lines):
        from staff_portal.domain.submission import SubmissionStatus

        uid = uuid4()
        get_logger("test").info("typed", extra={"user_id": uid, "status": SubmissionStatus.DRAFT})

        record = log_lines.first()
        assert record["user_id"] == str(uid)
        assert record["status"] == "draft"

    def test_debug_dropped_at_default_level(self, log_lines):
        logger = get_logger("test")
        logger.info("kept")
        logger.warning("kept_too", extra={"k": "v"})
        logger.debug("dropped")

        assert [r["message"] for r in log_lines.records()] == ["kept", "kept_too"]


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(correlation_id="x", submission_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "submission_id": "y"}

    def test_set_ignores_none(self):
        LogContext.set(correlation_id="x")
        LogContext.set(correlation_id=None, actor_id="a")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "a"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_outer_value(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner"):
            assert LogContext.get_all()["correlation_id"] == "inner"
        assert LogContext.get_all()["correlation_id"] == "outer"

    def test_bind_restores_unset(self):
        with LogContext.bind(actor_id="temp"):
            assert LogContext.get_all()["actor_id"] == "temp"
        assert "actor_id" not in LogContext.get_all()

    def test_bind_restores_after_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(action="submit_document"):
                raise RuntimeError("inside")
        assert LogContext.get_all() == {}

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(action="review_submission", not_a_field="x"):
            assert LogContext.get_all() == {"action": "review_submission"}

    def test_every_field(self):
        LogContext.set(**{name: name[:1] for name in CONTEXT_FIELDS})
        ctx = LogContext.get_all()
        assert set(ctx) == set(CONTEXT_FIELDS)
        assert ctx["action"] == "a"


class TestConfigureLogging:
    def test_second_call_is_noop(self):
        reset_logging()
        first = _JsonLines().handler
        configure_logging(handler=first)
        configure_logging(handler=_JsonLines().handler)
        assert logging.getLogger("staff_portal").handlers == [first]

    def test_get_logger_prefix(self):
        assert get_logger("services.submission").name == "staff_portal.services.submission"

    def test_nested_loggers_propagate_to_portal_handler(self):
        lines = _JsonLines()
        configure_logging(handler=lines.handler, level=logging.DEBUG)
        get_logger("services.training.video").debug("sample_skipped")

        record = lines.first()
        assert record["message"] == "sample_skipped"
        assert record["logger"] == "staff_portal.services.training.video"

    def test_reset_allows_reconfiguration(self):
        configure_logging(handler=_JsonLines().handler)
        reset_logging()
        lines = _JsonLines()
        configure_logging(handler=lines.handler)
        get_logger("test").info("after_reset")
        assert lines.first()["message"] == "after_reset"
