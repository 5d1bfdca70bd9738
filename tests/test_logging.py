"""
Tests for the structured logging layer (linen_kernel/logging_config.py).

Each test gets a private handler writing to a StringIO buffer; the session
configuration from conftest is torn down first and restored afterwards.
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from linen_kernel.domain.status import BatchStatus
from linen_kernel.exceptions import InvalidTransitionError
from linen_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_buffer():
    """Configure logging into a buffer and return a reader of parsed records."""
    reset_logging()
    buffer = StringIO()
    configure_logging(level=logging.INFO, stream=buffer)

    def read() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    yield read
    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestRecordShape:
    def test_core_keys(self, log_buffer):
        get_logger("engines.summary").info("batch_summary_calculated")

        (record,) = log_buffer()
        assert record["message"] == "batch_summary_calculated"
        assert record["level"] == "INFO"
        assert record["logger"] == "linen_kernel.engines.summary"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_payload_merged(self, log_buffer):
        get_logger("services.batch").info(
            "batch_created", extra={"item_count": 3, "has_discrepancy": True}
        )
        (record,) = log_buffer()
        assert record["item_count"] == 3
        assert record["has_discrepancy"] is True

    def test_money_ids_dates_and_enums_serialised(self, log_buffer):
        batch_id = uuid4()
        get_logger("test").info(
            "values",
            extra={
                "batch_ref": batch_id,
                "grand_total": Decimal("80.50"),
                "pickup_date": date(2024, 1, 15),
                "at": datetime(2024, 1, 15, 9, tzinfo=timezone.utc),
                "status": BatchStatus.WASHING,
            },
        )
        (record,) = log_buffer()
        assert record["batch_ref"] == str(batch_id)
        assert record["grand_total"] == "80.50"
        assert record["pickup_date"] == "2024-01-15"
        assert record["at"].startswith("2024-01-15T09:00:00")
        assert record["status"] == "washing"

    def test_typed_error_context(self, log_buffer):
        try:
            raise InvalidTransitionError("completed", "washing", "no going back")
        except InvalidTransitionError:
            get_logger("engines.status").exception("transition_failed")

        (record,) = log_buffer()
        assert record["level"] == "ERROR"
        assert record["exc_code"] == "INVALID_TRANSITION"
        assert record["exc_from_status"] == "completed"
        assert record["exc_reason"] == "no going back"
        assert "Traceback" in record["traceback"]

    def test_level_threshold(self, log_buffer):
        logger = get_logger("test")
        logger.debug("hidden")
        logger.warning("shown")
        assert [r["message"] for r in log_buffer()] == ["shown"]

    def test_formatter_usable_standalone(self):
        record = logging.LogRecord("linen_kernel.x", logging.INFO, __file__, 1, "msg %s", ("a",), None)
        assert json.loads(StructuredFormatter().format(record))["message"] == "msg a"


class TestLogContext:
    def test_context_lands_on_records(self, log_buffer):
        LogContext.set(correlation_id="req-7", actor_id="user-1")
        get_logger("test").info("hello")
        (record,) = log_buffer()
        assert record["correlation_id"] == "req-7"
        assert record["actor_id"] == "user-1"

    def test_none_leaves_field_untouched(self):
        LogContext.set(batch_id="b-1")
        LogContext.set(batch_id=None, trace_id="t-1")
        assert LogContext.get_all() == {"batch_id": "b-1", "trace_id": "t-1"}

    def test_bind_is_scoped(self):
        LogContext.set(batch_id="outer")
        with LogContext.bind(batch_id="inner", actor_id="a"):
            assert LogContext.get_all() == {"batch_id": "inner", "actor_id": "a"}
        assert LogContext.get_all() == {"batch_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(trace_id="t"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="client_id"):
            LogContext.set(client_id="c-1")

    def test_clear(self):
        LogContext.set(actor_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}


class TestConfigureLogging:
    def test_second_call_is_ignored(self, log_buffer):
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("linen_kernel").handlers) == 1

    def test_reset_detaches_handler(self, log_buffer):
        reset_logging()
        base = logging.getLogger("linen_kernel")
        assert base.handlers == []
        assert base.level == logging.WARNING
