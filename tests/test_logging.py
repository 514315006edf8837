"""
Tests for structured logging (billing_kernel/logging_config.py).

Covers:
- JSON record layout, extras, Decimal and exception serialization
- Agency/service context binding and restoration
- configure_logging() idempotence and logger namespacing
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from billing_engines.breakdown import BillingMode
from billing_kernel.exceptions import NegativeAmountError
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_stream():
    """Fresh billing_kernel configuration writing into a StringIO."""
    reset_logging()
    stream = StringIO()
    configure_logging(stream=stream, level=logging.DEBUG)
    yield stream
    reset_logging()


def _records(stream: StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestRecordLayout:
    """What one JSON line contains."""

    def test_base_fields(self, log_stream):
        get_logger("engines.breakdown").info("billing_breakdown_started")

        (record,) = _records(log_stream)
        assert record["level"] == "INFO"
        assert record["message"] == "billing_breakdown_started"
        assert record["logger"] == "billing_kernel.engines.breakdown"
        assert "ts" in record

    def test_extras_are_top_level(self, log_stream):
        get_logger("engines.summary").debug(
            "service_totals_summarized",
            extra={"currencies": ["ARS", "USD"], "service_count": 3},
        )

        (record,) = _records(log_stream)
        assert record["currencies"] == ["ARS", "USD"]
        assert record["service_count"] == 3

    def test_decimal_and_enum_values(self, log_stream):
        get_logger("test").info(
            "values",
            extra={"commission": Decimal("173.55"), "mode": BillingMode.MANUAL},
        )

        (record,) = _records(log_stream)
        assert record["commission"] == "173.55"
        assert record["mode"] == "manual"

    def test_billing_error_fields(self, log_stream):
        """Typed errors contribute their code and structured attributes."""
        try:
            raise NegativeAmountError("vat_21_amount", Decimal("-1"))
        except NegativeAmountError:
            get_logger("test").error("input_error", exc_info=True)

        (record,) = _records(log_stream)
        assert record["exc_type"] == "NegativeAmountError"
        assert record["exc_code"] == "NEGATIVE_AMOUNT"
        assert record["exc_field_name"] == "vat_21_amount"
        assert record["exc_value"] == "-1"
        assert "traceback" in record

    def test_plain_exception_has_no_code(self, log_stream):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = _records(log_stream)
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record

    def test_level_filters(self):
        reset_logging()
        stream = StringIO()
        configure_logging(stream=stream)
        try:
            logger = get_logger("test")
            logger.debug("dropped")
            logger.warning("kept")
        finally:
            reset_logging()

        assert [r["message"] for r in _records(stream)] == ["kept"]


class TestLogContext:
    """Agency and service identifiers on records."""

    def test_bound_fields_on_records(self, log_stream):
        with LogContext.bind(agency_id=7, service_id="s-12"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")

        inside, outside = _records(log_stream)
        assert inside["agency_id"] == "7"
        assert inside["service_id"] == "s-12"
        assert "agency_id" not in outside

    def test_bind_restores_previous_value(self):
        LogContext.set(agency_id="outer")
        with LogContext.bind(agency_id="inner"):
            assert LogContext.get_all() == {"agency_id": "inner"}
        assert LogContext.get_all() == {"agency_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(service_id="s-1"):
                raise RuntimeError("calculation failed")

        assert LogContext.get_all() == {}

    def test_none_leaves_field_untouched(self):
        LogContext.set(agency_id="3")
        with LogContext.bind(agency_id=None, service_id="s-9"):
            assert LogContext.get_all() == {"agency_id": "3", "service_id": "s-9"}

    def test_clear(self):
        LogContext.set(agency_id="3", service_id="s-1")
        LogContext.clear()

        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            LogContext.set(booking_id="b-1")


class TestConfigureLogging:
    """Initialization."""

    def test_second_call_is_noop(self):
        reset_logging()
        try:
            configure_logging(stream=StringIO())
            configure_logging(stream=StringIO())
            assert len(logging.getLogger("billing_kernel").handlers) == 1
        finally:
            reset_logging()

    def test_custom_handler_gets_formatter(self):
        reset_logging()
        handler = logging.StreamHandler(StringIO())
        try:
            configure_logging(handler=handler)
            assert isinstance(handler.formatter, StructuredFormatter)
        finally:
            reset_logging()

    def test_get_logger_namespace(self):
        assert get_logger("config").name == "billing_kernel.config"
