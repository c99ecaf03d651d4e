"""Tests for statement_kernel.logging_config: JSON lines, bound context, setup."""

import json
import logging
from datetime import UTC, date, datetime
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from statement_kernel.exceptions import DuplicatePeriodError, StatementNotFoundError
from statement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _isolated_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def emitted():
    """Route statement_kernel logs into a buffer; call the fixture to read them back."""
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    configure_logging(handler=handler, level=logging.DEBUG)

    def read() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    return read


log = get_logger("tests.logging")


class TestJsonLines:
    def test_base_fields(self, emitted):
        log.info("statement_generated")

        (entry,) = emitted()
        assert entry["message"] == "statement_generated"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "statement_kernel.tests.logging"
        assert datetime.fromisoformat(entry["ts"]).tzinfo is not None

    def test_one_object_per_record(self, emitted):
        log.debug("a")
        log.warning("b", extra={"section": "equity"})
        log.error("c")

        entries = emitted()
        assert [e["message"] for e in entries] == ["a", "b", "c"]
        assert entries[1]["section"] == "equity"

    def test_extras_become_top_level_keys(self, emitted):
        log.info("statement_numbered", extra={"statement_number": "BS-M202403-001", "attempt": 2})

        (entry,) = emitted()
        assert entry["statement_number"] == "BS-M202403-001"
        assert entry["attempt"] == 2

    def test_non_json_values_rendered_as_text(self, emitted):
        snapshot_id = uuid4()
        log.info(
            "totals",
            extra={
                "snapshot_id": snapshot_id,
                "total_assets": Decimal("1500.00"),
                "statement_date": datetime(2024, 3, 31, tzinfo=UTC),
                "period_start": date(2024, 3, 1),
            },
        )

        (entry,) = emitted()
        assert entry["snapshot_id"] == str(snapshot_id)
        assert entry["total_assets"] == "1500.00"
        assert entry["statement_date"] == "2024-03-31T00:00:00+00:00"
        assert entry["period_start"] == "2024-03-01"

    def test_bound_context_in_every_line(self, emitted):
        LogContext.set(correlation_id="req-7", tenant_id="tenant-alpha")
        log.info("one")
        log.info("two")

        for entry in emitted():
            assert entry["correlation_id"] == "req-7"
            assert entry["tenant_id"] == "tenant-alpha"

    def test_unbound_context_omitted(self, emitted):
        log.info("plain")

        (entry,) = emitted()
        assert not {"correlation_id", "tenant_id", "statement_id", "actor_id"} & entry.keys()


class TestExceptionFields:
    def test_plain_exception(self, emitted):
        try:
            raise ArithmeticError("division by zero in ratio")
        except ArithmeticError:
            log.exception("ratio_failed")

        (entry,) = emitted()
        assert entry["level"] == "ERROR"
        assert entry["exc_type"] == "ArithmeticError"
        assert entry["exc_message"] == "division by zero in ratio"
        assert "exc_code" not in entry
        assert "Traceback" in entry["traceback"]

    def test_kernel_error_code_and_attributes(self, emitted):
        try:
            raise DuplicatePeriodError("tenant-alpha", "monthly", "2024-03-01T00:00:00+00:00")
        except DuplicatePeriodError:
            log.error("generation_rejected", exc_info=True)

        (entry,) = emitted()
        assert entry["exc_code"] == "DUPLICATE_PERIOD"
        assert entry["exc_type"] == "DuplicatePeriodError"
        assert entry["exc_tenant_id"] == "tenant-alpha"
        assert entry["exc_period_type"] == "monthly"

    def test_uuid_attribute_rendered(self, emitted):
        missing = uuid4()
        try:
            raise StatementNotFoundError("tenant-alpha", missing)
        except StatementNotFoundError:
            log.warning("lookup_failed", exc_info=True)

        (entry,) = emitted()
        assert entry["exc_code"] == StatementNotFoundError.code
        assert entry["exc_statement_id"] == str(missing)


class TestLogContext:
    def test_set_then_read(self):
        LogContext.set(correlation_id="x", statement_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "statement_id": "y"}

    def test_none_values_skipped(self):
        LogContext.set(tenant_id="t", actor_id=None)
        assert LogContext.get_all() == {"tenant_id": "t"}

    def test_clear_empties_everything(self):
        LogContext.set(correlation_id="c", tenant_id="t", statement_id="s", actor_id="a")
        assert len(LogContext.get_all()) == 4
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_overrides_then_restores(self):
        LogContext.set(tenant_id="outer")
        with LogContext.bind(tenant_id="inner", actor_id="controller-1"):
            assert LogContext.get_all() == {"tenant_id": "inner", "actor_id": "controller-1"}
        assert LogContext.get_all() == {"tenant_id": "outer"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(statement_id="s-1"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_bind_stringifies_values(self):
        uid = uuid4()
        with LogContext.bind(statement_id=uid):
            assert LogContext.get_all()["statement_id"] == str(uid)

    def test_unknown_fields_ignored(self):
        LogContext.set(tenant_id="t", region="eu")
        with LogContext.bind(request_path="/x"):
            assert LogContext.get_all() == {"tenant_id": "t"}


class TestSetup:
    def test_configure_is_idempotent(self):
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=second)

        handlers = logging.getLogger("statement_kernel").handlers
        assert first in handlers
        assert second not in handlers

    def test_default_level_drops_debug(self):
        buffer = StringIO()
        configure_logging(stream=buffer)
        log.debug("hidden")
        log.info("shown")

        assert [json.loads(l)["message"] for l in buffer.getvalue().splitlines()] == ["shown"]

    def test_child_logger_names(self):
        assert get_logger("modules.balance_sheet.aggregator").name == (
            "statement_kernel.modules.balance_sheet.aggregator"
        )

    def test_reset_removes_handlers(self):
        handler = logging.StreamHandler(StringIO())
        configure_logging(handler=handler)
        reset_logging()

        assert handler not in logging.getLogger("statement_kernel").handlers

        replacement = logging.StreamHandler(StringIO())
        configure_logging(handler=replacement)
        assert replacement in logging.getLogger("statement_kernel").handlers
