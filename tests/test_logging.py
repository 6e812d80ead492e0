"""Tests for the structured logging system (purchasing_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from purchasing_kernel.exceptions import AuthorizationError
from purchasing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)
from purchasing_kernel.services.vendor_service import VendorService


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "purchasing_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("pr_submitted", extra={"line_count": 3, "status": "submitted"})

        record = _parse_log(stream)
        assert record["line_count"] == 3
        assert record["status"] == "submitted"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", document_number="PO-000042")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["document_number"] == "PO-000042"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "actor_id" not in record

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_purchasing_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise AuthorizationError("actor-1", "ops", "approve purchase requests", amount=Decimal("1500"))
        except AuthorizationError:
            get_logger("test").error("denied", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "AUTHORIZATION_DENIED"
        assert record["exc_role"] == "ops"
        assert record["exc_amount"] == "1500"

    def test_uuid_and_decimal_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("values", extra={"pr_id": uid, "total": Decimal("12.50")})

        record = _parse_log(stream)
        assert record["pr_id"] == str(uid)
        assert record["total"] == "12.50"

    def test_debug_suppressed_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", actor_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner"):
            assert LogContext.get_all()["actor_id"] == "inner"
        assert LogContext.get_all()["actor_id"] == "outer"

    def test_bind_restores_none(self):
        with LogContext.bind(project_id="temp"):
            assert LogContext.get_all()["project_id"] == "temp"
        assert "project_id" not in LogContext.get_all()

    def test_bind_stringifies_uuid(self):
        uid = uuid4()
        with LogContext.bind(actor_id=uid):
            assert LogContext.get_all()["actor_id"] == str(uid)

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(trace_id="t"):
            assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("purchasing_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("services.sequence").name == "purchasing_kernel.services.sequence"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "purchasing_kernel.deep.nested.module"


# ---------------------------------------------------------------------------
# Service events
# ---------------------------------------------------------------------------


class TestServiceEvents:

    def test_lifecycle_events(self, captured_logs, approved_pr):
        pr = approved_pr()

        records = captured_logs()
        messages = [r["message"] for r in records]
        for event in (
            "purchase_request_created",
            "purchase_request_line_upserted",
            "purchase_request_submitted",
            "purchase_request_approved",
        ):
            assert event in messages

        created = next(r for r in records if r["message"] == "purchase_request_created")
        assert created["pr_id"] == str(pr.id)

    def test_denial_logged_at_warning(self, captured_logs, make_pr, pr_service, requester, ops_manager):
        pr = make_pr([("10", "100")])
        pr_service.submit(pr.id, requester)

        with pytest.raises(AuthorizationError):
            pr_service.approve(pr.id, ops_manager)

        denied = [r for r in captured_logs() if r["message"] == "authorization_denied"]
        assert len(denied) == 1
        assert denied[0]["level"] == "WARNING"
        assert denied[0]["role"] == "ops"
        assert Decimal(denied[0]["amount"]) == Decimal("1000")

    def test_context_cleared_after_operation(self, make_pr):
        make_pr()
        assert LogContext.get_all() == {}

    def test_line_upsert_events_flag_new_lines(self, captured_logs, make_pr, pr_service, requester):
        pr = make_pr(lines=())
        line = pr_service.upsert_line(pr.id, requester, description="Studs", qty=4)
        pr_service.upsert_line(pr.id, requester, line.id, qty=6)

        upserts = [
            r for r in captured_logs() if r["message"] == "purchase_request_line_upserted"
        ]
        assert [r["is_new"] for r in upserts] == [True, False]
        assert len(pr_service.get(pr.id).lines) == 1

    def test_po_line_upsert_event(self, captured_logs, make_po, po_service, purchasing_agent):
        po = make_po(lines=())
        po_service.upsert_line(po.id, purchasing_agent, description="Rebar", qty="3", unit_cost="12")

        upserts = [r for r in captured_logs() if r["message"] == "purchase_order_line_upserted"]
        assert len(upserts) == 1
        assert upserts[0]["is_new"] is True

    def test_vendor_upsert_event(self, captured_logs, session, deterministic_clock, requester):
        service = VendorService(session, deterministic_clock)
        vendor = service.upsert_vendor(requester, name="Ready Mix Co")
        service.upsert_vendor(requester, vendor.id, phone="555-0100")

        upserts = [r for r in captured_logs() if r["message"] == "vendor_upserted"]
        assert [r["is_new"] for r in upserts] == [True, False]
        assert upserts[1]["changed_fields"] == ["phone"]
