"""Unit tests for request-scoped tracing context."""

import structlog

from app.core.tracing import (
    clear_tracing_context,
    get_request_id,
    get_trace_parent,
    set_request_id,
    set_trace_parent,
    tracing_log_context,
)


def test_set_request_id_generates_when_missing():
    value = set_request_id(None)
    assert value
    assert get_request_id() == value
    clear_tracing_context()


def test_set_request_id_binds_structlog_context():
    set_request_id("req-123")
    assert structlog.contextvars.get_contextvars()["request_id"] == "req-123"
    clear_tracing_context()


def test_set_trace_parent_can_clear_value():
    set_trace_parent("00-abc-def-01")
    assert get_trace_parent() == "00-abc-def-01"
    set_trace_parent("")
    assert get_trace_parent() is None


def test_tracing_log_context_returns_expected_keys():
    set_request_id("req-456")
    set_trace_parent("00-abc-def-01")

    assert tracing_log_context() == {"request_id": "req-456", "trace_parent": "00-abc-def-01"}
    clear_tracing_context()


def test_clear_tracing_context_resets_values():
    set_request_id("req-789")
    set_trace_parent("00-abc-def-01")

    clear_tracing_context()

    assert get_request_id() is None
    assert get_trace_parent() is None
    assert tracing_log_context() == {}
    assert structlog.contextvars.get_contextvars() == {}
