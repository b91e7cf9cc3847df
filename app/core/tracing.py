"""Request-scoped tracing context.

Stores the request id and W3C traceparent in contextvars so that log
lines emitted anywhere during a request can be correlated.
"""

import uuid
from contextvars import ContextVar
from typing import Any

import structlog

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
trace_parent_ctx: ContextVar[str | None] = ContextVar("trace_parent", default=None)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def set_request_id(value: str | None) -> str:
    """Set the request id, generating one when absent, and bind it for logging."""
    if value is None:
        value = str(uuid.uuid4())
    request_id_ctx.set(value)
    structlog.contextvars.bind_contextvars(request_id=value)
    return value


def get_trace_parent() -> str | None:
    return trace_parent_ctx.get()


def set_trace_parent(value: str | None) -> None:
    trace_parent_ctx.set(value or None)


def clear_tracing_context() -> None:
    """Clear request-scoped context after request completion."""
    request_id_ctx.set(None)
    trace_parent_ctx.set(None)
    structlog.contextvars.clear_contextvars()


def tracing_log_context() -> dict[str, Any]:
    """Current tracing values as a dict for explicit structlog binding."""
    context: dict[str, Any] = {}
    if rid := get_request_id():
        context["request_id"] = rid
    if tp := get_trace_parent():
        context["trace_parent"] = tp
    return context
