"""Request/correlation ID context shared by the API middleware and audit log."""

from __future__ import annotations

from contextvars import ContextVar
from uuid import uuid4

import structlog


_request_id: ContextVar[str] = ContextVar("request_id", default="")
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def new_request_id() -> str:
    return f"req-{uuid4().hex[:20]}"


def new_correlation_id() -> str:
    return f"corr-{uuid4().hex[:20]}"


def bind_request_context(request_id: str | None, correlation_id: str | None) -> tuple[str, str]:
    """Adopt incoming ids (or mint new ones) for the current request."""
    rid = request_id or new_request_id()
    cid = correlation_id or new_correlation_id()
    _request_id.set(rid)
    _correlation_id.set(cid)
    structlog.contextvars.bind_contextvars(request_id=rid, correlation_id=cid)
    return rid, cid


def clear_request_context() -> None:
    _request_id.set("")
    _correlation_id.set("")
    structlog.contextvars.clear_contextvars()


def get_request_id() -> str:
    return _request_id.get()


def get_correlation_id() -> str:
    return _correlation_id.get()
