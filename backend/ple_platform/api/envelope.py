"""
PLE Platform - Response Envelope
================================
Every response body is `{ok, data, error, meta}`. Single-item content
responses also carry the row version as an ETag so clients can echo it
back in If-Match.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ple_platform.core.correlation import get_correlation_id, get_request_id
from ple_platform.core.errors import ContentError


def response_meta(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "request_id": get_request_id() or None,
        "correlation_id": get_correlation_id() or None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    meta.update(extra or {})
    return meta


def _respond(
    *,
    ok: bool,
    data: Any,
    error: dict[str, Any] | None,
    status_code: int,
    meta: dict[str, Any] | None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {"ok": ok, "data": data, "error": error, "meta": response_meta(meta)}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


def success_envelope(
    data: Any,
    *,
    status_code: int = 200,
    meta: dict[str, Any] | None = None,
) -> JSONResponse:
    return _respond(ok=True, data=data, error=None, status_code=status_code, meta=meta)


def content_envelope(item: dict[str, Any], *, status_code: int = 200) -> JSONResponse:
    """One content view; the ETag is the quoted row version."""
    headers = {"ETag": f'"{item["version"]}"'} if item.get("version") is not None else None
    return _respond(ok=True, data=item, error=None, status_code=status_code, meta=None, headers=headers)


def error_envelope(
    *,
    code: str,
    message: str,
    status_code: int = 400,
    details: Any = None,
    meta: dict[str, Any] | None = None,
) -> JSONResponse:
    error = {"code": code, "message": message, "details": details}
    return _respond(ok=False, data=None, error=error, status_code=status_code, meta=meta)


def content_error_envelope(exc: ContentError, *, path: str | None = None) -> JSONResponse:
    return error_envelope(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        meta={"path": path} if path else None,
    )
