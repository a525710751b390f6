from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response

from plantstock.core.audit import audit
from plantstock.core.envelope import fail
from plantstock.core.errors import ApiError
from plantstock.core.security import resolve_user
from plantstock.db.session import SessionLocal

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/api/auth"


def request_id_of(request: Request) -> str:
    return request.headers.get("X-Request-Id") or str(uuid.uuid4())


def client_ip(request: Request) -> str | None:
    # first hop of X-Forwarded-For when running behind a proxy
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def actor_of(request: Request) -> str:
    """Email of the bearer token's user, or ``anonymous``."""
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return "anonymous"
    with SessionLocal() as db:
        try:
            return resolve_user(db, token.strip()).email
        except ApiError:
            return "anonymous"


def should_audit(path: str, status_code: int) -> bool:
    return path.startswith(AUTH_PREFIX) or status_code in (401, 403) or status_code >= 500


def _level(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    return "warning" if status_code >= 400 else "info"


def _record(request: Request, request_id: str, status_code: int, started: float, actor: str, action: str) -> None:
    with SessionLocal() as db:
        audit(
            db,
            actor=actor,
            action=action,
            entity_type="http",
            entity_id=request.url.path,
            level=_level(status_code),
            message="Server internal error" if status_code >= 500 else None,
            payload={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
            request_id=request_id,
            ip_address=client_ip(request),
            user_agent=request.headers.get("User-Agent"),
            status_code=status_code,
            success=200 <= status_code < 400,
        )


async def audit_http_middleware(request: Request, call_next: Callable) -> Response:
    """Tags every response with X-Request-Id and writes auth traffic,
    authorization failures and server errors to the system log.
    """
    request_id = request_id_of(request)
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        _record(request, request_id, 500, started, "anonymous", "http.exception")
        response = fail(500, "Server internal error")
    else:
        if should_audit(request.url.path, response.status_code):
            _record(request, request_id, response.status_code, started, actor_of(request), "http.request")

    response.headers["X-Request-Id"] = request_id
    return response
