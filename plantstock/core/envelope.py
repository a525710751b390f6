"""Response envelope helpers.

Every body the API returns is ``{success, data?, error?, message?}``.
"""
from __future__ import annotations

import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, message: str | None = None) -> dict:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body


def created(data: Any = None, message: str | None = None) -> JSONResponse:
    return JSONResponse(status_code=201, content=jsonable_encoder(ok(data, message)))


def fail(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "error": error}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


def num(value: Decimal | float | int | None) -> float:
    if value is None:
        return 0.0
    return float(value)


def day(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def paginate(items: list, page: int | None, limit: int | None) -> list | dict:
    """Slice ``items`` when a page or limit was requested; otherwise return it unchanged."""
    if page is None and limit is None:
        return items
    page = max(page or 1, 1)
    limit = max(limit or 20, 1)
    total = len(items)
    start = (page - 1) * limit
    return {
        "data": items[start:start + limit],
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if total else 0,
    }
