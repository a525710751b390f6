"""Page-level logic: what each screen fetches and how it filters or totals it."""
from __future__ import annotations

import asyncio
from datetime import date, datetime
from typing import Any

from plantstock.client.api import ApiClient, ApiError, parse_envelope
from plantstock.client.errorlog import ErrorLog, error_log
from plantstock.client.guards import extract_safe_materials, extract_safe_movements
from plantstock.client.safe import safe_array, safe_number, safe_prop
from plantstock.client.schemas import Material, MaterialMovement

DASHBOARD_ENDPOINTS = {
    "stats": "/dashboard/stats",
    "criticalStock": "/dashboard/critical-stock",
    "recentMovements": "/dashboard/recent-movements",
    "workOrderStats": "/dashboard/work-order-stats",
}


async def load_dashboard(client: ApiClient, log: ErrorLog | None = None) -> dict[str, Any]:
    """Fetch the four dashboard panels concurrently.

    No retry and no deduplication; any failure leaves the panels empty and
    sets ``error``.
    """
    log = log if log is not None else error_log
    out: dict[str, Any] = {
        "stats": None,
        "criticalStock": [],
        "recentMovements": [],
        "workOrderStats": None,
        "error": None,
    }
    async with client.async_client() as http:
        responses = await asyncio.gather(
            *(http.get(path) for path in DASHBOARD_ENDPOINTS.values()),
            return_exceptions=True,
        )
    try:
        for key, resp in zip(DASHBOARD_ENDPOINTS, responses):
            if isinstance(resp, Exception):
                raise ApiError(0, str(resp) or type(resp).__name__)
            data = parse_envelope(resp).get("data")
            if key in ("criticalStock", "recentMovements"):
                out[key] = safe_array(data)
            else:
                out[key] = data if isinstance(data, dict) else None
    except ApiError as e:
        log.record(e, context="dashboard")
        out.update(stats=None, criticalStock=[], recentMovements=[], workOrderStats=None)
        out["error"] = e.message or "Failed to load dashboard"
    return out


def _as_date(value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def filter_movements(
    movements: list[MaterialMovement],
    search: str | None = None,
    type: str | None = None,
    date_from: str | date | None = None,
    date_to: str | date | None = None,
) -> list[MaterialMovement]:
    """Client-side narrowing of an already-fetched movement list. Both dates are inclusive."""
    needle = (search or "").strip().lower()
    start, end = _as_date(date_from), _as_date(date_to)
    out = []
    for mv in movements:
        if type and type != "all" and mv.type != type:
            continue
        if needle and not any(needle in (v or "").lower() for v in (mv.material_name, mv.material_code, mv.reason)):
            continue
        if start or end:
            at = _as_date(mv.created_at)
            if at is None or (start and at < start) or (end and at > end):
                continue
        out.append(mv)
    return out


def movement_totals(movements: list[MaterialMovement]) -> dict[str, float]:
    inbound = sum(mv.quantity for mv in movements if mv.type == "IN")
    outbound = sum(mv.quantity for mv in movements if mv.type == "OUT")
    return {
        "inbound": inbound,
        "outbound": outbound,
        "net": inbound - outbound,
        "inboundValue": sum(mv.total_price for mv in movements if mv.type == "IN"),
        "outboundValue": sum(mv.total_price for mv in movements if mv.type == "OUT"),
        "count": len(movements),
    }


def inventory_summary(materials: list[Material]) -> dict[str, float]:
    return {
        "totalItems": len(materials),
        "lowStock": sum(1 for m in materials if m.current_stock <= m.min_stock),
        "outOfStock": sum(1 for m in materials if m.current_stock == 0),
        "totalValue": sum(m.current_stock * m.unit_price for m in materials),
    }


def load_movements(client: ApiClient, log: ErrorLog | None = None, **filters) -> tuple[list[MaterialMovement], str | None]:
    log = log if log is not None else error_log
    try:
        return extract_safe_movements(client.get("/movements", params=filters or None)), None
    except ApiError as e:
        log.record(e, context="movements")
        return [], e.message


def load_materials(client: ApiClient, log: ErrorLog | None = None, **filters) -> tuple[list[Material], str | None]:
    log = log if log is not None else error_log
    try:
        return extract_safe_materials(client.get("/materials", params=filters or None)), None
    except ApiError as e:
        log.record(e, context="materials")
        return [], e.message


def stat_value(stats: dict | None, section: str, key: str) -> float:
    return safe_number(safe_prop(safe_prop(stats, section, {}), key))
