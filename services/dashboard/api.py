"""Read-side aggregations for the dashboard; recomputed on every request."""
from __future__ import annotations
from datetime import timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from plantstock.core.envelope import ok, num
from plantstock.core.errors import BadRequest
from plantstock.core.security import get_current_user
from plantstock.db.session import get_db
from plantstock.db.models.common import as_utc, iso, utcnow
from plantstock.db.models.inventory import Material, MaterialMovement
from plantstock.db.models.production import Machine, WorkOrder
from services._crud import to_date
from services.movements.api import day_start, in_range
from services.workorders.service import OPEN_STATUSES, is_overdue

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"], dependencies=[Depends(get_current_user)])

SEVERITY_ORDER = {"critical": 3, "high": 2, "medium": 1}
MAX_TREND_DAYS = 366
MAX_TREND_MONTHS = 60


def is_low_stock(m: Material) -> bool:
    return num(m.current_stock) <= num(m.min_stock)


def severity(m: Material) -> str:
    current = num(m.current_stock)
    if current == 0:
        return "critical"
    if current <= num(m.min_stock) * 0.5:
        return "high"
    return "medium"


def _month_start(now=None):
    now = now or utcnow()
    return day_start(now.date().replace(day=1))


def _shift_month(start, months: int):
    y, m = divmod(start.month - 1 + months, 12)
    return start.replace(year=start.year + y, month=m + 1)


def workorder_counts(rows: list[WorkOrder]) -> dict:
    return {
        "total": len(rows),
        "pending": sum(1 for wo in rows if wo.status == "PLANNED"),
        "inProgress": sum(1 for wo in rows if wo.status == "IN_PROGRESS"),
        "completed": sum(1 for wo in rows if wo.status == "COMPLETED"),
        "cancelled": sum(1 for wo in rows if wo.status == "CANCELLED"),
        "overdue": sum(1 for wo in rows if is_overdue(wo)),
    }


@router.get("/stats")
def stats(db: Session = Depends(get_db)):
    materials = db.query(Material).all()
    machines = db.query(Machine).all()
    month = _month_start()
    monthly = [mv for mv in db.query(MaterialMovement).all() if in_range(mv, month, None)]
    inbound = sum(num(mv.quantity) for mv in monthly if mv.type == "IN")
    outbound = sum(num(mv.quantity) for mv in monthly if mv.type == "OUT")
    return ok({
        "materials": {
            "total": len(materials),
            "lowStock": sum(1 for m in materials if is_low_stock(m)),
            "outOfStock": sum(1 for m in materials if num(m.current_stock) == 0),
            "totalValue": sum(num(m.current_stock) * num(m.unit_price) for m in materials),
        },
        "workOrders": workorder_counts(db.query(WorkOrder).all()),
        "machines": {
            "total": len(machines),
            "active": sum(1 for m in machines if m.status == "active"),
            "maintenance": sum(1 for m in machines if m.status == "maintenance"),
            "inactive": sum(1 for m in machines if m.status == "inactive"),
        },
        "movements": {
            "monthlyInbound": inbound,
            "monthlyOutbound": outbound,
            "monthlyNet": inbound - outbound,
            "totalMovements": len(monthly),
        },
    })


@router.get("/critical-stock")
@router.get("/alerts/critical-stock")
def critical_stock(db: Session = Depends(get_db)):
    alerts = [
        {
            "id": m.id,
            "code": m.code,
            "name": m.name,
            "currentStock": num(m.current_stock),
            "minStock": num(m.min_stock),
            "unit": m.unit,
            "category": m.category,
            "location": m.location,
            "severity": severity(m),
        }
        for m in db.query(Material).order_by(Material.code.asc()).all()
        if is_low_stock(m)
    ]
    alerts.sort(key=lambda a: SEVERITY_ORDER[a["severity"]], reverse=True)
    return ok(alerts)


@router.get("/recent-movements")
def recent_movements(db: Session = Depends(get_db), limit: int = 10):
    rows = db.query(MaterialMovement).order_by(MaterialMovement.created_at.desc()).limit(max(limit, 1)).all()
    return ok([
        {
            "id": mv.id,
            "materialId": mv.material_id,
            "materialCode": mv.material_code,
            "materialName": mv.material_name,
            "type": mv.type,
            "quantity": num(mv.quantity),
            "unit": mv.unit,
            "totalPrice": num(mv.total_price),
            "reason": mv.reason,
            "location": mv.location,
            "createdAt": iso(mv.created_at),
        }
        for mv in rows
    ])


@router.get("/work-order-stats")
def work_order_stats(db: Session = Depends(get_db)):
    counts = workorder_counts(db.query(WorkOrder).all())
    total = counts["total"]
    counts["planned"] = counts["pending"]
    counts["completionRate"] = (counts["completed"] / total * 100) if total else 0.0
    return ok(counts)


@router.get("/category-distribution")
def category_distribution(db: Session = Depends(get_db)):
    groups: dict[str, dict] = {}
    for m in db.query(Material).all():
        g = groups.setdefault(m.category or "Other", {"name": m.category or "Other", "count": 0, "value": 0.0})
        g["count"] += 1
        g["value"] += num(m.current_stock) * num(m.unit_price)
    total = sum(g["value"] for g in groups.values())
    for g in groups.values():
        g["totalValue"] = g["value"]
        g["percentage"] = round(g["value"] / total * 100, 2) if total else 0.0
    return ok(sorted(groups.values(), key=lambda g: g["value"], reverse=True))


@router.get("/stock-trends")
def stock_trends(
    db: Session = Depends(get_db),
    days: int = Query(7, ge=1, le=MAX_TREND_DAYS),
    startDate: str | None = None,
    endDate: str | None = None,
):
    today = utcnow().date()
    end = to_date(endDate, "endDate") or today
    start = to_date(startDate, "startDate") or end - timedelta(days=days - 1)
    if start > end:
        raise BadRequest("startDate must not be after endDate")
    if (end - start).days >= MAX_TREND_DAYS:
        raise BadRequest(f"Date range cannot exceed {MAX_TREND_DAYS} days")
    buckets: dict = {}
    for mv in db.query(MaterialMovement).all():
        if not in_range(mv, day_start(start), day_start(end) + timedelta(days=1)):
            continue
        b = buckets.setdefault(as_utc(mv.created_at).date(), {"IN": 0.0, "OUT": 0.0})
        if mv.type in b:
            b[mv.type] += num(mv.quantity)
    out = []
    d = start
    while d <= end:
        b = buckets.get(d, {"IN": 0.0, "OUT": 0.0})
        out.append({"date": d.isoformat(), "stockIn": b["IN"], "stockOut": b["OUT"], "net": b["IN"] - b["OUT"]})
        d += timedelta(days=1)
    return ok(out)


@router.get("/trends/stock-movements")
def stock_movement_trend(db: Session = Depends(get_db), months: int = Query(6, ge=1, le=MAX_TREND_MONTHS)):
    """Monthly IN/OUT value, oldest month first."""
    rows = db.query(MaterialMovement).all()
    current = _month_start()
    out = []
    for i in range(months - 1, -1, -1):
        lo = _shift_month(current, -i)
        hits = [mv for mv in rows if in_range(mv, lo, _shift_month(lo, 1))]
        inbound = sum(num(mv.total_price) for mv in hits if mv.type == "IN")
        outbound = sum(num(mv.total_price) for mv in hits if mv.type == "OUT")
        out.append({"month": lo.strftime("%Y-%m"), "inbound": inbound, "outbound": outbound, "net": inbound - outbound})
    return ok(out)


@router.get("/trends/workorder-completion")
def workorder_completion_trend(db: Session = Depends(get_db), months: int = Query(6, ge=1, le=MAX_TREND_MONTHS)):
    rows = [wo for wo in db.query(WorkOrder).all() if wo.status == "COMPLETED" and wo.actual_end_date]
    current = _month_start()
    out = []
    for i in range(months - 1, -1, -1):
        lo = _shift_month(current, -i)
        hi = _shift_month(lo, 1)
        completed = sum(1 for wo in rows if lo <= as_utc(wo.actual_end_date) < hi)
        out.append({"month": lo.strftime("%Y-%m"), "completed": completed})
    return ok(out)


@router.get("/upcoming-workorders")
def upcoming_workorders(db: Session = Depends(get_db), limit: int = 10):
    now = utcnow()
    horizon = now + timedelta(days=7)
    rows = [
        wo for wo in db.query(WorkOrder).filter(WorkOrder.status.in_(OPEN_STATUSES)).all()
        if wo.planned_start_date and now <= as_utc(wo.planned_start_date) <= horizon
    ]
    rows.sort(key=lambda wo: as_utc(wo.planned_start_date))
    return ok([
        {
            "id": wo.id,
            "orderNumber": wo.order_number,
            "title": wo.title,
            "machineName": wo.machine_name,
            "status": wo.status,
            "priority": wo.priority,
            "plannedStartDate": iso(wo.planned_start_date),
            "plannedEndDate": iso(wo.planned_end_date),
        }
        for wo in rows[:max(limit, 1)]
    ])


@router.get("/top-consumed-materials")
def top_consumed_materials(db: Session = Depends(get_db), limit: int = 10):
    month = _month_start()
    totals: dict[str, dict] = {}
    for mv in db.query(MaterialMovement).filter(MaterialMovement.type == "OUT").all():
        if not in_range(mv, month, None):
            continue
        t = totals.setdefault(mv.material_id, {
            "materialId": mv.material_id,
            "materialCode": mv.material_code,
            "materialName": mv.material_name,
            "unit": mv.unit,
            "totalQuantity": 0.0,
            "totalValue": 0.0,
            "movementCount": 0,
        })
        t["totalQuantity"] += num(mv.quantity)
        t["totalValue"] += num(mv.total_price)
        t["movementCount"] += 1
    ranked = sorted(totals.values(), key=lambda t: (t["totalValue"], t["totalQuantity"]), reverse=True)
    return ok(ranked[:max(limit, 1)])
