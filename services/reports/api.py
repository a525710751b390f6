from __future__ import annotations
import csv
import io
from datetime import timedelta
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from plantstock.core.envelope import ok, num
from plantstock.core.security import get_current_user
from plantstock.db.session import get_db
from plantstock.db.models.common import as_utc, iso, utcnow
from plantstock.db.models.inventory import Material, MaterialMovement
from plantstock.db.models.production import BOMItem, Machine, WorkOrder
from services._crud import to_date
from services.movements.api import day_start, in_range, movement_out

router = APIRouter(prefix="/api/reports", tags=["reports"], dependencies=[Depends(get_current_user)])


def to_csv(rows: list[dict], columns: list[tuple[str, str]], filename: str) -> Response:
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow([header for _, header in columns])
    for r in rows:
        w.writerow(["" if r.get(key) is None else r.get(key) for key, _ in columns])
    return Response(
        content=buf.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


def stock_status(m: Material) -> str:
    if num(m.current_stock) == 0:
        return "Out of stock"
    if num(m.current_stock) <= num(m.min_stock):
        return "Low stock"
    return "Normal"


def _period(startDate: str | None, endDate: str | None):
    start = day_start(to_date(startDate, "startDate")) if startDate else None
    end = day_start(to_date(endDate, "endDate")) + timedelta(days=1) if endDate else None
    return start, end


@router.get("/inventory")
@router.get("/stock")
def inventory_report(
    db: Session = Depends(get_db),
    category: str | None = None,
    location: str | None = None,
    stockStatus: str | None = None,
    format: str = "json",
):
    q = db.query(Material)
    if category:
        q = q.filter(Material.category == category)
    if location:
        q = q.filter(Material.location == location)
    materials = q.order_by(Material.code.asc()).all()
    if stockStatus == "out":
        materials = [m for m in materials if num(m.current_stock) == 0]
    elif stockStatus == "low":
        materials = [m for m in materials if 0 < num(m.current_stock) <= num(m.min_stock)]
    elif stockStatus == "normal":
        materials = [m for m in materials if num(m.current_stock) > num(m.min_stock)]

    rows = [
        {
            "id": m.id,
            "code": m.code,
            "name": m.name,
            "category": m.category,
            "location": m.location,
            "currentStock": num(m.current_stock),
            "minStock": num(m.min_stock),
            "maxStock": num(m.max_stock),
            "unit": m.unit,
            "unitPrice": num(m.unit_price),
            "stockValue": num(m.current_stock) * num(m.unit_price),
            "stockStatus": stock_status(m),
            "lastUpdated": iso(m.updated_at),
        }
        for m in materials
    ]
    if format == "csv":
        return to_csv(rows, [
            ("code", "Code"),
            ("name", "Name"),
            ("category", "Category"),
            ("location", "Location"),
            ("currentStock", "Current Stock"),
            ("minStock", "Min Stock"),
            ("unit", "Unit"),
            ("unitPrice", "Unit Price"),
            ("stockValue", "Stock Value"),
            ("stockStatus", "Stock Status"),
        ], "stock-report.csv")

    return ok({
        "summary": {
            "totalItems": len(rows),
            "lowStockItems": sum(1 for m in materials if num(m.current_stock) <= num(m.min_stock)),
            "outOfStockItems": sum(1 for m in materials if num(m.current_stock) == 0),
            "totalValue": sum(r["stockValue"] for r in rows),
            "generatedAt": iso(utcnow()),
        },
        "materials": rows,
    })


@router.get("/movements")
def movements_report(
    db: Session = Depends(get_db),
    startDate: str | None = None,
    endDate: str | None = None,
    type: str | None = None,
    materialId: str | None = None,
    format: str = "json",
):
    q = db.query(MaterialMovement)
    if type and type != "all":
        q = q.filter(MaterialMovement.type == type)
    if materialId:
        q = q.filter(MaterialMovement.material_id == materialId)
    start, end = _period(startDate, endDate)
    movements = [mv for mv in q.order_by(MaterialMovement.created_at.desc()).all() if in_range(mv, start, end)]
    rows = [movement_out(mv) for mv in movements]
    if format == "csv":
        return to_csv(rows, [
            ("createdAt", "Date"),
            ("materialCode", "Material Code"),
            ("materialName", "Material"),
            ("type", "Type"),
            ("quantity", "Quantity"),
            ("unit", "Unit"),
            ("unitPrice", "Unit Price"),
            ("totalPrice", "Total Price"),
            ("reason", "Reason"),
            ("location", "Location"),
        ], "movement-report.csv")

    inbound = [r for r in rows if r["type"] == "IN"]
    outbound = [r for r in rows if r["type"] == "OUT"]
    return ok({
        "summary": {
            "totalMovements": len(rows),
            "inboundCount": len(inbound),
            "outboundCount": len(outbound),
            "inboundQuantity": sum(r["quantity"] for r in inbound),
            "outboundQuantity": sum(r["quantity"] for r in outbound),
            "inboundValue": sum(r["totalPrice"] for r in inbound),
            "outboundValue": sum(r["totalPrice"] for r in outbound),
            "period": {"startDate": startDate, "endDate": endDate},
            "generatedAt": iso(utcnow()),
        },
        "movements": rows,
    })


@router.get("/workorders")
def workorders_report(
    db: Session = Depends(get_db),
    startDate: str | None = None,
    endDate: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    machineId: str | None = None,
    format: str = "json",
):
    q = db.query(WorkOrder)
    if status and status != "all":
        q = q.filter(WorkOrder.status == status)
    if priority and priority != "all":
        q = q.filter(WorkOrder.priority == priority)
    if machineId:
        q = q.filter(WorkOrder.machine_id == machineId)
    start, end = _period(startDate, endDate)
    orders = [wo for wo in q.order_by(WorkOrder.created_at.desc()).all() if in_range(wo, start, end)]

    rows = [
        {
            "id": wo.id,
            "orderNumber": wo.order_number,
            "title": wo.title,
            "machineName": wo.machine_name,
            "status": wo.status,
            "priority": wo.priority,
            "assignedTo": wo.assigned_to,
            "plannedStartDate": iso(wo.planned_start_date),
            "plannedEndDate": iso(wo.planned_end_date),
            "actualStartDate": iso(wo.actual_start_date),
            "actualEndDate": iso(wo.actual_end_date),
            "actualDuration": wo.actual_duration,
            "createdAt": iso(wo.created_at),
        }
        for wo in orders
    ]
    if format == "csv":
        return to_csv(rows, [
            ("orderNumber", "Order Number"),
            ("title", "Title"),
            ("machineName", "Machine"),
            ("status", "Status"),
            ("priority", "Priority"),
            ("plannedStartDate", "Planned Start"),
            ("plannedEndDate", "Planned End"),
            ("actualStartDate", "Actual Start"),
            ("actualEndDate", "Actual End"),
            ("actualDuration", "Actual Duration (h)"),
            ("createdAt", "Created"),
        ], "workorder-report.csv")

    completed = [wo for wo in orders if wo.status == "COMPLETED"]
    durations = [
        (as_utc(wo.actual_end_date) - as_utc(wo.actual_start_date)).total_seconds() / 3600
        for wo in completed if wo.actual_start_date and wo.actual_end_date
    ]
    total = len(orders)
    return ok({
        "summary": {
            "totalWorkOrders": total,
            "completedWorkOrders": len(completed),
            "pendingWorkOrders": sum(1 for wo in orders if wo.status == "PLANNED"),
            "inProgressWorkOrders": sum(1 for wo in orders if wo.status == "IN_PROGRESS"),
            "cancelledWorkOrders": sum(1 for wo in orders if wo.status == "CANCELLED"),
            "completionRate": round(len(completed) / total * 100, 2) if total else 0.0,
            "avgCompletionTime": round(sum(durations) / len(durations), 2) if durations else 0.0,
            "period": {"startDate": startDate, "endDate": endDate},
            "generatedAt": iso(utcnow()),
        },
        "workOrders": rows,
    })


@router.get("/machines")
@router.get("/machine-utilization")
def machines_report(db: Session = Depends(get_db), status: str | None = None):
    q = db.query(Machine)
    if status and status != "all":
        q = q.filter(Machine.status == status)
    machines = q.order_by(Machine.code.asc()).all()
    orders = db.query(WorkOrder).all()
    prices = {m.id: num(m.unit_price) for m in db.query(Material).all()}

    rows = []
    for m in machines:
        mine = [wo for wo in orders if wo.machine_id == m.id]
        bom = db.query(BOMItem).filter(BOMItem.machine_id == m.id).all()
        rows.append({
            "id": m.id,
            "code": m.code,
            "name": m.name,
            "status": m.status,
            "location": m.location,
            "totalWorkOrders": len(mine),
            "completedWorkOrders": sum(1 for wo in mine if wo.status == "COMPLETED"),
            "activeWorkOrders": sum(1 for wo in mine if wo.status == "IN_PROGRESS"),
            "totalHours": sum(wo.actual_duration or 0 for wo in mine),
            "bomItems": len(bom),
            "bomCost": sum(num(b.quantity) * prices.get(b.material_id, 0.0) for b in bom),
            "nextMaintenance": m.next_maintenance.isoformat() if m.next_maintenance else None,
        })
    return ok({
        "summary": {
            "totalMachines": len(rows),
            "active": sum(1 for m in machines if m.status == "active"),
            "maintenance": sum(1 for m in machines if m.status == "maintenance"),
            "inactive": sum(1 for m in machines if m.status == "inactive"),
            "generatedAt": iso(utcnow()),
        },
        "machines": rows,
    })
