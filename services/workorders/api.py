from __future__ import annotations
from decimal import Decimal
from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from plantstock.core.audit import audit
from plantstock.core.envelope import ok, created, num, paginate
from plantstock.core.errors import BadRequest
from plantstock.core.security import get_current_user
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import iso
from plantstock.db.models.inventory import Material
from plantstock.db.models.production import Machine, WorkOrder
from services._crud import commit_refresh, get_or_404, require_fields, apply_patch, to_decimal
from services.workorders.service import (
    PRIORITIES,
    STATUSES,
    is_overdue,
    next_order_number,
    transition,
)

router = APIRouter(prefix="/api/workorders", tags=["workorders"], dependencies=[Depends(get_current_user)])

FIELDS = {
    "title": ("title", "str"),
    "description": ("description", "str"),
    "machineId": ("machine_id", "str"),
    "machineName": ("machine_name", "str"),
    "quantity": ("quantity", "decimal"),
    "priority": ("priority", "str"),
    "assignedTo": ("assigned_to", "str"),
    "plannedStartDate": ("planned_start_date", "datetime"),
    "plannedEndDate": ("planned_end_date", "datetime"),
    "dueDate": ("due_date", "datetime"),
    "estimatedDuration": ("estimated_duration", "int"),
}


def workorder_out(wo: WorkOrder) -> dict:
    return {
        "id": wo.id,
        "orderNumber": wo.order_number,
        "title": wo.title,
        "description": wo.description,
        "machineId": wo.machine_id,
        "machineName": wo.machine_name,
        "quantity": num(wo.quantity),
        "status": wo.status,
        "priority": wo.priority,
        "assignedTo": wo.assigned_to,
        "createdBy": wo.created_by,
        "materials": wo.materials or [],
        "plannedStartDate": iso(wo.planned_start_date),
        "plannedEndDate": iso(wo.planned_end_date),
        "dueDate": iso(wo.due_date),
        "actualStartDate": iso(wo.actual_start_date),
        "actualEndDate": iso(wo.actual_end_date),
        "estimatedDuration": wo.estimated_duration,
        "actualDuration": wo.actual_duration,
        "createdAt": iso(wo.created_at),
        "updatedAt": iso(wo.updated_at),
    }


def _materials(db: Session, lines) -> list[dict]:
    if lines is None:
        return []
    if not isinstance(lines, list):
        raise BadRequest("materials must be a list")
    out = []
    for line in lines:
        if not isinstance(line, dict) or not line.get("materialId"):
            raise BadRequest("each material needs a materialId")
        qty = to_decimal(line.get("quantity"), "quantity")
        if qty <= 0:
            raise BadRequest("material quantity must be greater than 0")
        m = get_or_404(db, Material, line["materialId"], "Material")
        out.append({"materialId": m.id, "quantity": float(qty), "unit": line.get("unit") or m.unit})
    return out


def _check(db: Session, wo: WorkOrder, payload: dict) -> None:
    if wo.priority not in PRIORITIES:
        raise BadRequest(f"priority must be one of {', '.join(PRIORITIES)}")
    if wo.quantity is None or Decimal(wo.quantity) <= 0:
        raise BadRequest("quantity must be greater than 0")
    if "machineId" in payload and wo.machine_id and "machineName" not in payload:
        machine = db.query(Machine).filter(Machine.id == wo.machine_id).first()
        if machine:
            wo.machine_name = machine.name
    if "materials" in payload:
        wo.materials = _materials(db, payload["materials"])


@router.get("")
def list_workorders(
    db: Session = Depends(get_db),
    search: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    machineId: str | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    q = db.query(WorkOrder)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            WorkOrder.order_number.ilike(like),
            WorkOrder.title.ilike(like),
            WorkOrder.description.ilike(like),
            WorkOrder.machine_name.ilike(like),
        ))
    if status and status != "all":
        q = q.filter(WorkOrder.status == status)
    if priority and priority != "all":
        q = q.filter(WorkOrder.priority == priority)
    if machineId:
        q = q.filter(WorkOrder.machine_id == machineId)
    rows = q.order_by(WorkOrder.created_at.desc()).all()
    return ok(paginate([workorder_out(wo) for wo in rows], page, limit))


@router.get("/stats/summary")
def workorder_summary(db: Session = Depends(get_db)):
    rows = db.query(WorkOrder).all()
    return ok({
        "total": len(rows),
        "pending": sum(1 for wo in rows if wo.status == "PLANNED"),
        "inProgress": sum(1 for wo in rows if wo.status == "IN_PROGRESS"),
        "completed": sum(1 for wo in rows if wo.status == "COMPLETED"),
        "cancelled": sum(1 for wo in rows if wo.status == "CANCELLED"),
        "highPriority": sum(1 for wo in rows if wo.priority in ("HIGH", "CRITICAL")),
        "overdue": sum(1 for wo in rows if is_overdue(wo)),
    })


@router.get("/{workorder_id}")
def get_workorder(workorder_id: str, db: Session = Depends(get_db)):
    return ok(workorder_out(get_or_404(db, WorkOrder, workorder_id, "Work order")))


@router.post("")
def create_workorder(payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    require_fields(payload, "title")
    wo = WorkOrder(status="PLANNED", priority="MEDIUM", quantity=Decimal("1"), materials=[], created_by=user.id)
    apply_patch(wo, payload, FIELDS)
    if wo.quantity is None:
        wo.quantity = Decimal("1")
    _check(db, wo, payload)
    wo.order_number = next_order_number(db)
    commit_refresh(db, wo)
    audit(db, actor=user.email, action="workorder.create", entity_type="workorder", entity_id=wo.id, payload={"orderNumber": wo.order_number})
    return created(workorder_out(wo), "Work order created")


@router.put("/{workorder_id}")
def update_workorder(workorder_id: str, payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    wo = get_or_404(db, WorkOrder, workorder_id, "Work order")
    if "status" in payload and payload["status"] != wo.status:
        raise BadRequest("Use the status endpoints to change status")
    applied = apply_patch(wo, payload, FIELDS, required=("title", "priority", "quantity"))
    _check(db, wo, payload)
    commit_refresh(db, wo)
    audit(db, actor=user.email, action="workorder.update", entity_type="workorder", entity_id=wo.id, payload={"fields": applied})
    return ok(workorder_out(wo), "Work order updated")


def _transition(db: Session, workorder_id: str, target: str, user: User) -> dict:
    wo = get_or_404(db, WorkOrder, workorder_id, "Work order")
    before = wo.status
    posted = transition(db, wo, target, user.id)
    db.commit()
    db.refresh(wo)
    audit(
        db,
        actor=user.email,
        action="workorder.status",
        entity_type="workorder",
        entity_id=wo.id,
        payload={"from": before, "to": target, "movements": [mv.id for mv in posted]},
    )
    return ok(workorder_out(wo), f"Work order {wo.order_number} is now {target}")


@router.patch("/{workorder_id}/status")
def set_status(workorder_id: str, payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    status = payload.get("status")
    if status not in STATUSES:
        raise BadRequest("Invalid status")
    return _transition(db, workorder_id, status, user)


@router.patch("/{workorder_id}/start")
def start_workorder(workorder_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _transition(db, workorder_id, "IN_PROGRESS", user)


@router.patch("/{workorder_id}/complete")
def complete_workorder(workorder_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _transition(db, workorder_id, "COMPLETED", user)


@router.patch("/{workorder_id}/cancel")
def cancel_workorder(workorder_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _transition(db, workorder_id, "CANCELLED", user)


@router.delete("/{workorder_id}")
def delete_workorder(workorder_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    wo = get_or_404(db, WorkOrder, workorder_id, "Work order")
    order_number = wo.order_number
    db.delete(wo)
    db.commit()
    audit(db, actor=user.email, action="workorder.delete", entity_type="workorder", entity_id=workorder_id, payload={"orderNumber": order_number})
    return ok(message="Work order deleted")
