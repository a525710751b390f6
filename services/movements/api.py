from __future__ import annotations
from datetime import datetime, time, timedelta, timezone
from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from plantstock.core.audit import audit
from plantstock.core.envelope import ok, created, num, paginate
from plantstock.core.errors import BadRequest
from plantstock.core.security import get_current_user
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import as_utc, iso, utcnow
from plantstock.db.models.inventory import MaterialMovement
from services._crud import commit_refresh, get_or_404, require_fields, apply_patch, to_decimal, to_date
from services.inventory.stock import MOVEMENT_TYPES, lock_material, post_movement, reverse_movement

router = APIRouter(prefix="/api/movements", tags=["movements"], dependencies=[Depends(get_current_user)])

# descriptive fields only; quantity/type/material are fixed once posted
EDITABLE = {
    "reason": ("reason", "str"),
    "description": ("description", "str"),
    "location": ("location", "str"),
    "workOrderId": ("work_order_id", "str"),
}


def movement_out(mv: MaterialMovement) -> dict:
    return {
        "id": mv.id,
        "materialId": mv.material_id,
        "materialCode": mv.material_code,
        "materialName": mv.material_name,
        "type": mv.type,
        "quantity": num(mv.quantity),
        "unit": mv.unit,
        "unitPrice": num(mv.unit_price),
        "totalPrice": num(mv.total_price),
        "reason": mv.reason,
        "description": mv.description,
        "location": mv.location,
        "performedBy": mv.performed_by,
        "workOrderId": mv.work_order_id,
        "createdAt": iso(mv.created_at),
        "updatedAt": iso(mv.updated_at),
    }


def day_start(d) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def in_range(mv: MaterialMovement, start: datetime | None, end: datetime | None) -> bool:
    at = as_utc(mv.created_at)
    if start and at < start:
        return False
    if end and at >= end:
        return False
    return True


def quantity_totals(rows: list[MaterialMovement]) -> dict:
    inbound = sum(num(mv.quantity) for mv in rows if mv.type == "IN")
    outbound = sum(num(mv.quantity) for mv in rows if mv.type == "OUT")
    return {"inbound": inbound, "outbound": outbound, "total": len(rows)}


@router.get("")
def list_movements(
    db: Session = Depends(get_db),
    search: str | None = None,
    type: str | None = None,
    materialId: str | None = None,
    dateFrom: str | None = None,
    dateTo: str | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    q = db.query(MaterialMovement)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            MaterialMovement.material_name.ilike(like),
            MaterialMovement.material_code.ilike(like),
            MaterialMovement.reason.ilike(like),
        ))
    if type and type != "all":
        q = q.filter(MaterialMovement.type == type)
    if materialId:
        q = q.filter(MaterialMovement.material_id == materialId)
    rows = q.order_by(MaterialMovement.created_at.desc()).all()

    start = day_start(to_date(dateFrom, "dateFrom")) if dateFrom else None
    # dateTo is inclusive of the whole day
    end = day_start(to_date(dateTo, "dateTo")) + timedelta(days=1) if dateTo else None
    if start or end:
        rows = [mv for mv in rows if in_range(mv, start, end)]
    return ok(paginate([movement_out(mv) for mv in rows], page, limit))


@router.get("/stats/summary")
def movement_summary(db: Session = Depends(get_db)):
    rows = db.query(MaterialMovement).all()
    now = utcnow()
    today = day_start(now.date())
    month = day_start(now.date().replace(day=1))
    return ok({
        "today": quantity_totals([mv for mv in rows if in_range(mv, today, today + timedelta(days=1))]),
        "monthly": quantity_totals([mv for mv in rows if in_range(mv, month, None)]),
        "total": len(rows),
    })


@router.get("/material/{material_id}")
def movements_for_material(material_id: str, db: Session = Depends(get_db), limit: int = 10):
    rows = (db.query(MaterialMovement)
            .filter(MaterialMovement.material_id == material_id)
            .order_by(MaterialMovement.created_at.desc())
            .limit(max(limit, 1))
            .all())
    return ok([movement_out(mv) for mv in rows])


@router.get("/{movement_id}")
def get_movement(movement_id: str, db: Session = Depends(get_db)):
    return ok(movement_out(get_or_404(db, MaterialMovement, movement_id, "Movement")))


@router.post("")
def create_movement(payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    require_fields(payload, "materialId", "type", "quantity")
    if payload["type"] not in MOVEMENT_TYPES:
        raise BadRequest("type must be IN or OUT")
    qty = to_decimal(payload["quantity"], "quantity")
    if qty <= 0:
        raise BadRequest("quantity must be greater than 0")
    unit_price = to_decimal(payload["unitPrice"], "unitPrice") if payload.get("unitPrice") not in (None, "") else None

    material = lock_material(db, payload["materialId"])
    mv = post_movement(
        db,
        material=material,
        type=payload["type"],
        quantity=qty,
        performed_by=user.id,
        reason=payload.get("reason") or "",
        description=payload.get("description") or payload.get("notes"),
        location=payload.get("location"),
        unit_price=unit_price,
        work_order_id=payload.get("workOrderId"),
    )
    db.commit()
    db.refresh(mv)
    audit(
        db,
        actor=user.email,
        action="movement.create",
        entity_type="movement",
        entity_id=mv.id,
        payload={"materialId": mv.material_id, "type": mv.type, "quantity": num(mv.quantity), "stock": num(material.current_stock)},
    )
    return created(movement_out(mv), "Movement recorded")


def _locked_changes(mv: MaterialMovement, payload: dict) -> list[str]:
    changed = []
    if "materialId" in payload and payload["materialId"] != mv.material_id:
        changed.append("materialId")
    if "type" in payload and payload["type"] != mv.type:
        changed.append("type")
    if "quantity" in payload and to_decimal(payload["quantity"], "quantity") != mv.quantity:
        changed.append("quantity")
    return changed


@router.put("/{movement_id}")
def update_movement(movement_id: str, payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    mv = get_or_404(db, MaterialMovement, movement_id, "Movement")
    locked = _locked_changes(mv, payload)
    if locked:
        raise BadRequest(f"Cannot change {', '.join(locked)} of a posted movement")
    applied = apply_patch(mv, payload, EDITABLE)
    if mv.reason is None:
        mv.reason = ""
    commit_refresh(db, mv)
    audit(db, actor=user.email, action="movement.update", entity_type="movement", entity_id=mv.id, payload={"fields": applied})
    return ok(movement_out(mv), "Movement updated")


@router.delete("/{movement_id}")
def delete_movement(movement_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    mv = get_or_404(db, MaterialMovement, movement_id, "Movement")
    info = {"materialId": mv.material_id, "type": mv.type, "quantity": num(mv.quantity)}
    reverse_movement(db, mv)
    db.commit()
    audit(db, actor=user.email, action="movement.delete", entity_type="movement", entity_id=movement_id, payload=info)
    return ok(message="Movement deleted")
