from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from plantstock.core.audit import audit
from plantstock.core.envelope import ok, created, num, day, paginate
from plantstock.core.errors import BadRequest, Conflict, NotFound
from plantstock.core.security import get_current_user
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import iso
from plantstock.db.models.inventory import Material
from plantstock.db.models.production import Machine, BOMItem
from services._crud import commit_refresh, get_or_404, require_fields, apply_patch, to_decimal

router = APIRouter(prefix="/api/machines", tags=["machines"], dependencies=[Depends(get_current_user)])

MACHINE_STATUSES = ("active", "maintenance", "inactive")

FIELDS = {
    "code": ("code", "str"),
    "name": ("name", "str"),
    "description": ("description", "str"),
    "category": ("category", "str"),
    "type": ("type", "str"),
    "model": ("model", "str"),
    "manufacturer": ("manufacturer", "str"),
    "serialNumber": ("serial_number", "str"),
    "status": ("status", "str"),
    "location": ("location", "str"),
    "installDate": ("install_date", "date"),
    "lastMaintenance": ("last_maintenance", "date"),
    "nextMaintenance": ("next_maintenance", "date"),
    "specifications": ("specifications", "json"),
}
REQUIRED = ("code", "name")


def machine_out(m: Machine) -> dict:
    return {
        "id": m.id,
        "code": m.code,
        "name": m.name,
        "description": m.description,
        "category": m.category,
        "type": m.type,
        "model": m.model,
        "manufacturer": m.manufacturer,
        "serialNumber": m.serial_number,
        "status": m.status,
        "location": m.location,
        "installDate": day(m.install_date),
        "lastMaintenance": day(m.last_maintenance),
        "nextMaintenance": day(m.next_maintenance),
        "specifications": m.specifications or {},
        "createdAt": iso(m.created_at),
        "updatedAt": iso(m.updated_at),
    }


def bom_out(b: BOMItem) -> dict:
    return {
        "id": b.id,
        "machineId": b.machine_id,
        "materialId": b.material_id,
        "materialCode": b.material_code,
        "materialName": b.material_name,
        "quantity": num(b.quantity),
        "unit": b.unit,
        "notes": b.notes,
        "createdAt": iso(b.created_at),
    }


def _check(m: Machine) -> None:
    if m.status not in MACHINE_STATUSES:
        raise BadRequest(f"status must be one of {', '.join(MACHINE_STATUSES)}")
    if m.specifications is None:
        m.specifications = {}
    elif not isinstance(m.specifications, dict):
        raise BadRequest("specifications must be an object")


@router.get("")
def list_machines(
    db: Session = Depends(get_db),
    search: str | None = None,
    category: str | None = None,
    status: str | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    q = db.query(Machine)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Machine.name.ilike(like), Machine.code.ilike(like), Machine.description.ilike(like)))
    if category:
        q = q.filter(Machine.category == category)
    if status and status != "all":
        q = q.filter(Machine.status == status)
    rows = q.order_by(Machine.created_at.desc()).all()
    return ok(paginate([machine_out(m) for m in rows], page, limit))


@router.get("/categories/list")
def list_categories(db: Session = Depends(get_db)):
    cats = db.query(Machine.category).distinct().order_by(Machine.category.asc()).all()
    return ok([c for (c,) in cats if c])


@router.get("/{machine_id}")
def get_machine(machine_id: str, db: Session = Depends(get_db)):
    m = get_or_404(db, Machine, machine_id, "Machine")
    data = machine_out(m)
    data["bom"] = [bom_out(b) for b in _bom(db, m.id)]
    return ok(data)


@router.post("")
def create_machine(payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    require_fields(payload, *REQUIRED)
    if db.query(Machine).filter(Machine.code == payload["code"]).first():
        raise Conflict("Machine code already exists")
    m = Machine(status="active", specifications={})
    apply_patch(m, payload, FIELDS)
    _check(m)
    commit_refresh(db, m)
    audit(db, actor=user.email, action="machine.create", entity_type="machine", entity_id=m.id, payload={"code": m.code})
    return created(machine_out(m), "Machine created")


@router.put("/{machine_id}")
def update_machine(machine_id: str, payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    m = get_or_404(db, Machine, machine_id, "Machine")
    code = payload.get("code")
    if code and code != m.code and db.query(Machine).filter(Machine.code == code).first():
        raise Conflict("Machine code already exists")
    applied = apply_patch(m, payload, FIELDS, required=REQUIRED + ("status",))
    _check(m)
    commit_refresh(db, m)
    audit(db, actor=user.email, action="machine.update", entity_type="machine", entity_id=m.id, payload={"fields": applied})
    return ok(machine_out(m), "Machine updated")


@router.delete("/{machine_id}")
def delete_machine(machine_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    m = get_or_404(db, Machine, machine_id, "Machine")
    db.query(BOMItem).filter(BOMItem.machine_id == m.id).delete(synchronize_session=False)
    code = m.code
    db.delete(m)
    db.commit()
    audit(db, actor=user.email, action="machine.delete", entity_type="machine", entity_id=machine_id, payload={"code": code})
    return ok(message="Machine deleted")


# --- bill of materials ---

def _bom(db: Session, machine_id: str) -> list[BOMItem]:
    return db.query(BOMItem).filter(BOMItem.machine_id == machine_id).order_by(BOMItem.created_at.asc()).all()


def _bom_item(db: Session, machine_id: str, bom_id: str) -> BOMItem:
    b = db.query(BOMItem).filter(BOMItem.id == bom_id, BOMItem.machine_id == machine_id).first()
    if not b:
        raise NotFound("BOM item not found")
    return b


@router.get("/{machine_id}/bom")
def get_bom(machine_id: str, db: Session = Depends(get_db)):
    m = get_or_404(db, Machine, machine_id, "Machine")
    return ok([bom_out(b) for b in _bom(db, m.id)])


@router.post("/{machine_id}/bom")
def add_bom_item(machine_id: str, payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    m = get_or_404(db, Machine, machine_id, "Machine")
    require_fields(payload, "materialId", "quantity")
    qty = to_decimal(payload["quantity"], "quantity")
    if qty <= 0:
        raise BadRequest("quantity must be greater than 0")
    mat = get_or_404(db, Material, payload["materialId"], "Material")
    if db.query(BOMItem).filter(BOMItem.machine_id == m.id, BOMItem.material_id == mat.id).first():
        raise Conflict("Material is already in the BOM")

    b = BOMItem(
        machine_id=m.id,
        material_id=mat.id,
        material_code=mat.code,
        material_name=mat.name,
        quantity=qty,
        unit=payload.get("unit") or mat.unit,
        notes=payload.get("notes"),
    )
    commit_refresh(db, b)
    audit(db, actor=user.email, action="bom.add", entity_type="machine", entity_id=m.id, payload={"materialId": mat.id, "quantity": num(qty)})
    return created(bom_out(b), "BOM item added")


@router.put("/{machine_id}/bom/{bom_id}")
def update_bom_item(machine_id: str, bom_id: str, payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    b = _bom_item(db, machine_id, bom_id)
    if "quantity" in payload:
        qty = to_decimal(payload["quantity"], "quantity")
        if qty <= 0:
            raise BadRequest("quantity must be greater than 0")
        b.quantity = qty
    if "unit" in payload and payload["unit"]:
        b.unit = str(payload["unit"])
    if "notes" in payload:
        b.notes = payload["notes"]
    commit_refresh(db, b)
    audit(db, actor=user.email, action="bom.update", entity_type="machine", entity_id=machine_id, payload={"bomId": b.id})
    return ok(bom_out(b), "BOM item updated")


@router.delete("/{machine_id}/bom/{bom_id}")
def delete_bom_item(machine_id: str, bom_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    b = _bom_item(db, machine_id, bom_id)
    db.delete(b)
    db.commit()
    audit(db, actor=user.email, action="bom.delete", entity_type="machine", entity_id=machine_id, payload={"bomId": bom_id})
    return ok(message="BOM item deleted")
