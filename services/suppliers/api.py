from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from plantstock.core.audit import audit
from plantstock.core.envelope import ok, created, paginate
from plantstock.core.errors import BadRequest, Conflict
from plantstock.core.security import get_current_user
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import iso
from plantstock.db.models.inventory import Supplier
from services._crud import commit_refresh, get_or_404, require_fields, apply_patch

router = APIRouter(prefix="/api/suppliers", tags=["suppliers"], dependencies=[Depends(get_current_user)])

SUPPLIER_STATUSES = ("active", "inactive")

FIELDS = {
    "code": ("code", "str"),
    "name": ("name", "str"),
    "contactPerson": ("contact_person", "str"),
    "email": ("email", "str"),
    "phone": ("phone", "str"),
    "address": ("address", "str"),
    "status": ("status", "str"),
}


def supplier_out(s: Supplier) -> dict:
    return {
        "id": s.id,
        "code": s.code,
        "name": s.name,
        "contactPerson": s.contact_person,
        "email": s.email,
        "phone": s.phone,
        "address": s.address,
        "status": s.status,
        "createdAt": iso(s.created_at),
        "updatedAt": iso(s.updated_at),
    }


def query_suppliers(db: Session, search: str | None = None, status: str | None = None) -> list[Supplier]:
    q = db.query(Supplier)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Supplier.name.ilike(like), Supplier.code.ilike(like), Supplier.contact_person.ilike(like)))
    if status and status != "all":
        q = q.filter(Supplier.status == status)
    return q.order_by(Supplier.created_at.desc()).all()


def _check(s: Supplier) -> None:
    if s.status not in SUPPLIER_STATUSES:
        raise BadRequest("status must be active or inactive")


@router.get("")
def list_suppliers(
    db: Session = Depends(get_db),
    search: str | None = None,
    status: str | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    return ok(paginate([supplier_out(s) for s in query_suppliers(db, search, status)], page, limit))


@router.get("/{supplier_id}")
def get_supplier(supplier_id: str, db: Session = Depends(get_db)):
    return ok(supplier_out(get_or_404(db, Supplier, supplier_id, "Supplier")))


@router.post("")
def create_supplier(payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    require_fields(payload, "code", "name")
    if db.query(Supplier).filter(Supplier.code == payload["code"]).first():
        raise Conflict("Supplier code already exists")
    s = Supplier(status="active")
    apply_patch(s, payload, FIELDS)
    _check(s)
    commit_refresh(db, s)
    audit(db, actor=user.email, action="supplier.create", entity_type="supplier", entity_id=s.id, payload={"code": s.code})
    return created(supplier_out(s), "Supplier created")


@router.put("/{supplier_id}")
def update_supplier(supplier_id: str, payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    s = get_or_404(db, Supplier, supplier_id, "Supplier")
    code = payload.get("code")
    if code and code != s.code and db.query(Supplier).filter(Supplier.code == code).first():
        raise Conflict("Supplier code already exists")
    applied = apply_patch(s, payload, FIELDS, required=("code", "name", "status"))
    _check(s)
    commit_refresh(db, s)
    audit(db, actor=user.email, action="supplier.update", entity_type="supplier", entity_id=s.id, payload={"fields": applied})
    return ok(supplier_out(s), "Supplier updated")


@router.delete("/{supplier_id}")
def delete_supplier(supplier_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    s = get_or_404(db, Supplier, supplier_id, "Supplier")
    code = s.code
    db.delete(s)
    db.commit()
    audit(db, actor=user.email, action="supplier.delete", entity_type="supplier", entity_id=supplier_id, payload={"code": code})
    return ok(message="Supplier deleted")
