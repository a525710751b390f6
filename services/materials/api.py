from __future__ import annotations
from decimal import Decimal
from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from plantstock.core.audit import audit
from plantstock.core.envelope import ok, created, num, paginate
from plantstock.core.errors import BadRequest, Conflict
from plantstock.core.security import get_current_user
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import iso
from plantstock.db.models.inventory import Material
from plantstock.db.models.production import BOMItem
from services._crud import commit_refresh, get_or_404, require_fields, apply_patch

router = APIRouter(prefix="/api/materials", tags=["materials"], dependencies=[Depends(get_current_user)])

FIELDS = {
    "code": ("code", "str"),
    "name": ("name", "str"),
    "description": ("description", "str"),
    "category": ("category", "str"),
    "unit": ("unit", "str"),
    "currentStock": ("current_stock", "decimal"),
    "minStock": ("min_stock", "decimal"),
    "maxStock": ("max_stock", "decimal"),
    "unitPrice": ("unit_price", "decimal"),
    "supplier": ("supplier", "str"),
    "location": ("location", "str"),
    "barcode": ("barcode", "str"),
}
REQUIRED = ("code", "name", "category", "unit")

# older clients send the *Level spelling
ALIASES = {"minStockLevel": "minStock", "maxStockLevel": "maxStock"}


def material_out(m: Material) -> dict:
    return {
        "id": m.id,
        "code": m.code,
        "name": m.name,
        "description": m.description,
        "category": m.category,
        "unit": m.unit,
        "currentStock": num(m.current_stock),
        "minStock": num(m.min_stock),
        "maxStock": num(m.max_stock),
        "unitPrice": num(m.unit_price),
        "supplier": m.supplier,
        "location": m.location,
        "barcode": m.barcode,
        "createdAt": iso(m.created_at),
        "lastUpdated": iso(m.updated_at),
    }


def stock_level(m: Material) -> str:
    """critical / low / normal / high, relative to min and max stock."""
    current, lo, hi = num(m.current_stock), num(m.min_stock), num(m.max_stock)
    if current <= lo:
        return "critical"
    ratio = current / hi if hi > 0 else 1.0
    if ratio < 0.3:
        return "low"
    if ratio < 0.8:
        return "normal"
    return "high"


def _normalize(payload: dict) -> dict:
    data = dict(payload)
    for old, new in ALIASES.items():
        if old in data and new not in data:
            data[new] = data.pop(old)
    return data


def _check_stock_fields(m: Material) -> None:
    for key, attr in (("currentStock", "current_stock"), ("minStock", "min_stock"), ("maxStock", "max_stock"), ("unitPrice", "unit_price")):
        if Decimal(getattr(m, attr) or 0) < 0:
            raise BadRequest(f"{key} cannot be negative")


@router.get("")
def list_materials(
    db: Session = Depends(get_db),
    search: str | None = None,
    category: str | None = None,
    stockLevel: str | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    q = db.query(Material)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(Material.name.ilike(like), Material.code.ilike(like), Material.description.ilike(like)))
    if category:
        q = q.filter(Material.category == category)
    rows = q.order_by(Material.created_at.desc()).all()
    if stockLevel and stockLevel != "all":
        rows = [m for m in rows if stock_level(m) == stockLevel]
    return ok(paginate([material_out(m) for m in rows], page, limit))


@router.get("/categories/list")
def list_categories(db: Session = Depends(get_db)):
    cats = db.query(Material.category).distinct().order_by(Material.category.asc()).all()
    return ok([c for (c,) in cats if c])


@router.get("/{material_id}")
def get_material(material_id: str, db: Session = Depends(get_db)):
    return ok(material_out(get_or_404(db, Material, material_id, "Material")))


@router.post("")
def create_material(payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    payload = _normalize(payload)
    require_fields(payload, *REQUIRED)
    if db.query(Material).filter(Material.code == payload["code"]).first():
        raise Conflict("Material code already exists")

    m = Material()
    apply_patch(m, payload, FIELDS)
    for attr in ("current_stock", "min_stock", "max_stock", "unit_price"):
        if getattr(m, attr) is None:
            setattr(m, attr, Decimal("0"))
    _check_stock_fields(m)
    commit_refresh(db, m)
    audit(db, actor=user.email, action="material.create", entity_type="material", entity_id=m.id, payload={"code": m.code})
    return created(material_out(m), "Material created")


@router.put("/{material_id}")
def update_material(material_id: str, payload: dict, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    m = get_or_404(db, Material, material_id, "Material")
    payload = _normalize(payload)
    code = payload.get("code")
    if code and code != m.code and db.query(Material).filter(Material.code == code).first():
        raise Conflict("Material code already exists")

    before = num(m.current_stock)
    applied = apply_patch(m, payload, FIELDS, required=REQUIRED)
    _check_stock_fields(m)
    commit_refresh(db, m)
    if "currentStock" in applied and num(m.current_stock) != before:
        # manual correction outside the movement log
        audit(
            db,
            actor=user.email,
            action="material.stock_override",
            entity_type="material",
            entity_id=m.id,
            level="warning",
            message=f"Stock of {m.code} set from {before} to {num(m.current_stock)}",
            payload={"from": before, "to": num(m.current_stock)},
        )
    audit(db, actor=user.email, action="material.update", entity_type="material", entity_id=m.id, payload={"fields": applied})
    return ok(material_out(m), "Material updated")


@router.delete("/{material_id}")
def delete_material(material_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    m = get_or_404(db, Material, material_id, "Material")
    db.query(BOMItem).filter(BOMItem.material_id == m.id).delete(synchronize_session=False)
    code = m.code
    db.delete(m)
    db.commit()
    audit(db, actor=user.email, action="material.delete", entity_type="material", entity_id=material_id, payload={"code": code})
    return ok(message="Material deleted")
